"""Two-stage recompressor model.

Both stages share one shaft and the main-compressor map.  Sizing finds the
intermediate pressure at which the second stage also runs at the design flow
coefficient; off-design finds the first-stage flow coefficient that delivers
the requested outlet pressure.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from sco2_cycle.core.errors import CompressorOperatingError, ConvergenceError, ErrorCode
from sco2_cycle.core.fluids import ThermoState
from sco2_cycle.cycle.components.base import Turbomachine
from sco2_cycle.cycle.components.turbomachinery import PSI_DESIGN, compressor_map
from sco2_cycle.cycle.root_finding import Trial, bracketed_secant
from sco2_cycle.utils.constants import PHI_DESIGN, PHI_MIN, RAD_S_TO_RPM, RPM_TO_RAD_S

logger = logging.getLogger(__name__)

_SIZING_TOLERANCE = 1.0e-8
_OFF_DESIGN_REL_TOL = 1.0e-9
_MAX_ITER = 100


@dataclass(frozen=True)
class RecompressorDesign:
    """Sized two-stage recompressor."""

    D_rotor: float  # m, first stage
    D_rotor_2: float  # m, second stage
    N_design: float  # rpm
    eta_design: float  # stage isentropic efficiency
    m_dot_design: float  # kg/s


@dataclass(frozen=True)
class RecompressorOffDesign:
    """Recompressor operating point."""

    T_out: float  # K
    P_out: float  # Pa
    h_out: float  # J/kg
    eta: float  # overall isentropic efficiency
    phi: float  # first stage
    phi_2: float  # second stage
    surge: bool
    w_tip_ratio: float  # max of both stages
    N: float  # rpm


class Recompressor(Turbomachine[RecompressorDesign]):
    """Two-stage radial recompressor on a common shaft."""

    name = "recompressor"

    def size(self, inlet: ThermoState, outlet: ThermoState, m_dot: float) -> RecompressorDesign:
        """Size both stages for the design inlet/outlet states and flow."""
        fluid = self.fluid
        h_in = inlet.enthalpy
        s_in = inlet.entropy
        h_out = outlet.enthalpy
        P_out = outlet.pressure

        h_s_out = fluid.state_PS(P_out, s_in).enthalpy
        eta_stage = (h_s_out - h_in) / (h_out - h_in)  # first guess: overall efficiency
        geometry: dict[str, float] = {}

        def evaluate(P_int: float) -> Trial:
            nonlocal eta_stage
            # First stage
            w_i = fluid.state_PS(P_int, s_in).enthalpy - h_in
            U_tip_1 = math.sqrt(w_i / PSI_DESIGN)
            D_1 = math.sqrt(m_dot / (PHI_DESIGN * inlet.density * U_tip_1))
            N_rad_s = U_tip_1 * 2.0 / D_1
            h_int = h_in + w_i / eta_stage
            intermediate = fluid.state_PH(P_int, h_int)

            # Second stage
            w_i = fluid.state_PS(P_out, intermediate.entropy).enthalpy - h_int
            U_tip_2 = math.sqrt(w_i / PSI_DESIGN)
            D_2 = 2.0 * U_tip_2 / N_rad_s
            phi = m_dot / (intermediate.density * U_tip_2 * D_2**2)
            eta_2_req = w_i / (h_out - h_int)

            geometry.update(D_1=D_1, D_2=D_2, N=N_rad_s * RAD_S_TO_RPM, eta=eta_stage)
            residual = phi - PHI_DESIGN
            if residual <= _SIZING_TOLERANCE and abs(eta_stage - eta_2_req) <= _SIZING_TOLERANCE:
                return Trial.converged(residual=residual)
            eta_stage = 0.5 * (eta_stage + eta_2_req)
            return Trial.of(residual)

        lower = inlet.pressure + 1.0e-3
        upper = P_out - 1.0e-3
        try:
            bracketed_secant(
                evaluate,
                0.5 * (lower + upper),
                lower,
                upper,
                last_x=1.0e12,
                last_residual=0.0,
                max_iter=_MAX_ITER,
                limit_step=True,
                error_code=ErrorCode.COMPRESSOR_INFEASIBLE,
                label="recompressor intermediate pressure",
            )
        except ConvergenceError as exc:
            raise CompressorOperatingError(f"Recompressor sizing failed: {exc}") from exc

        self._design = RecompressorDesign(
            D_rotor=geometry["D_1"],
            D_rotor_2=geometry["D_2"],
            N_design=geometry["N"],
            eta_design=geometry["eta"],
            m_dot_design=m_dot,
        )
        logger.debug(
            "Sized %s: D1=%.4f m, D2=%.4f m, N=%.0f rpm",
            self.name, self._design.D_rotor, self._design.D_rotor_2, self._design.N_design,
        )
        return self._design

    def off_design(self, T_in: float, P_in: float, m_dot: float, P_out: float) -> RecompressorOffDesign:
        """Outlet state and shaft speed delivering ``P_out`` at flow ``m_dot``.

        Raises:
            CompressorOperatingError: the phi iteration does not converge or
                leaves the map domain (code 1).
        """
        design = self.design
        fluid = self.fluid
        inlet = fluid.state_TP(T_in, P_in)
        h_in = inlet.enthalpy
        s_in = inlet.entropy

        def stages(phi_1: float) -> dict[str, float]:
            U_tip_1 = m_dot / (phi_1 * inlet.density * design.D_rotor**2)
            N = U_tip_1 * 2.0 / design.D_rotor * RAD_S_TO_RPM
            psi, eta_0 = compressor_map(phi_1, N, design.N_design)
            dh_s = psi * U_tip_1**2
            eta_1 = max(eta_0 * design.eta_design, 0.0)
            if eta_1 <= 0.0:
                raise CompressorOperatingError(f"First-stage efficiency vanishes at phi={phi_1:.4g}")
            h_int = h_in + dh_s / eta_1
            P_int = fluid.state_HS(h_in + dh_s, s_in).pressure
            intermediate = fluid.state_PH(P_int, h_int)

            U_tip_2 = design.D_rotor_2 * 0.5 * N * RPM_TO_RAD_S
            phi_2 = m_dot / (intermediate.density * U_tip_2 * design.D_rotor_2**2)
            psi, eta_0 = compressor_map(phi_2, N, design.N_design)
            dh_s = psi * U_tip_2**2
            eta_2 = max(eta_0 * design.eta_design, 0.0)
            if eta_2 <= 0.0:
                raise CompressorOperatingError(f"Second-stage efficiency vanishes at phi={phi_2:.4g}")
            return {
                "P_out": fluid.state_HS(h_int + dh_s, intermediate.entropy).pressure,
                "h_out": h_int + dh_s / eta_2,
                "N": N,
                "phi_2": phi_2,
                "U_tip_1": U_tip_1,
                "U_tip_2": U_tip_2,
                "ssnd_int": intermediate.speed_of_sound,
            }

        phi_1 = PHI_DESIGN
        last_phi = last_residual = math.nan
        for iteration in range(_MAX_ITER):
            if not (math.isfinite(phi_1) and phi_1 > 0.0):
                raise CompressorOperatingError(f"Recompressor flow coefficient left the map ({phi_1})")
            result = stages(phi_1)
            residual = P_out - result["P_out"]
            if abs(residual) / P_out <= _OFF_DESIGN_REL_TOL:
                break
            if iteration == 0:
                next_phi = phi_1 * 1.0001
            elif last_residual != residual:
                next_phi = phi_1 - residual * (last_phi - phi_1) / (last_residual - residual)
            else:
                raise CompressorOperatingError("Recompressor secant step is singular")
            last_phi, last_residual = phi_1, residual
            phi_1 = next_phi
        else:
            raise CompressorOperatingError(
                f"Recompressor off-design did not converge in {_MAX_ITER} iterations"
            )

        outlet = fluid.state_PH(result["P_out"], result["h_out"])
        h_s_out = fluid.state_PS(result["P_out"], s_in).enthalpy
        return RecompressorOffDesign(
            T_out=outlet.temperature,
            P_out=result["P_out"],
            h_out=result["h_out"],
            eta=(h_s_out - h_in) / (result["h_out"] - h_in),
            phi=phi_1,
            phi_2=result["phi_2"],
            surge=phi_1 < PHI_MIN or result["phi_2"] < PHI_MIN,
            w_tip_ratio=max(
                result["U_tip_1"] / result["ssnd_int"],
                result["U_tip_2"] / outlet.speed_of_sound,
            ),
            N=result["N"],
        )
