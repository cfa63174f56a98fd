"""Main compressor model.

Single-stage radial compressor described by a dimensionless head and
efficiency map.  Sizing fixes the rotor diameter and design shaft speed from
the design-point isentropic work at the design flow coefficient.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from sco2_cycle.core.errors import CompressorOperatingError, ErrorCode
from sco2_cycle.core.fluids import FluidPropertyError, ThermoState
from sco2_cycle.cycle.components.base import Turbomachine
from sco2_cycle.cycle.components.turbomachinery import PSI_DESIGN, compressor_map
from sco2_cycle.utils.constants import PHI_DESIGN, PHI_MIN, RAD_S_TO_RPM, RPM_TO_RAD_S

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompressorDesign:
    """Sized main compressor."""

    D_rotor: float  # m
    N_design: float  # rpm
    eta_design: float  # isentropic efficiency
    w_tip_ratio: float  # U_tip / outlet speed of sound
    m_dot_design: float  # kg/s


@dataclass(frozen=True)
class CompressorOffDesign:
    """Main compressor operating point."""

    T_out: float  # K
    P_out: float  # Pa
    eta: float
    phi: float
    surge: bool
    w_tip_ratio: float
    N: float  # rpm


class Compressor(Turbomachine[CompressorDesign]):
    """Radial main compressor."""

    name = "main compressor"

    def size(self, inlet: ThermoState, outlet: ThermoState, m_dot: float) -> CompressorDesign:
        """Size the rotor for the design inlet/outlet states and flow.

        Args:
            inlet: Design inlet state.
            outlet: Design outlet state.
            m_dot: Design mass flow [kg/s].
        """
        h_s_out = self.fluid.state_PS(outlet.pressure, inlet.entropy).enthalpy
        w_i = h_s_out - inlet.enthalpy  # positive isentropic work
        U_tip = math.sqrt(w_i / PSI_DESIGN)
        D_rotor = math.sqrt(m_dot / (PHI_DESIGN * inlet.density * U_tip))
        N_design = U_tip * 2.0 / D_rotor * RAD_S_TO_RPM

        self._design = CompressorDesign(
            D_rotor=D_rotor,
            N_design=N_design,
            eta_design=w_i / (outlet.enthalpy - inlet.enthalpy),
            w_tip_ratio=U_tip / outlet.speed_of_sound,
            m_dot_design=m_dot,
        )
        logger.debug("Sized %s: D=%.4f m, N=%.0f rpm", self.name, D_rotor, N_design)
        return self._design

    def off_design(self, T_in: float, P_in: float, m_dot: float, N: float) -> CompressorOffDesign:
        """Outlet state for a given inlet, mass flow and shaft speed.

        Raises:
            CompressorOperatingError: code 1 when the flow cannot be delivered
                at this speed, code 2 when the outlet state is out of range.
        """
        design = self.design
        if N <= 0.0:
            raise CompressorOperatingError(f"Non-positive shaft speed {N} rpm")
        try:
            inlet = self.fluid.state_TP(T_in, P_in)
        except FluidPropertyError as exc:
            raise CompressorOperatingError(f"Compressor inlet state failed: {exc}") from exc

        U_tip = design.D_rotor * 0.5 * N * RPM_TO_RAD_S
        phi = m_dot / (inlet.density * U_tip * design.D_rotor**2)
        surge = phi < PHI_MIN
        if surge:
            phi = PHI_MIN

        psi, eta_0 = compressor_map(phi, N, design.N_design)
        if psi <= 0.0:
            raise CompressorOperatingError(
                f"Non-positive head coefficient at phi={phi:.4f}, N={N:.0f} rpm"
            )
        eta = max(eta_0 * design.eta_design, 0.0)
        if eta <= 0.0:
            raise CompressorOperatingError(
                f"Non-positive compressor efficiency at phi={phi:.4f}",
                ErrorCode.COMPRESSOR_OUTLET_OUT_OF_RANGE,
            )

        dh_s = psi * U_tip**2
        try:
            P_out = self.fluid.state_HS(inlet.enthalpy + dh_s, inlet.entropy).pressure
            outlet = self.fluid.state_PH(P_out, inlet.enthalpy + dh_s / eta)
        except FluidPropertyError as exc:
            raise CompressorOperatingError(
                f"Compressor outlet state failed: {exc}",
                ErrorCode.COMPRESSOR_OUTLET_OUT_OF_RANGE,
            ) from exc

        return CompressorOffDesign(
            T_out=outlet.temperature,
            P_out=P_out,
            eta=eta,
            phi=phi,
            surge=surge,
            w_tip_ratio=U_tip / outlet.speed_of_sound,
            N=N,
        )
