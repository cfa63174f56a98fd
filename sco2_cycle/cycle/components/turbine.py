"""Radial inflow turbine model.

The allowable mass flow is the closed-form product of spouting velocity,
effective nozzle area and inlet density; the off-design mass-flow loop uses
it to throttle the cycle.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from sco2_cycle.core.errors import CycleError, ErrorCode
from sco2_cycle.core.fluids import ThermoState
from sco2_cycle.cycle.components.base import Turbomachine
from sco2_cycle.cycle.components.turbomachinery import turbine_efficiency_curve
from sco2_cycle.utils.constants import NU_DESIGN, RPM_TO_RAD_S

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurbineDesign:
    """Sized turbine."""

    D_rotor: float  # m
    A_nozzle: float  # m²
    N_design: float  # rpm
    nu_design: float
    eta_design: float
    w_tip_ratio: float  # U_tip / inlet speed of sound
    m_dot_design: float  # kg/s


@dataclass(frozen=True)
class TurbineOffDesign:
    """Turbine operating point."""

    m_dot: float  # kg/s, allowable flow
    T_out: float  # K
    eta: float
    nu: float
    w_tip_ratio: float
    N: float  # rpm


class Turbine(Turbomachine[TurbineDesign]):
    """Radial turbine with a fixed design velocity ratio."""

    name = "turbine"

    def size(
        self,
        inlet: ThermoState,
        outlet: ThermoState,
        m_dot: float,
        N_design: float,
        N_compressor: float = 0.0,
    ) -> TurbineDesign:
        """Size rotor and nozzle for the design expansion.

        Args:
            inlet: Design inlet state.
            outlet: Design outlet state.
            m_dot: Design mass flow [kg/s].
            N_design: Design shaft speed [rpm]; <= 0 links to the compressor.
            N_compressor: Compressor design speed used when linked [rpm].
        """
        if N_design <= 0.0:
            N_design = N_compressor
            if N_design <= 0.0:
                raise CycleError(
                    "Turbine shaft speed linked to compressor, but no compressor speed",
                    ErrorCode.TURBINE_SHAFT_SPEED,
                )

        h_s_out = self.fluid.state_PS(outlet.pressure, inlet.entropy).enthalpy
        w_i = inlet.enthalpy - h_s_out
        C_s = math.sqrt(2.0 * w_i)
        U_tip = NU_DESIGN * C_s

        self._design = TurbineDesign(
            D_rotor=U_tip / (0.5 * N_design * RPM_TO_RAD_S),
            A_nozzle=m_dot / (C_s * inlet.density),
            N_design=N_design,
            nu_design=NU_DESIGN,
            eta_design=(inlet.enthalpy - outlet.enthalpy) / w_i,
            w_tip_ratio=U_tip / inlet.speed_of_sound,
            m_dot_design=m_dot,
        )
        return self._design

    def off_design(self, T_in: float, P_in: float, P_out: float, N: float) -> TurbineOffDesign:
        """Allowable flow and outlet temperature at the given pressures and speed."""
        design = self.design
        inlet = self.fluid.state_TP(T_in, P_in)
        h_s_out = self.fluid.state_PS(P_out, inlet.entropy).enthalpy
        if inlet.enthalpy - h_s_out < 0.0:
            raise CycleError(
                f"Turbine outlet pressure {P_out:.0f} Pa is not below inlet {P_in:.0f} Pa",
                ErrorCode.TURBINE_PRESSURE_RATIO,
            )

        C_s = math.sqrt(2.0 * (inlet.enthalpy - h_s_out))
        U_tip = design.D_rotor * 0.5 * N * RPM_TO_RAD_S
        nu = U_tip / C_s if C_s > 0.0 else math.inf
        eta = turbine_efficiency_curve(nu) * design.eta_design

        outlet = self.fluid.state_PH(P_out, inlet.enthalpy - eta * (inlet.enthalpy - h_s_out))
        return TurbineOffDesign(
            m_dot=C_s * design.A_nozzle * inlet.density,
            T_out=outlet.temperature,
            eta=eta,
            nu=nu,
            w_tip_ratio=U_tip / inlet.speed_of_sound,
            N=N,
        )
