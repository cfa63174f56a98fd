"""CO2 property oracle wrapping CoolProp.

Every cycle solver owns one :class:`Fluid`.  The low-level AbstractState is
stateful, so instances must not be shared across threads.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import CoolProp.CoolProp as CP

from sco2_cycle.core.errors import CycleError, ErrorCode

logger = logging.getLogger(__name__)


class FluidPropertyError(CycleError):
    """Raised when a fluid property calculation fails."""

    default_code = ErrorCode.PROPERTY_FAILURE


@dataclass(frozen=True)
class ThermoState:
    """Equilibrium state of the working fluid (SI units)."""

    temperature: float  # K
    pressure: float  # Pa
    enthalpy: float  # J/kg
    entropy: float  # J/(kg·K)
    density: float  # kg/m³
    speed_of_sound: float  # m/s


class Fluid:
    """Interface to thermodynamic properties of the cycle working fluid.

    Args:
        name: CoolProp fluid name.
        backend: CoolProp backend string (``"HEOS"`` or ``"REFPROP"``).
    """

    def __init__(self, name: str = "CO2", backend: str = "HEOS"):
        self.name = name
        self.backend = backend
        try:
            self._state = CP.AbstractState(backend, name)
        except ValueError as exc:
            raise FluidPropertyError(
                f"Cannot create fluid '{name}' with backend '{backend}': {exc}"
            ) from exc

        self.T_critical = self._state.T_critical()  # K
        self.P_critical = self._state.p_critical()  # Pa
        self.T_max = self._state.Tmax()  # K
        self.P_max = self._state.pmax()  # Pa
        self.molar_mass = self._state.molar_mass()  # kg/mol

    def _update(self, input_pair: int, val1: float, val2: float) -> ThermoState:
        if not (math.isfinite(val1) and math.isfinite(val2)):
            raise FluidPropertyError(f"Non-finite property inputs ({val1}, {val2})")
        try:
            self._state.update(input_pair, val1, val2)
            s = self._state
            state = ThermoState(
                temperature=s.T(),
                pressure=s.p(),
                enthalpy=s.hmass(),
                entropy=s.smass(),
                density=s.rhomass(),
                speed_of_sound=s.speed_sound(),
            )
        except ValueError as exc:
            raise FluidPropertyError(f"State update failed for {self.name}: {exc}") from exc
        if not math.isfinite(state.enthalpy) or not math.isfinite(state.density):
            raise FluidPropertyError(f"Non-finite state returned for {self.name}")
        return state

    def state_TP(self, T: float, P: float) -> ThermoState:
        """State at temperature [K] and pressure [Pa]."""
        return self._update(CP.PT_INPUTS, P, T)

    def state_PS(self, P: float, s: float) -> ThermoState:
        """State at pressure [Pa] and entropy [J/(kg·K)]."""
        return self._update(CP.PSmass_INPUTS, P, s)

    def state_PH(self, P: float, h: float) -> ThermoState:
        """State at pressure [Pa] and enthalpy [J/kg]."""
        return self._update(CP.HmassP_INPUTS, h, P)

    def state_HS(self, h: float, s: float) -> ThermoState:
        """State at enthalpy [J/kg] and entropy [J/(kg·K)]."""
        return self._update(CP.HmassSmass_INPUTS, h, s)

    def __repr__(self) -> str:
        return f"Fluid('{self.name}', backend='{self.backend}')"


def co2_pseudocritical_pressure(T: float) -> float:
    """Pressure [Pa] on the CO2 pseudo-critical line at temperature T [K].

    Quadratic fit valid from the critical point to roughly 400 K.
    """
    return ((0.191448 * T + 45.6661) * T - 24213.3) * 1000.0
