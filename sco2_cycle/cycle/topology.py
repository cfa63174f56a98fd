"""Cycle topologies sharing the ten-node recompression skeleton.

A topology decides how the turbine flow follows from the net-power target,
how much of the turbine flow crosses the HT recuperator cold side, and how
net power and thermal efficiency are derived from a converged state vector.
``standard`` is the production recompression cycle; the others model a
recompressor-side heat shield and an HT-recuperator bypass.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable

from sco2_cycle.core.errors import ErrorCode, InfeasibleCycleError, InputValidationError
from sco2_cycle.core.fluids import ThermoState
from sco2_cycle.utils.constants import T_CELSIUS_OFFSET

if TYPE_CHECKING:
    from sco2_cycle.cycle.design import DesignPoint

logger = logging.getLogger(__name__)

HEAT_SHIELD_DUTY_FRACTION = 10.0 / 65.0


@dataclass(frozen=True)
class CycleBalance:
    """Converged states and flows handed to a topology for the energy balance."""

    states: tuple[ThermoState, ...]  # nodes 1..10
    m_dot_t: float  # kg/s
    m_dot_mc: float  # kg/s
    m_dot_rc: float  # kg/s
    w_mc: float  # J/kg
    w_rc: float  # J/kg
    w_t: float  # J/kg
    Q_dot_PHX: float  # W
    recomp_frac: float
    bypass_fraction: float
    tol: float

    def h(self, node: int) -> float:
        return self.states[node - 1].enthalpy

    def T(self, node: int) -> float:
        return self.states[node - 1].temperature


@dataclass(frozen=True)
class Performance:
    """Net power, thermal efficiency and topology-specific extras."""

    W_dot_net: float  # W
    eta_thermal: float
    extras: dict[str, float]


class Topology(ABC):
    """Strategy over the shared design skeleton."""

    name: str = ""
    description: str = ""

    def turbine_mass_flow(
        self,
        W_dot_net: float,
        recomp_frac: float,
        w_mc: float,
        w_rc: float,
        w_t: float,
    ) -> float:
        """Turbine flow [kg/s] that delivers ``W_dot_net``.

        Raises:
            InfeasibleCycleError: code 29 when the flow would be negative.
        """
        denominator = (1.0 - recomp_frac) * w_mc + recomp_frac * w_rc + w_t
        return _checked_flow(W_dot_net, denominator)

    def ht_cold_fraction(self, bypass_fraction: float) -> float:
        """Share of the turbine flow on the HT recuperator cold side."""
        return 1.0

    @abstractmethod
    def performance(self, balance: CycleBalance) -> Performance:
        """Net power and thermal efficiency of a converged state vector."""
        ...

    def solve(self, run: Callable[[float], DesignPoint]) -> DesignPoint:
        """Run the design skeleton; ``run`` maps a bypass fraction to a design point."""
        return run(0.0)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _checked_flow(W_dot_net: float, denominator: float) -> float:
    if denominator <= 0.0:
        raise InfeasibleCycleError(
            "Specific works give a non-positive net work per unit turbine flow",
            ErrorCode.NEGATIVE_MASS_FLOW,
        )
    m_dot_t = W_dot_net / denominator
    if m_dot_t < 0.0:
        raise InfeasibleCycleError(
            f"Negative turbine mass flow {m_dot_t:.4g} kg/s", ErrorCode.NEGATIVE_MASS_FLOW
        )
    return m_dot_t


def _standard_net_power(balance: CycleBalance) -> float:
    return (
        balance.w_mc * balance.m_dot_mc
        + balance.w_rc * balance.m_dot_rc
        + balance.w_t * balance.m_dot_t
    )


class StandardTopology(Topology):
    """Recompression cycle: main compressor, recompressor and two recuperators."""

    name = "standard"
    description = "Recompression cycle with LT and HT recuperators"

    def performance(self, balance: CycleBalance) -> Performance:
        W_dot_net = _standard_net_power(balance)
        return Performance(W_dot_net, W_dot_net / balance.Q_dot_PHX, {})


class BypassTopology(Topology):
    """Recompressed flow heats a heat shield instead of returning to the cycle work.

    The recompressor work is not charged to the cycle and the recompressed
    stream's temperature rise is credited as heat input.  Efficiency is
    penalised when the heat-shield temperature lift leaves [150, 250] K or its
    duty share departs from 10/65.
    """

    name = "bypass"
    description = "Recompressor branch feeds a heat shield"

    def turbine_mass_flow(
        self,
        W_dot_net: float,
        recomp_frac: float,
        w_mc: float,
        w_rc: float,
        w_t: float,
    ) -> float:
        return _checked_flow(W_dot_net, w_mc + w_t)

    def performance(self, balance: CycleBalance) -> Performance:
        W_dot_net = (balance.w_mc + balance.w_t) * balance.m_dot_t
        Q_dot_hs = balance.m_dot_rc * (balance.h(10) - balance.h(2))
        Q_dot_total = balance.Q_dot_PHX + Q_dot_hs

        dT_hs = balance.T(10) - balance.T(2)
        dT_excess = max(150.0 - dT_hs, dT_hs - 250.0, 0.0)
        hs_fraction = Q_dot_hs / Q_dot_total
        fraction_excess = max(0.0, abs(hs_fraction - HEAT_SHIELD_DUTY_FRACTION) - balance.tol)

        eta = W_dot_net / Q_dot_total * math.exp(-dT_excess) * math.exp(-100.0 * fraction_excess)
        extras = {
            "Q_dot_heat_shield": Q_dot_hs,
            "dT_heat_shield": dT_hs,
            "heat_shield_fraction": hs_fraction,
        }
        return Performance(W_dot_net, eta, extras)


class Bypass150CTopology(Topology):
    """Standard flows with the recompressor outlet capped at 150 C."""

    name = "bypass_150C"
    description = "Recompression cycle penalised above a 150 C recompressor outlet"

    T_LIMIT = 150.0 + T_CELSIUS_OFFSET  # K

    def performance(self, balance: CycleBalance) -> Performance:
        W_dot_net = _standard_net_power(balance)
        h1, h2, h3, h9 = balance.h(1), balance.h(2), balance.h(3), balance.h(9)
        dh_bypass = h3 - h2
        extras = {
            "W_dot_mc": balance.w_mc * balance.m_dot_mc,
            "W_dot_rc": balance.w_rc * balance.m_dot_rc,
            "W_dot_mc_bypass": balance.w_mc * balance.m_dot_t,
            "Q_dot_bypass": balance.m_dot_rc * dh_bypass,
            "eta_bypass": ((h3 - h9) - (h2 - h1)) / dh_bypass if dh_bypass != 0.0 else 0.0,
        }
        penalty = math.exp(-max(0.0, balance.T(10) - self.T_LIMIT))
        return Performance(W_dot_net, W_dot_net / balance.Q_dot_PHX * penalty, extras)


class HTRHeatShieldTopology(Topology):
    """Part of the HT recuperator cold flow bypasses it to feed a heat shield.

    The bypass fraction is bisected until the heat-shield duty is 10/65 of the
    total heat input.
    """

    name = "htr_heat_shield"
    description = "HT recuperator bypass sized for a heat-shield duty share"

    F_GUESS = 0.25
    F_LOWER = 0.01
    F_UPPER = 0.8
    PIN_WIDTH = 0.005
    MAX_ITER = 50

    def ht_cold_fraction(self, bypass_fraction: float) -> float:
        return 1.0 - bypass_fraction

    def performance(self, balance: CycleBalance) -> Performance:
        W_dot_net = _standard_net_power(balance)
        Q_dot_bypass = balance.bypass_fraction * balance.m_dot_t * (balance.h(5) - balance.h(4))
        Q_dot_total = balance.Q_dot_PHX + Q_dot_bypass
        extras = {
            "bypass_fraction": balance.bypass_fraction,
            "Q_dot_bypass": Q_dot_bypass,
            "heat_shield_fraction": Q_dot_bypass / Q_dot_total,
        }
        return Performance(W_dot_net, W_dot_net / Q_dot_total, extras)

    def solve(self, run: Callable[[float], DesignPoint]) -> DesignPoint:
        f = self.F_GUESS
        low, high = self.F_LOWER, self.F_UPPER
        for iteration in range(1, self.MAX_ITER + 2):
            point = run(f)
            diff = point.extras["heat_shield_fraction"] - HEAT_SHIELD_DUTY_FRACTION
            if abs(diff) <= point.parameters.tol:
                return point
            if iteration > self.MAX_ITER:
                logger.warning("HT bypass fraction did not converge in %d iterations", self.MAX_ITER)
                break
            if diff > 0.0:
                high = f
            else:
                low = f
            f = 0.5 * (low + high)
            if self.F_UPPER - low < self.PIN_WIDTH or high - self.F_LOWER < self.PIN_WIDTH:
                logger.warning("HT bypass fraction pinned at its limit (f=%.4f)", f)
                break
        return replace(point, eta_thermal=0.0)


TOPOLOGIES: dict[str, type[Topology]] = {
    cls.name: cls
    for cls in (StandardTopology, BypassTopology, Bypass150CTopology, HTRHeatShieldTopology)
}


def get_topology(name: str | Topology) -> Topology:
    """Return a topology instance by name."""
    if isinstance(name, Topology):
        return name
    try:
        return TOPOLOGIES[name]()
    except KeyError:
        raise InputValidationError(
            f"Unknown topology '{name}'. Available: {', '.join(TOPOLOGIES)}"
        ) from None


def describe_topologies() -> list[dict[str, Any]]:
    return [{"name": cls.name, "description": cls.description} for cls in TOPOLOGIES.values()]
