"""Counter-flow heat exchanger model.

The design record stores the design pressure drops, mass flows and
conductance of a recuperator, precooler or primary heat exchanger.  Off-design
pressure drops and conductance scale with the mass flows.

:func:`calculate_ua` evaluates the conductance a recuperator needs for a given
duty by splitting it into sub-exchangers of equal duty and summing the
effectiveness-NTU conductance of each.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from sco2_cycle.core.errors import ErrorCode, HeatExchangerError, SecondLawViolation
from sco2_cycle.core.fluids import Fluid, FluidPropertyError
from sco2_cycle.utils.constants import ZERO_DUTY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeatExchangerDesign:
    """Design-point record of a heat exchanger.

    Pairs are ``(cold, hot)``.
    """

    dp_design: tuple[float, float] = (0.0, 0.0)  # Pa
    m_dot_design: tuple[float, float] = (0.0, 0.0)  # kg/s
    UA_design: float = 0.0  # W/K
    Q_dot_design: float = 0.0  # W
    effectiveness: float = 0.0
    min_dT: float = 0.0  # K
    n_sub: int = 0

    def pressure_drops(self, m_dot_cold: float, m_dot_hot: float) -> tuple[float, float]:
        """Pressure drops [Pa] scaled as (m/m_design)^1.75."""
        drops = []
        for dp, m_dot, m_design in zip(self.dp_design, (m_dot_cold, m_dot_hot), self.m_dot_design):
            drops.append(dp * (m_dot / m_design) ** 1.75 if m_design > 0.0 else 0.0)
        return drops[0], drops[1]

    def conductance(self, m_dot_cold: float, m_dot_hot: float) -> float:
        """Conductance [W/K] scaled with the mean flow ratio to the 0.8 power."""
        m_c_d, m_h_d = self.m_dot_design
        if m_c_d <= 0.0 or m_h_d <= 0.0:
            return 0.0
        ratio = 0.5 * (m_dot_cold / m_c_d + m_dot_hot / m_h_d)
        return self.UA_design * ratio**0.8


def calculate_ua(
    fluid: Fluid,
    n_sub: int,
    Q_dot: float,
    m_dot_cold: float,
    m_dot_hot: float,
    T_cold_in: float,
    T_hot_in: float,
    P_cold_in: float,
    P_cold_out: float,
    P_hot_in: float,
    P_hot_out: float,
) -> tuple[float, float]:
    """Conductance required to transfer ``Q_dot`` between two streams.

    Pressure and enthalpy vary linearly across ``n_sub + 1`` nodes.  The cold
    side is traversed from its outlet, the hot side from its inlet, so each
    node pairs counter-flowing states.

    Returns:
        ``(UA, min_dT)``: conductance [W/K] and the smallest hot-to-cold
        temperature difference over all nodes [K].

    Raises:
        HeatExchangerError: invalid inputs (codes 4-7), property failures
            (9, 12, 13) or a non-finite conductance (14).
        SecondLawViolation: the cold stream reaches the hot stream temperature.
    """
    if Q_dot < 0.0:
        raise HeatExchangerError(f"Negative heat duty {Q_dot} W", ErrorCode.HX_NEGATIVE_DUTY)
    if T_hot_in < T_cold_in:
        raise HeatExchangerError(
            f"Hot inlet {T_hot_in:.2f} K colder than cold inlet {T_cold_in:.2f} K",
            ErrorCode.HX_INLET_TEMPERATURE_ORDER,
        )
    if P_hot_in < P_hot_out:
        raise HeatExchangerError("Hot-side pressure rises", ErrorCode.HX_HOT_PRESSURE_RISE)
    if P_cold_in < P_cold_out:
        raise HeatExchangerError("Cold-side pressure rises", ErrorCode.HX_COLD_PRESSURE_RISE)
    if Q_dot <= ZERO_DUTY:
        return 0.0, T_hot_in - T_cold_in

    h_c_in = fluid.state_TP(T_cold_in, P_cold_in).enthalpy
    try:
        h_h_in = fluid.state_TP(T_hot_in, P_hot_in).enthalpy
    except FluidPropertyError as exc:
        raise HeatExchangerError(
            f"Hot inlet state failed: {exc}", ErrorCode.HX_HOT_INLET_PROPERTY
        ) from exc

    h_c_out = h_c_in + Q_dot / m_dot_cold
    h_h_out = h_h_in - Q_dot / m_dot_hot

    UA = 0.0
    min_dT = T_hot_in
    prev: tuple[float, float, float, float] | None = None
    for i in range(n_sub + 1):
        frac = i / n_sub
        P_c = P_cold_out + frac * (P_cold_in - P_cold_out)
        P_h = P_hot_in - frac * (P_hot_in - P_hot_out)
        h_c = h_c_out + frac * (h_c_in - h_c_out)
        h_h = h_h_in - frac * (h_h_in - h_h_out)

        try:
            T_h = fluid.state_PH(P_h, h_h).temperature
        except FluidPropertyError as exc:
            raise HeatExchangerError(
                f"Hot node {i} state failed: {exc}", ErrorCode.HX_HOT_NODE_PROPERTY
            ) from exc
        try:
            T_c = fluid.state_PH(P_c, h_c).temperature
        except FluidPropertyError as exc:
            raise HeatExchangerError(
                f"Cold node {i} state failed: {exc}", ErrorCode.HX_COLD_NODE_PROPERTY
            ) from exc

        if T_c >= T_h:
            raise SecondLawViolation(f"Cold stream {T_c:.3f} K >= hot stream {T_h:.3f} K at node {i}")
        min_dT = min(min_dT, T_h - T_c)

        if prev is not None:
            UA += _segment_ua(Q_dot / n_sub, m_dot_cold, m_dot_hot, prev, (h_h, T_h, h_c, T_c))
        prev = (h_h, T_h, h_c, T_c)

    if not math.isfinite(UA):
        raise HeatExchangerError("Conductance is not finite", ErrorCode.HX_CONDUCTANCE_NAN)
    return UA, min_dT


def _segment_ua(
    Q_seg: float,
    m_dot_cold: float,
    m_dot_hot: float,
    prev: tuple[float, float, float, float],
    node: tuple[float, float, float, float],
) -> float:
    """Effectiveness-NTU conductance of one sub-exchanger."""
    h_h_prev, T_h_prev, h_c_prev, T_c_prev = prev
    h_h, T_h, h_c, T_c = node
    if T_h_prev == T_h or T_c_prev == T_c:
        raise HeatExchangerError("Zero temperature change across a sub-exchanger")

    C_hot = m_dot_hot * (h_h_prev - h_h) / (T_h_prev - T_h)
    C_cold = m_dot_cold * (h_c_prev - h_c) / (T_c_prev - T_c)
    C_min = min(C_hot, C_cold)
    C_max = max(C_hot, C_cold)
    C_R = C_min / C_max
    eff = Q_seg / (C_min * (T_h_prev - T_c))
    if not 0.0 <= eff < 1.0:
        raise HeatExchangerError(f"Sub-exchanger effectiveness {eff:.4g} out of range")

    if C_R != 1.0:
        argument = (1.0 - eff * C_R) / (1.0 - eff)
        if argument <= 0.0:
            raise HeatExchangerError("Non-positive NTU log argument")
        NTU = math.log(argument) / (1.0 - C_R)
    else:
        NTU = eff / (1.0 - eff)
    return NTU * C_min
