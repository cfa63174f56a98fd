"""Nested recuperator temperature loops shared by design and off-design.

The outer loop iterates the HT recuperator hot outlet temperature (node 8),
the inner loop the LT recuperator hot outlet temperature (node 9), until the
conductance each recuperator needs matches its available conductance.  The
state of the recompressor branch and the mass flows at a given T9 differ
between design and off-design and are supplied by a ``low_side`` callback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sco2_cycle.core.errors import ErrorCode, SecondLawViolation
from sco2_cycle.core.fluids import Fluid, ThermoState
from sco2_cycle.cycle.components.heat_exchanger import calculate_ua
from sco2_cycle.cycle.root_finding import Trial, bracketed_secant
from sco2_cycle.utils.constants import MIN_APPROACH, ZERO_FRACTION, ZERO_UA

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LowSide:
    """Recompressor branch and flows for one T9 guess."""

    state9: ThermoState
    state10: ThermoState
    m_dot_t: float  # kg/s
    m_dot_mc: float  # kg/s
    m_dot_rc: float  # kg/s
    w_rc: float  # J/kg
    rc_result: Any = None


@dataclass(frozen=True)
class RecuperatorPressures:
    """Nominal node pressures the recuperator loops need [Pa]."""

    P2: float
    P3: float
    P4: float
    P5: float
    P7: float
    P8: float
    P9: float


@dataclass(frozen=True)
class RecuperatorSolution:
    """Converged recuperator states and duties."""

    state3: ThermoState
    state4: ThermoState
    state5: ThermoState
    state8: ThermoState
    low: LowSide
    Q_dot_LT: float  # W
    Q_dot_HT: float  # W
    UA_LT: float  # W/K, achieved
    UA_HT: float  # W/K, achieved
    min_dT_LT: float  # K
    min_dT_HT: float  # K
    m_dot_HT_cold: float  # kg/s


@dataclass(frozen=True)
class _LowTemperatureResult:
    low: LowSide
    Q_dot: float
    UA: float
    min_dT: float


@dataclass(frozen=True)
class _HighTemperatureResult:
    lt: _LowTemperatureResult
    state3: ThermoState
    state4: ThermoState
    state8: ThermoState
    Q_dot: float
    UA: float
    min_dT: float


def ua_trial(UA_target: float, UA_calc: float, min_dT: float, tol: float, payload: Any) -> Trial:
    """Classify a conductance mismatch for the temperature loops.

    The residual is ``UA_target - UA_calc``; a positive residual means the
    guessed hot outlet temperature is too high.  An exchanger already pinched
    to a vanishing approach counts as converged even when short of its target.
    """
    residual = UA_target - UA_calc
    if abs(residual) < ZERO_UA:
        return Trial.converged(payload, residual)
    if residual < 0.0:
        if abs(residual) / UA_target < tol:
            return Trial.converged(payload, residual)
    elif residual / UA_target < tol or min_dT < MIN_APPROACH:
        return Trial.converged(payload, residual)
    return Trial.of(residual, payload)


def solve_recuperators(
    fluid: Fluid,
    *,
    state2: ThermoState,
    state7: ThermoState,
    pressures: RecuperatorPressures,
    UA_LT: float,
    UA_HT: float,
    recomp_frac: float,
    n_sub: int,
    tol: float,
    max_iter: int,
    low_side: Callable[[float], LowSide],
    ht_cold_fraction: float = 1.0,
) -> RecuperatorSolution:
    """Solve nodes 3, 4, 5, 8, 9 and 10 for the given recuperator conductances.

    Args:
        fluid: Property oracle.
        state2: Main compressor outlet.
        state7: Turbine outlet.
        pressures: Recuperator node pressures.
        UA_LT: Available LT recuperator conductance [W/K].
        UA_HT: Available HT recuperator conductance [W/K].
        recomp_frac: Recompressed fraction of the turbine flow.
        n_sub: Sub-heat-exchangers per recuperator.
        tol: Relative conductance tolerance.
        max_iter: Iteration cap of each loop.
        low_side: Maps a T9 guess to the recompressor branch and flows.
        ht_cold_fraction: Share of the turbine flow on the HT cold side.

    Raises:
        ConvergenceError: code 31 (T9) or 35 (T8) on exhaustion.
    """
    P = pressures
    T2, T7 = state2.temperature, state7.temperature
    has_lt = UA_LT >= ZERO_UA
    has_ht = UA_HT >= ZERO_UA

    def solve_low_temperature(state8: ThermoState) -> _LowTemperatureResult:
        T8 = state8.temperature

        def evaluate_T9(T9: float) -> Trial:
            low = low_side(T9)
            Q_dot = low.m_dot_t * (state8.enthalpy - low.state9.enthalpy) if has_lt else 0.0
            try:
                UA_calc, min_dT = calculate_ua(
                    fluid, n_sub, Q_dot, low.m_dot_mc, low.m_dot_t,
                    T2, T8, P.P2, P.P3, P.P8, P.P9,
                )
            except SecondLawViolation:
                return Trial.too_low()
            return ua_trial(UA_LT, UA_calc, min_dT, tol, _LowTemperatureResult(low, Q_dot, UA_calc, min_dT))

        if has_lt:
            x0, lower, upper, last_r = 0.5 * (T2 + T8), T2, T8, UA_LT
        else:
            x0, lower, upper, last_r = T8, T8, T8, 0.0
        return bracketed_secant(
            evaluate_T9, x0, lower, upper,
            last_x=T8, last_residual=last_r, max_iter=max_iter,
            error_code=ErrorCode.T9_NOT_CONVERGED, label="T9",
        ).payload

    def evaluate_T8(T8: float) -> Trial:
        state8 = fluid.state_TP(T8, P.P8)
        lt = solve_low_temperature(state8)
        low = lt.low

        state3 = fluid.state_PH(P.P3, state2.enthalpy + lt.Q_dot / low.m_dot_mc)
        if recomp_frac >= ZERO_FRACTION:
            h4 = (1.0 - recomp_frac) * state3.enthalpy + recomp_frac * low.state10.enthalpy
            state4 = fluid.state_PH(P.P4, h4)
        else:
            state4 = state3
        if state4.temperature >= T8:
            return Trial.too_low()

        Q_dot = low.m_dot_t * (state7.enthalpy - state8.enthalpy) if has_ht else 0.0
        try:
            UA_calc, min_dT = calculate_ua(
                fluid, n_sub, Q_dot, ht_cold_fraction * low.m_dot_t, low.m_dot_t,
                state4.temperature, T7, P.P4, P.P5, P.P7, P.P8,
            )
        except SecondLawViolation:
            return Trial.too_low()
        payload = _HighTemperatureResult(lt, state3, state4, state8, Q_dot, UA_calc, min_dT)
        return ua_trial(UA_HT, UA_calc, min_dT, tol, payload)

    if has_ht:
        x0, lower, upper, last_r = 0.5 * (T2 + T7), T2, T7, UA_HT
    else:
        x0, lower, upper, last_r = T7, T7, T7, 0.0
    ht: _HighTemperatureResult = bracketed_secant(
        evaluate_T8, x0, lower, upper,
        last_x=T7, last_residual=last_r, max_iter=max_iter,
        error_code=ErrorCode.T8_NOT_CONVERGED, label="T8",
    ).payload

    low = ht.lt.low
    m_dot_HT_cold = ht_cold_fraction * low.m_dot_t
    state5 = fluid.state_PH(P.P5, ht.state4.enthalpy + ht.Q_dot / m_dot_HT_cold)
    return RecuperatorSolution(
        state3=ht.state3,
        state4=ht.state4,
        state5=state5,
        state8=ht.state8,
        low=low,
        Q_dot_LT=ht.lt.Q_dot,
        Q_dot_HT=ht.Q_dot,
        UA_LT=ht.lt.UA,
        UA_HT=ht.UA,
        min_dT_LT=ht.lt.min_dT,
        min_dT_HT=ht.min_dT,
        m_dot_HT_cold=m_dot_HT_cold,
    )
