"""Design-point solution of the recompression cycle.

:func:`design_core` fixes the node pressures from the pressure-drop
specifications, converts efficiencies, derives the turbine flow from the
net-power target and closes both recuperators.  :func:`finalize_design` then
sizes the turbomachinery for the converged state vector.

Node numbering::

    1 main compressor inlet      6 turbine inlet
    2 main compressor outlet     7 turbine outlet
    3 LT recuperator cold outlet 8 HT recuperator hot outlet
    4 mixing point outlet        9 LT recuperator hot outlet
    5 HT recuperator cold outlet 10 recompressor outlet
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from sco2_cycle.core.errors import InfeasibleCycleError, InputValidationError
from sco2_cycle.core.fluids import Fluid, ThermoState
from sco2_cycle.cycle.components.compressor import Compressor, CompressorDesign
from sco2_cycle.cycle.components.heat_exchanger import HeatExchangerDesign
from sco2_cycle.cycle.components.recompressor import Recompressor, RecompressorDesign
from sco2_cycle.cycle.components.turbine import Turbine, TurbineDesign
from sco2_cycle.cycle.components.turbomachinery import resolve_efficiency, turbomachinery_outlet
from sco2_cycle.cycle.parameters import (
    DesignParameters,
    OffDesignParameters,
    PressureDrop,
    validate_design_parameters,
)
from sco2_cycle.cycle.recuperators import (
    LowSide,
    RecuperatorPressures,
    RecuperatorSolution,
    solve_recuperators,
)
from sco2_cycle.cycle.topology import CycleBalance, StandardTopology, Topology
from sco2_cycle.utils.constants import MIN_SIZED_RECOMP_FRACTION, ZERO_DUTY, ZERO_FRACTION, ZERO_UA

logger = logging.getLogger(__name__)

N_NODES = 10


@dataclass(frozen=True)
class DesignPoint:
    """Converged design-point state vector before turbomachinery sizing."""

    parameters: DesignParameters
    topology: str
    states: tuple[ThermoState, ...]  # nodes 1..10
    m_dot_t: float  # kg/s
    m_dot_mc: float  # kg/s
    m_dot_rc: float  # kg/s
    w_mc: float  # J/kg
    w_rc: float  # J/kg
    w_t: float  # J/kg
    W_dot_net: float  # W
    eta_thermal: float
    Q_dot_PHX: float  # W
    LT: HeatExchangerDesign
    HT: HeatExchangerDesign
    PHX: HeatExchangerDesign
    PC: HeatExchangerDesign
    extras: dict[str, float] = field(default_factory=dict)

    def state(self, node: int) -> ThermoState:
        return self.states[node - 1]

    @property
    def temperatures(self) -> list[float]:
        return [s.temperature for s in self.states]

    @property
    def pressures(self) -> list[float]:
        return [s.pressure for s in self.states]

    @property
    def recomp_frac(self) -> float:
        return self.m_dot_rc / self.m_dot_t if self.m_dot_t > 0.0 else 0.0


@dataclass(frozen=True)
class DesignSolved:
    """Sized design point: state vector plus turbomachinery geometry."""

    point: DesignPoint
    compressor: CompressorDesign
    turbine: TurbineDesign
    recompressor: RecompressorDesign | None = None

    @property
    def has_recompressor(self) -> bool:
        return self.recompressor is not None

    @property
    def parameters(self) -> DesignParameters:
        return self.point.parameters

    @property
    def eta_thermal(self) -> float:
        return self.point.eta_thermal

    @property
    def W_dot_net(self) -> float:
        return self.point.W_dot_net

    @property
    def states(self) -> tuple[ThermoState, ...]:
        return self.point.states

    def summary(self) -> dict[str, Any]:
        """Plain-dictionary summary for reports and project files."""
        p = self.point
        data: dict[str, Any] = {
            "topology": p.topology,
            "W_dot_net": p.W_dot_net,
            "eta_thermal": p.eta_thermal,
            "Q_dot_PHX": p.Q_dot_PHX,
            "m_dot_t": p.m_dot_t,
            "m_dot_mc": p.m_dot_mc,
            "m_dot_rc": p.m_dot_rc,
            "recomp_frac": p.recomp_frac,
            "T": p.temperatures,
            "P": p.pressures,
            "h": [s.enthalpy for s in p.states],
            "s": [s.entropy for s in p.states],
            "rho": [s.density for s in p.states],
            "UA_LT": p.LT.UA_design,
            "UA_HT": p.HT.UA_design,
            "Q_dot_LT": p.LT.Q_dot_design,
            "Q_dot_HT": p.HT.Q_dot_design,
            "min_dT_LT": p.LT.min_dT,
            "min_dT_HT": p.HT.min_dT,
            "compressor": asdict(self.compressor),
            "turbine": asdict(self.turbine),
            "recompressor": asdict(self.recompressor) if self.recompressor else None,
        }
        data.update(p.extras)
        return data


# --- Pressures ---


def _drop_downstream(P_in: float, drop: float) -> float:
    """Outlet pressure of a cold-side passage."""
    return P_in - P_in * abs(drop) if drop < 0.0 else P_in - drop


def _drop_upstream(P_out: float, drop: float) -> float:
    """Inlet pressure of a hot-side passage."""
    return P_out / (1.0 - abs(drop)) if drop < 0.0 else P_out + drop


def design_pressures(params: DesignParameters) -> list[float]:
    """Node pressures [Pa] (index 0 is node 1)."""
    has_lt = params.UA_LT >= ZERO_UA
    has_ht = params.UA_HT >= ZERO_UA
    P = [0.0] * N_NODES
    P[0] = params.P_mc_in
    P[1] = params.P_mc_out

    P[2] = _drop_downstream(P[1], params.DP_LT[0]) if has_lt else P[1]
    P[3] = P[9] = P[2]
    P[4] = _drop_downstream(P[3], params.DP_HT[0]) if has_ht else P[3]
    P[5] = _drop_downstream(P[4], params.DP_PHX[0])

    P[8] = _drop_upstream(P[0], params.DP_PC[1])
    P[7] = _drop_upstream(P[8], params.DP_LT[1]) if has_lt else P[8]
    P[6] = _drop_upstream(P[7], params.DP_HT[1]) if has_ht else P[7]
    return P


# --- Heat-exchanger records ---


def _effectiveness(
    Q_dot: float,
    cold_in: ThermoState,
    cold_out: ThermoState,
    m_dot_cold: float,
    hot_in: ThermoState,
    hot_out: ThermoState,
    m_dot_hot: float,
) -> float:
    if Q_dot <= ZERO_DUTY:
        return 0.0
    C_cold = m_dot_cold * _mean_cp(cold_in, cold_out)
    C_hot = m_dot_hot * _mean_cp(hot_in, hot_out)
    return Q_dot / (min(C_cold, C_hot) * (hot_in.temperature - cold_in.temperature))


def _mean_cp(a: ThermoState, b: ThermoState) -> float:
    return (b.enthalpy - a.enthalpy) / (b.temperature - a.temperature)


def _recuperator_record(
    dp: PressureDrop,
    m_dot: PressureDrop,
    UA: float,
    Q_dot: float,
    min_dT: float,
    n_sub: int,
    cold: tuple[ThermoState, ThermoState],
    hot: tuple[ThermoState, ThermoState],
) -> HeatExchangerDesign:
    return HeatExchangerDesign(
        dp_design=dp,
        m_dot_design=m_dot,
        UA_design=UA,
        Q_dot_design=Q_dot,
        effectiveness=_effectiveness(Q_dot, cold[0], cold[1], m_dot[0], hot[0], hot[1], m_dot[1]),
        min_dT=min_dT,
        n_sub=n_sub,
    )


# --- Design core ---


def design_core(
    fluid: Fluid,
    params: DesignParameters,
    topology: Topology | None = None,
    max_iter: int = 500,
) -> DesignPoint:
    """Solve the design-point state vector.

    Args:
        fluid: Property oracle.
        params: Design parameters.
        topology: Cycle topology; the standard recompression cycle by default.
        max_iter: Iteration cap of each temperature loop.

    Raises:
        InputValidationError: invalid parameters (code -1).
        InfeasibleCycleError: no positive net power (25) or negative flow (29).
        ConvergenceError: a temperature loop exhausted (31, 35).
        CycleError: component or property failures.
    """
    validation = validate_design_parameters(params)
    if not validation.is_valid:
        raise InputValidationError(f"Invalid design parameters: {validation.summary()}", validation)
    topology = topology or StandardTopology()

    P = design_pressures(params)
    f = params.recomp_frac
    has_rc = f >= ZERO_FRACTION

    eta_mc = resolve_efficiency(fluid, params.eta_mc, params.T_mc_in, P[0], P[1], True)
    mc = turbomachinery_outlet(fluid, params.T_mc_in, P[0], P[1], eta_mc, True)
    eta_t = resolve_efficiency(fluid, params.eta_t, params.T_t_in, P[5], P[6], False)
    t = turbomachinery_outlet(fluid, params.T_t_in, P[5], P[6], eta_t, False)

    w_rc = 0.0
    if has_rc:
        T2 = mc.outlet.temperature
        eta_rc = resolve_efficiency(fluid, params.eta_rc, T2, P[8], P[9], True)
        w_rc = turbomachinery_outlet(fluid, T2, P[8], P[9], eta_rc, True).specific_work
    if mc.specific_work + w_rc + t.specific_work <= 0.0:
        raise InfeasibleCycleError(
            f"No positive net power: w_mc={mc.specific_work:.4g}, w_rc={w_rc:.4g}, "
            f"w_t={t.specific_work:.4g} J/kg"
        )

    def low_side(T9: float) -> LowSide:
        if has_rc:
            eta = resolve_efficiency(fluid, params.eta_rc, T9, P[8], P[9], True)
            rc = turbomachinery_outlet(fluid, T9, P[8], P[9], eta, True)
            state9, state10, w = rc.inlet, rc.outlet, rc.specific_work
        else:
            state9 = fluid.state_TP(T9, P[8])
            state10, w = state9, 0.0
        m_dot_t = topology.turbine_mass_flow(params.W_dot_net, f, mc.specific_work, w, t.specific_work)
        m_dot_rc = m_dot_t * f
        return LowSide(state9, state10, m_dot_t, m_dot_t - m_dot_rc, m_dot_rc, w)

    def run(bypass_fraction: float) -> DesignPoint:
        rec = solve_recuperators(
            fluid,
            state2=mc.outlet,
            state7=t.outlet,
            pressures=RecuperatorPressures(
                P2=P[1], P3=P[2], P4=P[3], P5=P[4], P7=P[6], P8=P[7], P9=P[8]
            ),
            UA_LT=params.UA_LT,
            UA_HT=params.UA_HT,
            recomp_frac=f,
            n_sub=params.N_sub_hxrs,
            tol=params.tol,
            max_iter=max_iter,
            low_side=low_side,
            ht_cold_fraction=topology.ht_cold_fraction(bypass_fraction),
        )
        return _assemble(params, topology, P, mc.inlet, mc.outlet, t.inlet, t.outlet,
                         mc.specific_work, t.specific_work, rec, bypass_fraction)

    point = topology.solve(run)
    logger.debug(
        "Design converged (%s): W=%.4g W, eta=%.4f, m_t=%.4g kg/s",
        topology.name, point.W_dot_net, point.eta_thermal, point.m_dot_t,
    )
    return point


def _assemble(
    params: DesignParameters,
    topology: Topology,
    P: list[float],
    state1: ThermoState,
    state2: ThermoState,
    state6: ThermoState,
    state7: ThermoState,
    w_mc: float,
    w_t: float,
    rec: RecuperatorSolution,
    bypass_fraction: float,
) -> DesignPoint:
    low = rec.low
    states = (
        state1, state2, rec.state3, rec.state4, rec.state5,
        state6, state7, rec.state8, low.state9, low.state10,
    )
    Q_dot_PHX = low.m_dot_t * (state6.enthalpy - rec.state5.enthalpy)
    Q_dot_PC = low.m_dot_mc * (low.state9.enthalpy - state1.enthalpy)
    n_sub = params.N_sub_hxrs

    LT = _recuperator_record(
        (P[1] - P[2], P[7] - P[8]),
        (low.m_dot_mc, low.m_dot_t),
        rec.UA_LT, rec.Q_dot_LT, rec.min_dT_LT, n_sub,
        cold=(state2, rec.state3), hot=(rec.state8, low.state9),
    )
    HT = _recuperator_record(
        (P[3] - P[4], P[6] - P[7]),
        (rec.m_dot_HT_cold, low.m_dot_t),
        rec.UA_HT, rec.Q_dot_HT, rec.min_dT_HT, n_sub,
        cold=(rec.state4, rec.state5), hot=(state7, rec.state8),
    )
    PHX = HeatExchangerDesign(
        dp_design=(P[4] - P[5], 0.0),
        m_dot_design=(low.m_dot_t, 0.0),
        Q_dot_design=Q_dot_PHX,
    )
    PC = HeatExchangerDesign(
        dp_design=(0.0, P[8] - P[0]),
        m_dot_design=(0.0, low.m_dot_mc),
        Q_dot_design=Q_dot_PC,
    )

    balance = CycleBalance(
        states=states,
        m_dot_t=low.m_dot_t,
        m_dot_mc=low.m_dot_mc,
        m_dot_rc=low.m_dot_rc,
        w_mc=w_mc,
        w_rc=low.w_rc,
        w_t=w_t,
        Q_dot_PHX=Q_dot_PHX,
        recomp_frac=params.recomp_frac,
        bypass_fraction=bypass_fraction,
        tol=params.tol,
    )
    perf = topology.performance(balance)
    return DesignPoint(
        parameters=params,
        topology=topology.name,
        states=states,
        m_dot_t=low.m_dot_t,
        m_dot_mc=low.m_dot_mc,
        m_dot_rc=low.m_dot_rc,
        w_mc=w_mc,
        w_rc=low.w_rc,
        w_t=w_t,
        W_dot_net=perf.W_dot_net,
        eta_thermal=perf.eta_thermal,
        Q_dot_PHX=Q_dot_PHX,
        LT=LT,
        HT=HT,
        PHX=PHX,
        PC=PC,
        extras=perf.extras,
    )


def finalize_design(fluid: Fluid, point: DesignPoint) -> DesignSolved:
    """Size the turbomachinery for a converged design point.

    The recompressor is sized only when more than
    ``MIN_SIZED_RECOMP_FRACTION`` of the flow is recompressed.
    """
    compressor = Compressor(fluid).size(point.state(1), point.state(2), point.m_dot_mc)

    recompressor = None
    if point.parameters.recomp_frac > MIN_SIZED_RECOMP_FRACTION:
        recompressor = Recompressor(fluid).size(point.state(9), point.state(10), point.m_dot_rc)

    turbine = Turbine(fluid).size(
        point.state(6),
        point.state(7),
        point.m_dot_t,
        point.parameters.N_turbine,
        compressor.N_design,
    )
    return DesignSolved(point=point, compressor=compressor, turbine=turbine, recompressor=recompressor)


def off_design_parameters_at_design(solved: DesignSolved) -> OffDesignParameters:
    """Off-design parameters that reproduce the design operating point.

    A design too lightly recompressed to size a recompressor runs with the
    recompression branch closed.
    """
    params = solved.parameters
    recomp_frac = solved.point.recomp_frac if solved.recompressor is not None else 0.0
    return OffDesignParameters(
        T_mc_in=params.T_mc_in,
        T_t_in=params.T_t_in,
        P_mc_in=params.P_mc_in,
        recomp_frac=recomp_frac,
        N_mc=solved.compressor.N_design,
        N_t=solved.turbine.N_design,
        N_sub_hxrs=params.N_sub_hxrs,
        tol=params.tol,
    )
