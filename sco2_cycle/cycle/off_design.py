"""Off-design solution of a sized recompression cycle.

The turbine flow is unknown off-design: it is iterated until the flow the
turbine can swallow at the pressures set by the main compressor matches the
flow pushed through it.  The recuperator temperature loops then run with
conductances and pressure drops scaled to the converged flows.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sco2_cycle.core.errors import (
    CompressorOperatingError,
    CycleError,
    ErrorCode,
    InputValidationError,
)
from sco2_cycle.core.fluids import Fluid, ThermoState
from sco2_cycle.cycle.components.compressor import Compressor, CompressorOffDesign
from sco2_cycle.cycle.components.recompressor import Recompressor, RecompressorOffDesign
from sco2_cycle.cycle.components.turbine import Turbine, TurbineOffDesign
from sco2_cycle.cycle.design import N_NODES, DesignSolved
from sco2_cycle.cycle.parameters import OffDesignParameters, validate_off_design_parameters
from sco2_cycle.cycle.recuperators import LowSide, RecuperatorPressures, solve_recuperators
from sco2_cycle.cycle.root_finding import Trial, bracketed_secant
from sco2_cycle.utils.constants import PHI_DESIGN, PHI_MAX, RPM_TO_RAD_S, ZERO_FRACTION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OffDesignSolved:
    """Converged off-design operating point."""

    parameters: OffDesignParameters
    states: tuple[ThermoState, ...]  # nodes 1..10
    m_dot_t: float  # kg/s
    m_dot_mc: float  # kg/s
    m_dot_rc: float  # kg/s
    W_dot_net: float  # W
    eta_thermal: float
    Q_dot_PHX: float  # W
    N_mc: float  # rpm
    N_t: float  # rpm
    compressor: CompressorOffDesign
    turbine: TurbineOffDesign
    recompressor: RecompressorOffDesign | None
    UA_LT: float  # W/K, flow-scaled
    UA_HT: float  # W/K, flow-scaled
    Q_dot_LT: float  # W
    Q_dot_HT: float  # W
    min_dT_LT: float  # K
    min_dT_HT: float  # K

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
        return self.parameters.recomp_frac

    @property
    def surge(self) -> bool:
        """Any compressor operating below its surge flow coefficient."""
        return self.compressor.surge or bool(self.recompressor and self.recompressor.surge)

    def summary(self) -> dict[str, Any]:
        return {
            "W_dot_net": self.W_dot_net,
            "eta_thermal": self.eta_thermal,
            "Q_dot_PHX": self.Q_dot_PHX,
            "m_dot_t": self.m_dot_t,
            "m_dot_mc": self.m_dot_mc,
            "m_dot_rc": self.m_dot_rc,
            "recomp_frac": self.recomp_frac,
            "N_mc": self.N_mc,
            "N_t": self.N_t,
            "T": self.temperatures,
            "P": self.pressures,
            "surge": self.surge,
            "compressor": asdict(self.compressor),
            "turbine": asdict(self.turbine),
            "recompressor": asdict(self.recompressor) if self.recompressor else None,
        }


@dataclass(frozen=True)
class _FlowBalance:
    m_dot_t: float
    compressor: CompressorOffDesign
    turbine: TurbineOffDesign
    pressures: list[float]


def off_design_core(
    fluid: Fluid,
    params: OffDesignParameters,
    design: DesignSolved,
    max_iter: int = 100,
) -> OffDesignSolved:
    """Solve the cycle at an off-design operating point.

    Args:
        fluid: Property oracle.
        params: Operating point; ``N_t <= 0`` runs the turbine at ``N_mc``.
        design: Sized design the machines and heat exchangers refer to.
        max_iter: Iteration cap of the mass-flow and temperature loops.

    Raises:
        InputValidationError: invalid parameters (code -1).
        ConvergenceError: mass flow (42), T8 (35) or T9 (31) loop exhausted.
        CycleError: component or property failures.
    """
    validation = validate_off_design_parameters(params)
    if not validation.is_valid:
        raise InputValidationError(f"Invalid off-design parameters: {validation.summary()}", validation)

    f = params.recomp_frac
    has_rc = f >= ZERO_FRACTION
    if has_rc and design.recompressor is None:
        raise CycleError(
            f"Recompression fraction {f:.4g} requested but the design has no recompressor",
            ErrorCode.INVALID_INPUT,
        )
    N_t = params.N_t if params.N_t > 0.0 else params.N_mc

    point = design.point
    compressor = Compressor(fluid, design.compressor)
    turbine = Turbine(fluid, design.turbine)
    recompressor = Recompressor(fluid, design.recompressor) if has_rc else None
    LT, HT, PHX, PC = point.LT, point.HT, point.PHX, point.PC
    P1 = params.P_mc_in

    def evaluate(m_dot_t: float) -> Trial:
        m_dot_mc = m_dot_t * (1.0 - f)
        try:
            mc = compressor.off_design(params.T_mc_in, P1, m_dot_mc, params.N_mc)
        except CompressorOperatingError as exc:
            if exc.code == ErrorCode.COMPRESSOR_INFEASIBLE:
                return Trial.too_high()
            if exc.code == ErrorCode.COMPRESSOR_OUTLET_OUT_OF_RANGE:
                return Trial.too_low()
            raise

        dp_LT = LT.pressure_drops(m_dot_mc, m_dot_t)
        dp_HT = HT.pressure_drops(m_dot_t, m_dot_t)
        dp_PHX = PHX.pressure_drops(m_dot_t, 0.0)
        dp_PC = PC.pressure_drops(0.0, m_dot_mc)

        P = [0.0] * N_NODES
        P[0] = P1
        P[1] = mc.P_out
        P[2] = P[1] - dp_LT[0]
        P[3] = P[9] = P[2]
        P[4] = P[3] - dp_HT[0]
        P[5] = P[4] - dp_PHX[0]
        P[8] = P[0] + dp_PC[1]
        P[7] = P[8] + dp_LT[1]
        P[6] = P[7] + dp_HT[1]

        t = turbine.off_design(params.T_t_in, P[5], P[6], N_t)
        residual = m_dot_t - t.m_dot
        payload = _FlowBalance(m_dot_t, mc, t, P)
        if abs(residual) / m_dot_t < params.tol:
            return Trial.converged(payload, residual)
        return Trial.of(residual, payload)

    inlet = fluid.state_TP(params.T_mc_in, P1)
    U_tip = design.compressor.D_rotor * 0.5 * params.N_mc * RPM_TO_RAD_S
    partial_phi = inlet.density * design.compressor.D_rotor**2 * U_tip
    flow: _FlowBalance = bracketed_secant(
        evaluate,
        PHI_DESIGN * partial_phi / (1.0 - f),
        0.0,
        1.2 * PHI_MAX * partial_phi / (1.0 - f),
        last_x=-999.9,
        max_iter=max_iter,
        bisect_first=True,
        error_code=ErrorCode.MASS_FLOW_NOT_CONVERGED,
        label="turbine mass flow",
    ).payload

    m_dot_t = flow.m_dot_t
    m_dot_mc = m_dot_t * (1.0 - f)
    m_dot_rc = m_dot_t * f
    P = flow.pressures
    state1 = inlet
    state2 = fluid.state_TP(flow.compressor.T_out, P[1])
    state6 = fluid.state_TP(params.T_t_in, P[5])
    state7 = fluid.state_TP(flow.turbine.T_out, P[6])

    def low_side(T9: float) -> LowSide:
        state9 = fluid.state_TP(T9, P[8])
        rc = None
        if recompressor is not None:
            rc = recompressor.off_design(T9, P[8], m_dot_rc, P[9])
            state10 = fluid.state_PH(P[9], rc.h_out)
            w_rc = state9.enthalpy - state10.enthalpy
        else:
            state10, w_rc = state9, 0.0
        return LowSide(state9, state10, m_dot_t, m_dot_mc, m_dot_rc, w_rc, rc)

    UA_LT = LT.conductance(m_dot_mc, m_dot_t)
    UA_HT = HT.conductance(m_dot_t, m_dot_t)
    rec = solve_recuperators(
        fluid,
        state2=state2,
        state7=state7,
        pressures=RecuperatorPressures(
            P2=P[1], P3=P[2], P4=P[3], P5=P[4], P7=P[6], P8=P[7], P9=P[8]
        ),
        UA_LT=UA_LT,
        UA_HT=UA_HT,
        recomp_frac=f,
        n_sub=params.N_sub_hxrs,
        tol=params.tol,
        max_iter=max_iter,
        low_side=low_side,
    )

    low = rec.low
    states = (
        state1, state2, rec.state3, rec.state4, rec.state5,
        state6, state7, rec.state8, low.state9, low.state10,
    )
    w_mc = state1.enthalpy - state2.enthalpy
    w_t = state6.enthalpy - state7.enthalpy
    w_rc = low.w_rc if f > 0.0 else 0.0
    Q_dot_PHX = m_dot_t * (state6.enthalpy - rec.state5.enthalpy)
    W_dot_net = w_mc * m_dot_mc + w_rc * m_dot_rc + w_t * m_dot_t

    solved = OffDesignSolved(
        parameters=params,
        states=states,
        m_dot_t=m_dot_t,
        m_dot_mc=m_dot_mc,
        m_dot_rc=m_dot_rc,
        W_dot_net=W_dot_net,
        eta_thermal=W_dot_net / Q_dot_PHX,
        Q_dot_PHX=Q_dot_PHX,
        N_mc=params.N_mc,
        N_t=N_t,
        compressor=flow.compressor,
        turbine=flow.turbine,
        recompressor=low.rc_result,
        UA_LT=UA_LT,
        UA_HT=UA_HT,
        Q_dot_LT=rec.Q_dot_LT,
        Q_dot_HT=rec.Q_dot_HT,
        min_dT_LT=rec.min_dT_LT,
        min_dT_HT=rec.min_dT_HT,
    )
    logger.debug(
        "Off-design converged: P_in=%.4g Pa, m_t=%.4g kg/s, W=%.4g W, eta=%.4f",
        P1, m_dot_t, W_dot_net, solved.eta_thermal,
    )
    return solved
