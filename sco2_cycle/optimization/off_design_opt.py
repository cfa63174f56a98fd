"""Off-design drivers.

- :func:`target_off_design` finds the compressor inlet pressure at which
  the sized cycle delivers a target net power (or absorbs a target heat).
- :func:`optimal_off_design` maximises net power or efficiency over inlet
  pressure, recompression fraction and shaft speeds.
- :func:`max_output_off_design` repeats the optimal off-design search from
  increasing start pressures to find the largest achievable output.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace

import numpy as np

from sco2_cycle.core.errors import CycleError, ErrorCode, InputValidationError
from sco2_cycle.core.fluids import Fluid
from sco2_cycle.cycle.design import DesignSolved
from sco2_cycle.cycle.off_design import OffDesignSolved, off_design_core
from sco2_cycle.cycle.parameters import (
    MaxOutputParameters,
    OffDesignParameters,
    OptimalOffDesignParameters,
    TargetOffDesignParameters,
    validate_target_off_design_parameters,
)
from sco2_cycle.cycle.root_finding import Trial, bracketed_secant
from sco2_cycle.optimization.optimizer import BestSoFar, DesignVariable, maximize_bounded

logger = logging.getLogger(__name__)

P_SEARCH_CAP = 12.0e6  # Pa
P_MIN = 1.0e5  # Pa
P_BRACKET_TOL = 100.0  # Pa
OVERPRESSURE_PENALTY = 5.0


def _target_value(solved: OffDesignSolved, is_target_Q: bool) -> float:
    return solved.Q_dot_PHX if is_target_Q else solved.W_dot_net


def _target_label(is_target_Q: bool) -> str:
    return "heat input" if is_target_Q else "net power"


def target_off_design(
    fluid: Fluid,
    params: TargetOffDesignParameters,
    design: DesignSolved,
    max_iter: int = 100,
    rng: np.random.Generator | None = None,
) -> OffDesignSolved:
    """Compressor inlet pressure that meets a power (or heat input) target.

    A grid of inlet pressures brackets the target, then the shared root finder
    refines it; failing trials retry at a random pressure inside the bracket.

    Raises:
        InputValidationError: non-positive target or empty pressure range.
        CycleError: code 26 when the grid does not bracket the target.
        ConvergenceError: code 82 when the refinement exhausts.
    """
    validation = validate_target_off_design_parameters(params)
    if not validation.is_valid:
        raise InputValidationError(f"Invalid target search: {validation.summary()}", validation)

    intervals = 20 if params.use_default_res else 50
    P_low = params.lowest_pressure
    P_high = min(params.highest_pressure, P_SEARCH_CAP)
    grid = np.linspace(P_low, P_high, intervals + 1)
    P_limit = 1.2 * design.parameters.P_high_limit

    left_residual, right_residual = -1.0e12, 1.0e12
    lower_found = upper_found = False
    for P_guess in grid:
        try:
            solved = off_design_core(fluid, params.at_pressure(float(P_guess)), design, max_iter)
        except CycleError as exc:
            logger.debug("Target scan at %.4g Pa failed: %s", P_guess, exc)
            continue
        if solved.state(2).pressure > P_limit:
            break
        residual = _target_value(solved, params.is_target_Q) - params.target
        if residual >= 0.0:
            if residual < right_residual:
                P_high, right_residual, upper_found = float(P_guess), residual, True
        elif residual > left_residual:
            P_low, left_residual, lower_found = float(P_guess), residual, True
        if lower_found and upper_found:
            break

    if not (lower_found and upper_found):
        raise CycleError(
            f"Target {_target_label(params.is_target_Q)} of {params.target:.4g} W not bracketed between "
            f"{params.lowest_pressure:.4g} and {min(params.highest_pressure, P_SEARCH_CAP):.4g} Pa",
            ErrorCode.TARGET_NOT_BRACKETED,
        )

    def evaluate(P_mc_in: float) -> Trial:
        try:
            solved = off_design_core(fluid, params.at_pressure(P_mc_in), design, max_iter)
        except CycleError as exc:
            logger.debug("Target refinement at %.4g Pa failed: %s", P_mc_in, exc)
            return Trial.retry()
        residual = _target_value(solved, params.is_target_Q) - params.target
        if abs(residual) / params.target <= params.tol:
            return Trial.converged(solved, residual)
        return Trial.of(residual, solved)

    result = bracketed_secant(
        evaluate,
        0.5 * (P_low + P_high),
        P_low,
        P_high,
        last_x=1.0e12,
        last_residual=1.23,
        max_iter=max_iter,
        x_tolerance=P_BRACKET_TOL,
        error_code=ErrorCode.TARGET_NOT_CONVERGED,
        rng=rng,
        label="target compressor inlet pressure",
    )
    logger.info("Target off-design met at P_mc_in=%.5g Pa after %d iterations", result.x, result.iterations)
    return result.payload


class OffDesignPointObjective:
    """Net power or efficiency of the sized cycle as a function of its controls.

    Points whose compressor outlet exceeds the high-pressure limit are
    penalised in proportion to the excess; failing points score 0.
    """

    def __init__(
        self,
        fluid: Fluid,
        params: OptimalOffDesignParameters,
        design: DesignSolved,
        max_iter: int = 100,
        best: BestSoFar[OffDesignSolved] | None = None,
    ):
        self.fluid = fluid
        self.params = params
        self.design = design
        self.max_iter = max_iter
        self.best: BestSoFar[OffDesignSolved] = best if best is not None else BestSoFar()

    def variables(self) -> list[DesignVariable]:
        p = self.params
        variables = []
        if not p.fixed_P_mc_in:
            variables.append(
                DesignVariable("P_mc_in", p.P_mc_in_guess, P_MIN, self.design.parameters.P_high_limit, 5.0e4, "Pa")
            )
        if not p.fixed_recomp_frac:
            variables.append(DesignVariable("recomp_frac", p.recomp_frac_guess, 0.0, 1.0, 0.05))
        if not p.fixed_N_mc:
            variables.append(DesignVariable("N_mc", p.N_mc_guess, 1.0, math.inf, 0.25 * p.N_mc_guess, "rpm"))
        if not p.fixed_N_t:
            variables.append(DesignVariable("N_t", p.N_t_guess, 1.0, math.inf, 100.0, "rpm"))
        return variables

    def off_design_parameters(self, x: dict[str, float]) -> OffDesignParameters:
        p = self.params
        N_mc = x.get("N_mc", p.N_mc_guess)
        N_t = x.get("N_t", p.N_t_guess)
        return OffDesignParameters(
            T_mc_in=p.T_mc_in,
            T_t_in=p.T_t_in,
            P_mc_in=x.get("P_mc_in", p.P_mc_in_guess),
            recomp_frac=x.get("recomp_frac", p.recomp_frac_guess),
            N_mc=N_mc,
            N_t=N_t if N_t > 0.0 else N_mc,
            N_sub_hxrs=p.N_sub_hxrs,
            tol=p.tol,
        )

    def __call__(self, x: dict[str, float]) -> float:
        self.best.n_evaluations += 1
        od_params = self.off_design_parameters(x)
        if od_params.recomp_frac < 0.0:
            return 0.0
        try:
            solved = off_design_core(self.fluid, od_params, self.design, self.max_iter)
        except CycleError as exc:
            logger.debug("Off-design trial %s failed: %s", x, exc)
            return 0.0

        value = solved.W_dot_net if self.params.is_max_W_dot else solved.eta_thermal
        P_limit = self.design.parameters.P_high_limit
        P2 = solved.state(2).pressure
        if P2 > P_limit:
            value *= 1.0 - OVERPRESSURE_PENALTY * max(0.0, (P2 - P_limit) / P_limit)
        self.best.offer(value, x, solved)
        return value


def optimal_off_design(
    fluid: Fluid,
    params: OptimalOffDesignParameters,
    design: DesignSolved,
    max_iter: int = 100,
) -> OffDesignSolved:
    """Maximise net power (or efficiency) over the free off-design controls.

    Raises:
        CycleError: code 111 when no trial scored above zero; the off-design
            error itself when every control is fixed.
    """
    objective = OffDesignPointObjective(fluid, params, design, max_iter)
    variables = objective.variables()
    if not variables:
        return off_design_core(fluid, objective.off_design_parameters({}), design, max_iter)

    search = maximize_bounded(objective, variables, params.opt_tol, params.max_evaluations)
    best = objective.best
    if not best.found:
        raise CycleError(
            f"No feasible off-design point in {best.n_evaluations} evaluations",
            ErrorCode.NO_FEASIBLE_OFF_DESIGN,
        )
    logger.debug("Optimal off-design: value=%.5g after %d evaluations", best.value, search.n_evaluations)
    return off_design_core(fluid, best.payload.parameters, design, max_iter)


def max_output_off_design(
    fluid: Fluid,
    params: MaxOutputParameters,
    design: DesignSolved,
    max_iter: int = 100,
) -> tuple[float, OffDesignSolved]:
    """Largest achievable net power (or heat input) of the sized cycle.

    The optimal off-design search starts at the lowest pressure with a
    compressor speed 25 % above the guess.  A failed start raises the start
    pressure by 10 %; after a success the next start reuses its optimum, and
    the search stops after the second success.

    Returns:
        ``(value, solved)``: the largest output [W] and its operating point.

    Raises:
        CycleError: code 99 when no start succeeded.
    """
    if not params.lowest_pressure > 0.0:
        raise InputValidationError(f"lowest_pressure must be positive, got {params.lowest_pressure}")
    P_low = params.lowest_pressure
    guesses = OptimalOffDesignParameters(
        T_mc_in=params.T_mc_in,
        T_t_in=params.T_t_in,
        N_sub_hxrs=params.N_sub_hxrs,
        tol=params.tol,
        opt_tol=params.opt_tol,
        is_max_W_dot=True,
        P_mc_in_guess=P_low,
        fixed_P_mc_in=False,
        recomp_frac_guess=params.recomp_frac_guess,
        fixed_recomp_frac=params.fixed_recomp_frac,
        N_mc_guess=params.N_mc_guess * 1.25,
        fixed_N_mc=params.fixed_N_mc,
        N_t_guess=params.N_t_guess,
        fixed_N_t=params.fixed_N_t,
        max_evaluations=params.max_evaluations,
    )

    solved: OffDesignSolved | None = None
    while True:
        guesses = replace(guesses, P_mc_in_guess=P_low)
        try:
            candidate = optimal_off_design(fluid, guesses, design, max_iter)
        except CycleError as exc:
            logger.debug("Max-output start at %.4g Pa failed: %s", P_low, exc)
            P_low *= 1.1
        else:
            od = candidate.parameters
            guesses = replace(guesses, recomp_frac_guess=od.recomp_frac, N_mc_guess=od.N_mc, N_t_guess=od.N_t)
            P_low = od.P_mc_in
            previous, solved = solved, candidate
            if previous is not None:
                break
        if P_low > params.highest_pressure:
            break

    if solved is None:
        raise CycleError("No maximum off-design output found", ErrorCode.NO_MAXIMUM_OUTPUT)
    return _target_value(solved, params.is_target_Q), solved
