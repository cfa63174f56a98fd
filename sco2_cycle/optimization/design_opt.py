"""Design-point optimisation drivers.

- :class:`DesignPointObjective` maps the free design variables (compressor
  outlet pressure, pressure ratio, recompression fraction and LT share of the
  recuperator conductance) to thermal efficiency.
- :func:`optimize_design` maximises it locally.
- :func:`auto_optimize` wraps a scalar search on the high pressure around
  recompression and simple-cycle optimisations.
- :func:`design_for_target_efficiency` iterates the total recuperator
  conductance until the auto-optimised cycle reaches a target efficiency.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace

from sco2_cycle.core.errors import CycleError, ErrorCode, InputValidationError
from sco2_cycle.core.fluids import Fluid, co2_pseudocritical_pressure
from sco2_cycle.cycle.design import DesignPoint, DesignSolved, design_core, finalize_design
from sco2_cycle.cycle.parameters import (
    AutoOptimalDesignParameters,
    DesignLimits,
    DesignParameters,
    OptimalDesignParameters,
    TargetEfficiencyParameters,
)
from sco2_cycle.cycle.topology import Topology
from sco2_cycle.optimization.optimizer import BestSoFar, DesignVariable, maximize_bounded, maximize_scalar
from sco2_cycle.utils.constants import MPA_TO_PA, T_CELSIUS_OFFSET
from sco2_cycle.utils.validation import ValidationResult

logger = logging.getLogger(__name__)

P_MIN = 1.0e5  # Pa, lowest compressor inlet pressure
PR_MAX = 50.0
P_HIGH_SEARCH_TOL = 1.0e3  # Pa
MAX_UA_ITERATIONS = 50


class DesignPointObjective:
    """Thermal efficiency as a function of the free design variables.

    Infeasible or failing designs score 0.  Every feasible design is offered
    to the ``best`` accumulator.

    Args:
        fluid: Property oracle.
        params: Guesses, fixed flags and the fixed design inputs.
        topology: Cycle topology.
        max_iter: Temperature-loop iteration cap.
        best: Accumulator shared with the caller.
    """

    def __init__(
        self,
        fluid: Fluid,
        params: OptimalDesignParameters,
        topology: Topology | None = None,
        max_iter: int = 500,
        best: BestSoFar[DesignPoint] | None = None,
    ):
        self.fluid = fluid
        self.params = params
        self.topology = topology
        self.max_iter = max_iter
        self.best: BestSoFar[DesignPoint] = best if best is not None else BestSoFar()

    def variables(self) -> list[DesignVariable]:
        """Free variables with their bounds and initial steps."""
        p = self.params
        variables = []
        if not p.fixed_P_mc_out:
            variables.append(DesignVariable("P_mc_out", p.P_mc_out_guess, P_MIN, p.P_high_limit, 5.0e5, "Pa"))
        if not p.fixed_PR_mc:
            variables.append(DesignVariable("PR_mc", p.PR_mc_guess, 1.0e-4, p.P_high_limit / P_MIN, 0.2))
        if not p.fixed_recomp_frac:
            variables.append(DesignVariable("recomp_frac", p.recomp_frac_guess, 0.0, 1.0, 0.05))
        if not p.fixed_LT_frac:
            variables.append(DesignVariable("LT_frac", p.LT_frac_guess, 0.0, 1.0, 0.05))
        return variables

    def design_parameters(self, x: dict[str, float]) -> DesignParameters | None:
        """Design parameters for ``x``, or None when ``x`` is outside the feasible box."""
        p = self.params
        P_mc_out = x.get("P_mc_out", p.P_mc_out_guess)
        if P_mc_out > p.P_high_limit:
            return None
        PR_mc = x.get("PR_mc", p.PR_mc_guess)
        if PR_mc > PR_MAX:
            return None
        P_mc_in = P_mc_out / PR_mc
        if P_mc_in >= P_mc_out or P_mc_in <= P_MIN:
            return None
        recomp_frac = x.get("recomp_frac", p.recomp_frac_guess)
        if recomp_frac < 0.0:
            return None
        LT_frac = x.get("LT_frac", p.LT_frac_guess)
        if LT_frac > 1.0 or LT_frac < 0.0:
            return None
        return p.to_design(P_mc_in, P_mc_out, recomp_frac, LT_frac)

    def __call__(self, x: dict[str, float]) -> float:
        self.best.n_evaluations += 1
        design_params = self.design_parameters(x)
        if design_params is None:
            return 0.0
        try:
            point = design_core(self.fluid, design_params, self.topology, self.max_iter)
        except CycleError as exc:
            logger.debug("Design trial %s failed: %s", x, exc)
            return 0.0
        self.best.offer(point.eta_thermal, x, point)
        return point.eta_thermal


def optimize_design(
    fluid: Fluid,
    params: OptimalDesignParameters,
    topology: Topology | None = None,
    max_iter: int = 500,
) -> DesignPoint:
    """Locally optimise the free design variables for thermal efficiency.

    Raises:
        CycleError: code 100 when no trial produced a feasible design; the
            design error itself when every variable is fixed.
    """
    objective = DesignPointObjective(fluid, params, topology, max_iter)
    variables = objective.variables()

    if not variables:
        design_params = params.to_design(
            params.P_mc_out_guess / params.PR_mc_guess,
            params.P_mc_out_guess,
            params.recomp_frac_guess,
            params.LT_frac_guess,
        )
        return design_core(fluid, design_params, topology, max_iter)

    search = maximize_bounded(objective, variables, params.opt_tol, params.max_evaluations)
    best = objective.best
    if not best.found:
        raise CycleError(
            f"No feasible design found in {best.n_evaluations} evaluations",
            ErrorCode.NO_FEASIBLE_DESIGN,
        )
    logger.debug(
        "Design optimisation: eta=%.5f after %d evaluations (%s)",
        best.value, search.n_evaluations, search.message,
    )
    return best.payload


def _auto_fields(params: AutoOptimalDesignParameters) -> dict[str, object]:
    return {f.name: getattr(params, f.name) for f in fields(AutoOptimalDesignParameters)}


def _pressure_ratio_guess(T_mc_in: float, P_high: float) -> float:
    P_pc = co2_pseudocritical_pressure(T_mc_in)
    return P_high / P_pc if P_high > P_pc else 1.1


@dataclass
class _Configuration:
    recomp_frac_guess: float
    fixed_recomp_frac: bool
    fixed_LT_frac: bool


_RECOMPRESSION = _Configuration(0.3, False, False)
_SIMPLE = _Configuration(0.0, True, True)


def _optimize_configuration(
    fluid: Fluid,
    params: AutoOptimalDesignParameters,
    config: _Configuration,
    P_high: float,
    PR_guess: float,
    topology: Topology | None,
    max_iter: int,
) -> DesignPoint | None:
    opt_params = OptimalDesignParameters(
        **_auto_fields(params),
        P_mc_out_guess=P_high,
        fixed_P_mc_out=True,
        PR_mc_guess=PR_guess,
        fixed_PR_mc=False,
        recomp_frac_guess=config.recomp_frac_guess,
        fixed_recomp_frac=config.fixed_recomp_frac,
        LT_frac_guess=0.5,
        fixed_LT_frac=config.fixed_LT_frac,
    )
    try:
        return optimize_design(fluid, opt_params, topology, max_iter)
    except CycleError as exc:
        logger.debug("Configuration f=%.2f at P_high=%.4g Pa failed: %s", config.recomp_frac_guess, P_high, exc)
        return None


def auto_optimize(
    fluid: Fluid,
    params: AutoOptimalDesignParameters,
    topology: Topology | None = None,
    max_iter: int = 500,
) -> DesignSolved:
    """Optimise pressures, recompression fraction and conductance split.

    A bounded scalar search over the compressor outlet pressure in
    ``[0.2, 1] * P_high_limit`` runs a recompression and a simple-cycle
    optimisation at every probe.  Both are then repeated at the pressure
    limit, and the best design overall is sized.

    Raises:
        CycleError: code 100 when no probe produced a feasible design.
    """
    best: BestSoFar[DesignPoint] = BestSoFar()

    def offer(point: DesignPoint | None) -> float:
        if point is None:
            return 0.0
        best.offer(point.eta_thermal, {"P_mc_out": point.parameters.P_mc_out}, point)
        return point.eta_thermal

    def probe(P_high: float) -> float:
        PR_guess = _pressure_ratio_guess(params.T_mc_in, P_high)
        eta_rc = offer(_optimize_configuration(fluid, params, _RECOMPRESSION, P_high, PR_guess, topology, max_iter))
        eta_s = offer(_optimize_configuration(fluid, params, _SIMPLE, P_high, PR_guess, topology, max_iter))
        return max(eta_rc, eta_s)

    maximize_scalar(probe, 0.2 * params.P_high_limit, params.P_high_limit, P_HIGH_SEARCH_TOL)

    if best.found:
        PR_guess = best.payload.parameters.P_mc_out / best.payload.parameters.P_mc_in
    else:
        PR_guess = _pressure_ratio_guess(params.T_mc_in, params.P_high_limit)
    for config in (_RECOMPRESSION, _SIMPLE):
        offer(_optimize_configuration(fluid, params, config, params.P_high_limit, PR_guess, topology, max_iter))

    if not best.found:
        raise CycleError("Auto-optimisation found no feasible design", ErrorCode.NO_FEASIBLE_DESIGN)

    point = design_core(fluid, best.payload.parameters, topology, max_iter)
    logger.info(
        "Auto-optimised design: eta=%.5f, P_mc_out=%.4g Pa, PR=%.3f, f=%.3f",
        point.eta_thermal, point.parameters.P_mc_out,
        point.parameters.P_mc_out / point.parameters.P_mc_in, point.parameters.recomp_frac,
    )
    return finalize_design(fluid, point)


def validate_target_efficiency(
    fluid: Fluid,
    params: TargetEfficiencyParameters,
) -> tuple[TargetEfficiencyParameters, ValidationResult]:
    """Clamp recoverable inputs and reject the rest.

    Returns:
        The (possibly clamped) parameters and the findings; clamps are
        warnings, rejections errors.
    """
    result = ValidationResult()
    changes: dict[str, float] = {}

    if params.T_mc_in <= fluid.T_critical:
        result.error(
            "T_mc_in",
            f"Compressor inlet temperature {params.T_mc_in - T_CELSIUS_OFFSET:.2f} C must be above "
            f"the critical temperature {fluid.T_critical - T_CELSIUS_OFFSET:.2f} C",
            value=params.T_mc_in, limit=fluid.T_critical,
        )
        return params, result

    T_mc_max = 70.0 + T_CELSIUS_OFFSET
    if params.T_mc_in > T_mc_max:
        result.warning(
            "T_mc_in",
            f"Compressor inlet temperature {params.T_mc_in - T_CELSIUS_OFFSET:.2f} C was reset to 70 C",
            value=params.T_mc_in, limit=T_mc_max,
        )
        changes["T_mc_in"] = T_mc_max

    T_t_min = 300.0 + T_CELSIUS_OFFSET
    if params.T_t_in < T_t_min:
        result.warning(
            "T_t_in",
            f"Turbine inlet temperature {params.T_t_in - T_CELSIUS_OFFSET:.2f} C was reset to 300 C",
            value=params.T_t_in, limit=T_t_min,
        )
        changes["T_t_in"] = T_t_min

    T_mc_in = changes.get("T_mc_in", params.T_mc_in)
    T_t_in = changes.get("T_t_in", params.T_t_in)
    if T_t_in <= T_mc_in:
        result.error("T_t_in", "Turbine inlet temperature must exceed the compressor inlet temperature")
        return params, result
    if T_t_in >= fluid.T_max:
        result.error(
            "T_t_in",
            f"Turbine inlet temperature {T_t_in - T_CELSIUS_OFFSET:.2f} C is above the property "
            f"limit {fluid.T_max - T_CELSIUS_OFFSET:.2f} C",
            value=T_t_in, limit=fluid.T_max,
        )
        return params, result

    for name, label in (("eta_mc", "main compressor"), ("eta_rc", "recompressor"), ("eta_t", "turbine")):
        eta = getattr(params, name)
        if eta > 1.0:
            result.warning(name, f"The {label} isentropic efficiency {eta} was reset to 1.0", value=eta)
            changes[name] = 1.0
        elif eta < 0.1:
            result.warning(name, f"The {label} isentropic efficiency {eta} was increased to 0.1", value=eta)
            changes[name] = 0.1

    P_high_limit = params.P_high_limit
    if P_high_limit >= fluid.P_max:
        result.warning(
            "P_high_limit",
            f"Upper pressure limit {P_high_limit / MPA_TO_PA:.2f} MPa was reset to the property "
            f"limit {fluid.P_max / MPA_TO_PA:.2f} MPa",
            value=P_high_limit, limit=fluid.P_max,
        )
        P_high_limit = fluid.P_max
        changes["P_high_limit"] = P_high_limit
    P_high_min = 10.0 * MPA_TO_PA
    if P_high_limit <= P_high_min:
        result.error(
            "P_high_limit",
            f"Upper pressure limit {P_high_limit / MPA_TO_PA:.2f} MPa must exceed 10 MPa",
            value=P_high_limit, limit=P_high_min,
        )
        return params, result

    if params.eta_thermal <= 0.0:
        result.error("eta_thermal", f"Target thermal efficiency {params.eta_thermal} must be positive")
        return params, result
    eta_carnot = 1.0 - T_mc_in / T_t_in
    if params.eta_thermal >= eta_carnot:
        result.error(
            "eta_thermal",
            f"Target thermal efficiency {params.eta_thermal} must be below the Carnot "
            f"efficiency {eta_carnot:.4f}",
            value=params.eta_thermal, limit=eta_carnot,
        )
        return params, result

    for message in result.warnings:
        logger.warning(message.message)
    return replace(params, **changes), result


def design_for_target_efficiency(
    fluid: Fluid,
    params: TargetEfficiencyParameters,
    limits: DesignLimits | None = None,
    topology: Topology | None = None,
) -> tuple[DesignSolved, ValidationResult]:
    """Size the total recuperator conductance for a target thermal efficiency.

    The conductance starts at 0.1 W/K per W of net power.  It is halved (or
    multiplied by 2.5) until the target is bracketed, jumps to the
    conductance-ratio limit after five calls, and then uses false position.

    Raises:
        InputValidationError: rejected inputs, a failed auto-optimisation or a
            target outside the achievable range; carries the findings.
    """
    limits = limits or DesignLimits()
    params, validation = validate_target_efficiency(fluid, params)
    if not validation.is_valid:
        raise InputValidationError(validation.summary(), validation)

    W = params.W_dot_net
    ratio_min = limits.UA_net_power_ratio_min
    ratio_max = limits.UA_net_power_ratio_max
    max_iter = limits.design_max_iter

    def solve(UA_total: float) -> DesignSolved:
        auto_params = AutoOptimalDesignParameters(**{**_auto_fields(params), "UA_rec_total": UA_total})
        try:
            return auto_optimize(fluid, auto_params, topology, max_iter)
        except CycleError as exc:
            validation.error("UA_rec_total", "Can't optimize sCO2 power cycle with current inputs")
            raise InputValidationError(validation.summary(), validation) from exc

    UA_guess = 0.1 * W
    solved = solve(UA_guess)
    diff = solved.eta_thermal - params.eta_thermal
    x_lower = y_lower = x_upper = y_upper = float("nan")
    low_flag = high_flag = False
    calls = 1

    while abs(diff) > params.tol:
        calls += 1
        if calls > MAX_UA_ITERATIONS:
            validation.error("UA_rec_total", f"Conductance iteration did not converge in {MAX_UA_ITERATIONS} calls")
            raise InputValidationError(validation.summary(), validation)

        if diff > 0.0:
            low_flag = True
            x_lower, y_lower = UA_guess, diff
            if high_flag:
                UA_guess = -y_upper * (x_lower - x_upper) / (y_lower - y_upper) + x_upper
            elif calls > 5:
                UA_guess = ratio_min * W
            else:
                UA_guess *= 0.5
            if x_lower <= ratio_min * W:
                validation.error(
                    "eta_thermal",
                    f"The design thermal efficiency {params.eta_thermal} is too small to achieve; "
                    f"the lowest possible for these inputs is roughly {solved.eta_thermal:.4f}",
                )
                raise InputValidationError(validation.summary(), validation)
        else:
            high_flag = True
            x_upper, y_upper = UA_guess, diff
            if low_flag:
                UA_guess = -y_upper * (x_lower - x_upper) / (y_lower - y_upper) + x_upper
            elif calls > 5:
                UA_guess = ratio_max * W
            else:
                UA_guess *= 2.5
            if x_upper >= ratio_max * W:
                validation.error(
                    "eta_thermal",
                    f"The design thermal efficiency {params.eta_thermal} is too large to achieve; "
                    f"the largest possible for these inputs is roughly {solved.eta_thermal:.4f}",
                )
                raise InputValidationError(validation.summary(), validation)

        solved = solve(UA_guess)
        diff = solved.eta_thermal - params.eta_thermal
        logger.debug("UA_total=%.4g W/K: eta=%.5f", UA_guess, solved.eta_thermal)

    logger.info("Target efficiency %.4f reached with UA_total=%.4g W/K", params.eta_thermal, UA_guess)
    return solved, validation
