"""Bounded secant root finder with bisection fallback.

Every equilibrium loop of the cycle (T8, T9, turbine mass flow, target
pressure, recompressor intermediate pressure) is an instance of the same
policy: keep a bracket ``[lower, upper]``, take secant steps inside it and
bisect when the secant misbehaves.  The evaluator may also report that a
guess is infeasible on one side of the solution (for example a second-law
violation in a recuperator), which moves the bound without polluting the
secant history.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import numpy as np

from sco2_cycle.core.errors import ConvergenceError, ErrorCode

logger = logging.getLogger(__name__)


class TrialStatus(Enum):
    """Outcome of one evaluation of the unknown."""

    RESIDUAL = "residual"  # signed residual; r >= 0 means the guess is too high
    CONVERGED = "converged"
    TOO_LOW = "too_low"  # infeasible, solution lies above the guess
    TOO_HIGH = "too_high"  # infeasible, solution lies below the guess
    RETRY = "retry"  # infeasible, location unknown


@dataclass(frozen=True)
class Trial:
    """Result of evaluating one guess."""

    status: TrialStatus
    residual: float = math.nan
    payload: Any = None

    @classmethod
    def converged(cls, payload: Any = None, residual: float = 0.0) -> Trial:
        return cls(TrialStatus.CONVERGED, residual, payload)

    @classmethod
    def of(cls, residual: float, payload: Any = None) -> Trial:
        return cls(TrialStatus.RESIDUAL, residual, payload)

    @classmethod
    def too_low(cls) -> Trial:
        return cls(TrialStatus.TOO_LOW)

    @classmethod
    def too_high(cls) -> Trial:
        return cls(TrialStatus.TOO_HIGH)

    @classmethod
    def retry(cls) -> Trial:
        return cls(TrialStatus.RETRY)


@dataclass(frozen=True)
class RootResult:
    """Converged unknown and the payload of the converging evaluation."""

    x: float
    payload: Any
    iterations: int
    lower: float
    upper: float


def bracketed_secant(
    evaluate: Callable[[float], Trial],
    x0: float,
    lower: float,
    upper: float,
    *,
    last_x: float = math.nan,
    last_residual: float = math.nan,
    max_iter: int = 100,
    bisect_first: bool = False,
    limit_step: bool = False,
    x_tolerance: float | None = None,
    error_code: int = ErrorCode.MASS_FLOW_NOT_CONVERGED,
    rng: np.random.Generator | None = None,
    label: str = "x",
) -> RootResult:
    """Solve ``evaluate(x)`` for convergence inside ``[lower, upper]``.

    Args:
        evaluate: Maps a guess to a :class:`Trial`.
        x0: First guess.
        lower: Lower bound of the bracket.
        upper: Upper bound of the bracket.
        last_x: Seed point for the first secant step.
        last_residual: Residual at ``last_x``.
        max_iter: Iteration cap.
        bisect_first: Bisect after the first residual instead of a secant step.
        limit_step: Bisect when the secant step exceeds half the bracket.
        x_tolerance: Converge once the bracket is narrower than this.
        error_code: Code raised when the cap is exhausted.
        rng: Generator for RETRY trials (seeded default when omitted).
        label: Name of the unknown, for log messages.

    Returns:
        :class:`RootResult` of the converging evaluation.

    Raises:
        ConvergenceError: after ``max_iter`` evaluations without convergence.
    """
    if rng is None:
        rng = np.random.default_rng(0)

    x = x0
    lx, lr = last_x, last_residual
    first_residual = True
    last_payload = None

    for iteration in range(1, max_iter + 1):
        trial = evaluate(x)

        if trial.status is TrialStatus.CONVERGED:
            return RootResult(x, trial.payload, iteration, lower, upper)

        if trial.status is TrialStatus.TOO_LOW:
            lower = x
            x = 0.5 * (lower + upper)
            continue
        if trial.status is TrialStatus.TOO_HIGH:
            upper = x
            x = 0.5 * (lower + upper)
            continue
        if trial.status is TrialStatus.RETRY:
            x = lower + (upper - lower) * float(rng.random())
            continue

        r = trial.residual
        last_payload = trial.payload
        if r >= 0.0:
            upper = x
        else:
            lower = x

        if x_tolerance is not None and upper - lower < x_tolerance:
            return RootResult(x, last_payload, iteration, lower, upper)

        denominator = lr - r
        if denominator != 0.0 and math.isfinite(denominator):
            x_secant = x - r * (lx - x) / denominator
        else:
            x_secant = math.nan
        lx, lr = x, r

        if bisect_first and first_residual:
            x = 0.5 * (lower + upper)
        elif not math.isfinite(x_secant) or x_secant <= lower or x_secant >= upper:
            x = 0.5 * (lower + upper)
        elif limit_step and abs(x_secant - lx) > abs(0.5 * (upper - lower)):
            x = 0.5 * (lower + upper)
        else:
            x = x_secant
        first_residual = False

    logger.debug("%s did not converge in %d iterations, bracket [%g, %g]", label, max_iter, lower, upper)
    raise ConvergenceError(
        f"{label} iteration did not converge in {max_iter} iterations "
        f"(bracket [{lower:.6g}, {upper:.6g}])",
        error_code,
    )
