"""Bounded derivative-free maximisation over cycle variables.

The cycle objectives are black boxes that return 0 (or a penalised value) for
infeasible points and are discontinuous at the feasibility boundary, so only
simplex-type searches apply.  :func:`maximize_bounded` runs SciPy's
Nelder-Mead in step-scaled coordinates: the initial simplex places one vertex
one step away from the guess along each variable.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

import numpy as np
from scipy.optimize import minimize, minimize_scalar

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT")


@dataclass
class DesignVariable:
    """A free variable with bounds and an initial step.

    Args:
        name: Variable name.
        initial: Initial guess.
        lower: Lower bound.
        upper: Upper bound (may be ``inf``).
        step: Initial simplex step.
        unit: Physical unit string (for display).
    """

    name: str
    initial: float
    lower: float
    upper: float
    step: float
    unit: str = ""

    @property
    def bounds(self) -> tuple[float, float]:
        return (self.lower, self.upper)


@dataclass
class BestSoFar(Generic[PayloadT]):
    """Accumulator for the best objective value seen during a search."""

    value: float = 0.0
    x: dict[str, float] = field(default_factory=dict)
    payload: PayloadT | None = None
    n_evaluations: int = 0

    @property
    def found(self) -> bool:
        return self.payload is not None

    def offer(self, value: float, x: dict[str, float], payload: PayloadT) -> bool:
        """Record ``payload`` if ``value`` beats the best so far."""
        if value > self.value:
            self.value = value
            self.x = dict(x)
            self.payload = payload
            return True
        return False


@dataclass
class SearchResult:
    """Outcome of a bounded maximisation."""

    x: dict[str, float]
    value: float
    n_evaluations: int
    converged: bool
    message: str = ""


def maximize_bounded(
    objective: Callable[[dict[str, float]], float],
    variables: list[DesignVariable],
    xtol: float = 1.0e-3,
    max_evaluations: int = 500,
) -> SearchResult:
    """Maximise ``objective`` over bounded variables with Nelder-Mead.

    Args:
        objective: Maps named variable values to the value to maximise.
        variables: Free variables, each with its guess, bounds and step.
        xtol: Convergence tolerance in units of the initial steps.
        max_evaluations: Objective evaluation budget.

    Returns:
        :class:`SearchResult` at the best vertex.
    """
    n = len(variables)
    x0 = np.array([v.initial for v in variables], dtype=float)
    steps = np.array([v.step for v in variables], dtype=float)
    for i, v in enumerate(variables):
        if not steps[i] > 0.0:
            raise ValueError(f"Variable '{v.name}' needs a positive step, got {v.step}")
        if not v.lower <= v.initial <= v.upper:
            x0[i] = min(max(v.initial, v.lower), v.upper)

    simplex = np.zeros((n + 1, n))
    for i, v in enumerate(variables):
        direction = 1.0 if x0[i] + steps[i] <= v.upper else -1.0
        simplex[i + 1, i] = direction

    z_bounds = [
        ((v.lower - x0[i]) / steps[i], (v.upper - x0[i]) / steps[i])
        for i, v in enumerate(variables)
    ]

    def to_named(z: np.ndarray) -> dict[str, float]:
        x = x0 + z * steps
        return {v.name: float(x[i]) for i, v in enumerate(variables)}

    def negated(z: np.ndarray) -> float:
        value = objective(to_named(z))
        return -value if math.isfinite(value) else 0.0

    result = minimize(
        negated,
        np.zeros(n),
        method="Nelder-Mead",
        bounds=z_bounds,
        options={
            "initial_simplex": simplex,
            "xatol": xtol,
            "fatol": xtol * 1.0e-3,
            "maxfev": max_evaluations,
        },
    )
    logger.debug("Nelder-Mead finished after %d evaluations: %s", result.nfev, result.message)
    return SearchResult(
        x=to_named(result.x),
        value=-float(result.fun),
        n_evaluations=int(result.nfev),
        converged=bool(result.success),
        message=str(result.message),
    )


def maximize_scalar(
    objective: Callable[[float], float],
    lower: float,
    upper: float,
    xatol: float,
) -> tuple[float, float]:
    """Maximise a scalar objective on ``[lower, upper]``; returns ``(x, value)``."""
    result = minimize_scalar(
        lambda x: -objective(float(x)),
        bounds=(lower, upper),
        method="bounded",
        options={"xatol": xatol},
    )
    return float(result.x), -float(result.fun)
