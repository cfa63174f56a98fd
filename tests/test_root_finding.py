"""Tests for the bounded secant root finder."""

import numpy as np
import pytest

from sco2_cycle.core.errors import ConvergenceError, ErrorCode
from sco2_cycle.cycle.root_finding import Trial, TrialStatus, bracketed_secant


def _linear(root, tol=1e-9):
    def evaluate(x):
        r = x - root
        if abs(r) < tol:
            return Trial.converged(x, r)
        return Trial.of(r, x)

    return evaluate


class TestTrial:
    def test_constructors(self):
        assert Trial.converged("p").status is TrialStatus.CONVERGED
        assert Trial.of(-1.0).residual == -1.0
        assert Trial.too_low().status is TrialStatus.TOO_LOW
        assert Trial.too_high().status is TrialStatus.TOO_HIGH
        assert Trial.retry().status is TrialStatus.RETRY


class TestBracketedSecant:
    """Test convergence, infeasibility handling and exhaustion."""

    def test_linear_root(self):
        result = bracketed_secant(_linear(2.0), 5.0, 0.0, 10.0, last_x=10.0, last_residual=8.0)
        assert result.x == pytest.approx(2.0, abs=1e-9)
        assert result.payload == pytest.approx(2.0, abs=1e-9)
        assert result.iterations <= 3

    def test_nonlinear_root(self):
        def evaluate(x):
            r = x**3 - 8.0
            return Trial.converged(x) if abs(r) < 1e-10 else Trial.of(r, x)

        result = bracketed_secant(evaluate, 1.0, 0.0, 5.0)
        assert result.x == pytest.approx(2.0, abs=1e-8)

    def test_bisect_first(self):
        seen = []

        def evaluate(x):
            seen.append(x)
            return _linear(2.0)(x)

        bracketed_secant(evaluate, 8.0, 0.0, 10.0, bisect_first=True)
        assert seen[1] == pytest.approx(4.0)

    def test_too_low_raises_lower_bound(self):
        """Infeasible guesses below 1 move the bracket without a residual."""

        def evaluate(x):
            if x < 1.0:
                return Trial.too_low()
            return _linear(3.0)(x)

        result = bracketed_secant(evaluate, 0.5, 0.0, 10.0)
        assert result.x == pytest.approx(3.0, abs=1e-9)

    def test_too_high_lowers_upper_bound(self):
        def evaluate(x):
            if x > 6.0:
                return Trial.too_high()
            return _linear(3.0)(x)

        result = bracketed_secant(evaluate, 9.0, 0.0, 10.0)
        assert result.x == pytest.approx(3.0, abs=1e-9)

    def test_retry_is_reproducible(self):
        def run(seed):
            calls = []

            def evaluate(x):
                calls.append(x)
                if len(calls) == 1:
                    return Trial.retry()
                return _linear(3.0)(x)

            bracketed_secant(evaluate, 5.0, 0.0, 10.0, rng=np.random.default_rng(seed))
            return calls[1]

        assert run(7) == run(7)
        assert 0.0 <= run(7) <= 10.0

    def test_bracket_collapse(self):
        """With an x tolerance the search stops once the bracket is narrow."""

        def evaluate(x):
            return Trial.of(x - 3.0, x)

        result = bracketed_secant(evaluate, 5.0, 0.0, 10.0, x_tolerance=1e-3, max_iter=200)
        assert result.upper - result.lower < 1e-3
        assert result.x == pytest.approx(3.0, abs=1e-3)

    def test_exhaustion_raises_with_code(self):
        def evaluate(x):
            return Trial.of(1.0)

        with pytest.raises(ConvergenceError) as exc_info:
            bracketed_secant(evaluate, 5.0, 0.0, 10.0, max_iter=5, error_code=ErrorCode.T9_NOT_CONVERGED)
        assert exc_info.value.code == ErrorCode.T9_NOT_CONVERGED

    def test_default_exhaustion_code(self):
        with pytest.raises(ConvergenceError) as exc_info:
            bracketed_secant(lambda x: Trial.retry(), 5.0, 0.0, 10.0, max_iter=3)
        assert exc_info.value.code == ErrorCode.MASS_FLOW_NOT_CONVERGED
