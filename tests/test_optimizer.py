"""Tests for the bounded optimiser and the design optimisation drivers."""

from dataclasses import replace

import pytest

from sco2_cycle.core.errors import InputValidationError
from sco2_cycle.cycle.design import design_core, finalize_design
from sco2_cycle.cycle.parameters import (
    AutoOptimalDesignParameters,
    OptimalDesignParameters,
    TargetEfficiencyParameters,
)
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.optimization import design_opt
from sco2_cycle.optimization.design_opt import (
    DesignPointObjective,
    auto_optimize,
    design_for_target_efficiency,
    optimize_design,
    validate_target_efficiency,
)
from sco2_cycle.optimization.optimizer import BestSoFar, DesignVariable, maximize_bounded, maximize_scalar

FIXED = OptimalDesignParameters(
    UA_rec_total=1.0e6,
    P_mc_out_guess=20.0e6,
    fixed_P_mc_out=True,
    PR_mc_guess=20.0 / 7.65,
    fixed_PR_mc=True,
    recomp_frac_guess=0.3,
    fixed_recomp_frac=True,
    LT_frac_guess=0.5,
    fixed_LT_frac=True,
)


class TestDesignVariable:
    def test_bounds(self):
        v = DesignVariable("x", 1.0, 0.0, 10.0, 0.5)
        assert v.bounds == (0.0, 10.0)


class TestBestSoFar:
    """Test the best-value accumulator."""

    def test_empty(self):
        best = BestSoFar()
        assert not best.found
        assert best.value == 0.0

    def test_keeps_maximum(self):
        best = BestSoFar()
        assert best.offer(0.3, {"x": 1.0}, "a")
        assert not best.offer(0.2, {"x": 2.0}, "b")
        assert best.payload == "a"
        assert best.x == {"x": 1.0}

    def test_non_positive_never_found(self):
        best = BestSoFar()
        best.offer(0.0, {}, "a")
        assert not best.found


class TestMaximizeBounded:
    """Test Nelder-Mead in step-scaled coordinates."""

    def test_quadratic(self):
        variables = [DesignVariable("x", 0.0, -5.0, 5.0, 0.5), DesignVariable("y", 0.0, -5.0, 5.0, 0.5)]
        result = maximize_bounded(
            lambda x: 10.0 - (x["x"] - 2.0) ** 2 - (x["y"] + 1.0) ** 2, variables, xtol=1e-4
        )
        assert result.x["x"] == pytest.approx(2.0, abs=1e-2)
        assert result.x["y"] == pytest.approx(-1.0, abs=1e-2)
        assert result.value == pytest.approx(10.0, abs=1e-3)

    def test_respects_bounds(self):
        variables = [DesignVariable("x", 0.5, 0.0, 1.0, 0.1)]
        result = maximize_bounded(lambda x: x["x"], variables, xtol=1e-4)
        assert result.x["x"] <= 1.0
        assert result.x["x"] == pytest.approx(1.0, abs=1e-2)

    def test_evaluation_budget(self):
        calls = []

        def objective(x):
            calls.append(x)
            return -(x["x"] ** 2)

        maximize_bounded(objective, [DesignVariable("x", 3.0, -10.0, 10.0, 1.0)], max_evaluations=8)
        assert len(calls) < 12

    def test_zero_step_rejected(self):
        with pytest.raises(ValueError):
            maximize_bounded(lambda x: 0.0, [DesignVariable("x", 0.0, -1.0, 1.0, 0.0)])


class TestMaximizeScalar:
    def test_parabola(self):
        x, value = maximize_scalar(lambda x: -((x - 3.0) ** 2), 0.0, 10.0, 1e-6)
        assert x == pytest.approx(3.0, abs=1e-4)
        assert value == pytest.approx(0.0, abs=1e-6)


class TestOptimizeDesign:
    """Test the local design optimisation."""

    def test_all_fixed_matches_design(self, fluid):
        point = optimize_design(fluid, FIXED)
        direct = design_core(fluid, FIXED.to_design(7.65e6, 20.0e6, 0.3, 0.5))
        assert point.eta_thermal == pytest.approx(direct.eta_thermal)

    def test_free_fraction_improves(self, fluid):
        params = replace(FIXED, fixed_recomp_frac=False, max_evaluations=10)
        guess = design_core(fluid, FIXED.to_design(7.65e6, 20.0e6, 0.3, 0.5))
        point = optimize_design(fluid, params)
        assert point.eta_thermal >= guess.eta_thermal

    def test_objective_scores_infeasible_as_zero(self, fluid):
        objective = DesignPointObjective(fluid, FIXED)
        assert objective({"PR_mc": 100.0}) == 0.0
        assert objective({"LT_frac": 1.5}) == 0.0
        assert not objective.best.found

    def test_free_variables(self, fluid):
        objective = DesignPointObjective(fluid, replace(FIXED, fixed_LT_frac=False, fixed_PR_mc=False))
        assert [v.name for v in objective.variables()] == ["PR_mc", "LT_frac"]


class TestAutoOptimize:
    def test_single_probe(self, fluid, monkeypatch):
        monkeypatch.setattr(design_opt, "maximize_scalar", lambda f, lo, hi, tol: (hi, f(hi)))
        params = AutoOptimalDesignParameters(UA_rec_total=1.0e6, max_evaluations=20)
        solved = auto_optimize(fluid, params)
        assert solved.eta_thermal > 0.0
        assert solved.parameters.P_mc_out == pytest.approx(25.0e6)


def _recuperated_simple_design(fluid, params, topology=None, max_iter=500):
    """Recuperated simple cycle in place of the full auto-optimisation; efficiency rises with UA."""
    point = design_core(fluid, params.to_design(7.65e6, 20.0e6, 0.0, 1.0), topology, max_iter)
    return finalize_design(fluid, point)


class TestTargetEfficiency:
    """Test input clamping and rejection for the target-efficiency design."""

    def test_clamps(self, fluid):
        params = TargetEfficiencyParameters(T_mc_in=80.0 + 273.15, eta_t=1.2)
        clamped, result = validate_target_efficiency(fluid, params)
        assert result.is_valid
        assert clamped.T_mc_in == pytest.approx(343.15)
        assert clamped.eta_t == 1.0
        assert {m.parameter for m in result.warnings} == {"T_mc_in", "eta_t"}

    def test_subcritical_inlet_rejected(self, fluid):
        _, result = validate_target_efficiency(fluid, TargetEfficiencyParameters(T_mc_in=300.0))
        assert not result.is_valid

    def test_low_pressure_limit_rejected(self, fluid):
        _, result = validate_target_efficiency(fluid, TargetEfficiencyParameters(P_high_limit=9.0e6))
        assert [m.parameter for m in result.errors] == ["P_high_limit"]

    def test_above_carnot(self, fluid):
        with pytest.raises(InputValidationError) as exc_info:
            design_for_target_efficiency(fluid, TargetEfficiencyParameters(eta_thermal=0.7))
        assert exc_info.value.validation.errors[0].parameter == "eta_thermal"

    def test_above_carnot_through_solver(self):
        solved, code, validation = RecompCycle().design_for_target_efficiency(
            TargetEfficiencyParameters(eta_thermal=0.7)
        )
        assert solved is None
        assert code == -1
        assert not validation.is_valid

    def test_converges_between_simple_and_recompression(self, fluid, simple_design, recompression_design, monkeypatch):
        monkeypatch.setattr(design_opt, "auto_optimize", _recuperated_simple_design)
        target = 0.5 * (simple_design.eta_thermal + recompression_design.eta_thermal)
        params = TargetEfficiencyParameters(eta_thermal=target, tol=1.0e-3)
        solved, result = design_for_target_efficiency(fluid, params)
        assert result.is_valid
        assert solved.eta_thermal == pytest.approx(target, abs=1.0e-3)
        assert simple_design.eta_thermal < solved.eta_thermal < recompression_design.eta_thermal
        assert solved.parameters.UA_LT > 0.0

    def test_target_below_reachable_band(self, monkeypatch):
        monkeypatch.setattr(design_opt, "auto_optimize", _recuperated_simple_design)
        solved, code, validation = RecompCycle().design_for_target_efficiency(
            TargetEfficiencyParameters(eta_thermal=0.10, tol=1.0e-3)
        )
        assert solved is None
        assert code == -1
        assert [m.parameter for m in validation.errors] == ["eta_thermal"]
        assert "too small" in validation.errors[0].message
