"""Tests for the off-design target, optimisation and maximum-output drivers."""

import pytest

from sco2_cycle.core.errors import CycleError, ErrorCode, InputValidationError
from sco2_cycle.cycle.design import off_design_parameters_at_design
from sco2_cycle.cycle.off_design import off_design_core
from sco2_cycle.cycle.parameters import MaxOutputParameters, OptimalOffDesignParameters, TargetOffDesignParameters
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.optimization.off_design_opt import (
    OffDesignPointObjective,
    max_output_off_design,
    optimal_off_design,
    target_off_design,
)


@pytest.fixture(scope="module")
def at_design(fluid, recompression_design):
    return off_design_core(fluid, off_design_parameters_at_design(recompression_design), recompression_design)


def _target_params(design, target, is_target_Q=False):
    op = off_design_parameters_at_design(design)
    return TargetOffDesignParameters(
        T_mc_in=op.T_mc_in,
        T_t_in=op.T_t_in,
        recomp_frac=op.recomp_frac,
        N_mc=op.N_mc,
        N_t=op.N_t,
        target=target,
        is_target_Q=is_target_Q,
        lowest_pressure=6.0e6,
        highest_pressure=10.0e6,
    )


def _optimal_params(design, **overrides):
    op = off_design_parameters_at_design(design)
    values = dict(
        T_mc_in=op.T_mc_in,
        T_t_in=op.T_t_in,
        P_mc_in_guess=op.P_mc_in,
        recomp_frac_guess=op.recomp_frac,
        N_mc_guess=op.N_mc,
        N_t_guess=op.N_t,
        fixed_P_mc_in=True,
        fixed_recomp_frac=True,
        fixed_N_mc=True,
        fixed_N_t=True,
    )
    values.update(overrides)
    return OptimalOffDesignParameters(**values)


class TestTargetOffDesign:
    """Test the inlet-pressure search for a power or heat-input target."""

    def test_design_power_recovers_design_pressure(self, fluid, recompression_design, at_design):
        params = _target_params(recompression_design, at_design.W_dot_net)
        solved = target_off_design(fluid, params, recompression_design)
        assert solved.parameters.P_mc_in == pytest.approx(7.65e6, rel=1e-2)
        assert solved.W_dot_net == pytest.approx(at_design.W_dot_net, rel=1e-3)

    def test_unreachable_target(self, recompression_design):
        params = _target_params(recompression_design, 1.0e9)
        od, code = RecompCycle().target_off_design(params, recompression_design)
        assert od is None
        assert code == ErrorCode.TARGET_NOT_BRACKETED

    def test_design_heat_input_recovers_design_pressure(self, fluid, recompression_design, at_design):
        params = _target_params(recompression_design, at_design.Q_dot_PHX, is_target_Q=True)
        solved = target_off_design(fluid, params, recompression_design)
        assert solved.parameters.P_mc_in == pytest.approx(7.65e6, rel=1e-2)
        assert solved.Q_dot_PHX == pytest.approx(at_design.Q_dot_PHX, rel=1e-3)

    def test_unreachable_heat_input_names_target(self, fluid, recompression_design):
        params = _target_params(recompression_design, 1.0e10, is_target_Q=True)
        with pytest.raises(CycleError, match="heat input") as exc_info:
            target_off_design(fluid, params, recompression_design)
        assert exc_info.value.code == ErrorCode.TARGET_NOT_BRACKETED

    @pytest.mark.parametrize("target", [0.0, -1.0e6])
    def test_non_positive_target_rejected(self, fluid, recompression_design, target):
        with pytest.raises(InputValidationError, match="target"):
            target_off_design(fluid, _target_params(recompression_design, target), recompression_design)

    def test_non_positive_target_code(self, recompression_design):
        od, code = RecompCycle().target_off_design(_target_params(recompression_design, 0.0), recompression_design)
        assert od is None
        assert code == ErrorCode.INVALID_INPUT


class TestOptimalOffDesign:
    """Test the off-design optimisation over free controls."""

    def test_all_fixed_reproduces_design(self, fluid, recompression_design, at_design):
        solved = optimal_off_design(fluid, _optimal_params(recompression_design), recompression_design)
        assert solved.W_dot_net == pytest.approx(at_design.W_dot_net)

    def test_free_pressure_improves_power(self, fluid, recompression_design, at_design):
        params = _optimal_params(recompression_design, fixed_P_mc_in=False, max_evaluations=15)
        solved = optimal_off_design(fluid, params, recompression_design)
        assert solved.W_dot_net >= at_design.W_dot_net * (1.0 - 1e-6)

    def test_variables(self, fluid, recompression_design):
        params = _optimal_params(recompression_design, fixed_P_mc_in=False, fixed_N_mc=False)
        objective = OffDesignPointObjective(fluid, params, recompression_design)
        names = [v.name for v in objective.variables()]
        assert names == ["P_mc_in", "N_mc"]

    def test_linked_turbine_speed(self, fluid, recompression_design):
        params = _optimal_params(recompression_design, N_t_guess=0.0)
        objective = OffDesignPointObjective(fluid, params, recompression_design)
        od_params = objective.off_design_parameters({"N_mc": 25000.0})
        assert od_params.N_t == 25000.0


class TestMaxOutput:
    def test_small_budget(self, recompression_design):
        op = off_design_parameters_at_design(recompression_design)
        params = MaxOutputParameters(
            T_mc_in=op.T_mc_in,
            T_t_in=op.T_t_in,
            lowest_pressure=7.0e6,
            highest_pressure=9.0e6,
            recomp_frac_guess=op.recomp_frac,
            fixed_recomp_frac=True,
            N_mc_guess=op.N_mc,
            fixed_N_mc=True,
            N_t_guess=op.N_t,
            max_evaluations=10,
        )
        result, code = RecompCycle().max_output_off_design(params, recompression_design)
        assert code in (0, ErrorCode.NO_MAXIMUM_OUTPUT)
        if result is not None:
            value, od = result
            assert value == od.W_dot_net

    def test_non_positive_lowest_pressure(self, fluid, recompression_design):
        with pytest.raises(InputValidationError):
            max_output_off_design(fluid, MaxOutputParameters(lowest_pressure=0.0), recompression_design)
