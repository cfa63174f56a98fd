"""Tests for the design-point solution and turbomachinery sizing."""

from dataclasses import replace

import pytest

from sco2_cycle.core.errors import ConvergenceError, ErrorCode, InfeasibleCycleError, InputValidationError
from sco2_cycle.cycle.design import design_core, design_pressures, finalize_design, off_design_parameters_at_design
from sco2_cycle.cycle.parameters import DesignParameters
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.utils.constants import MIN_APPROACH, MIN_SIZED_RECOMP_FRACTION

RECOMPRESSION_PARAMS = DesignParameters(UA_LT=5.0e5, UA_HT=5.0e5, recomp_frac=0.3)


class TestDesignPressures:
    """Test node pressures from the drop specifications."""

    def test_no_drops(self):
        P = design_pressures(RECOMPRESSION_PARAMS)
        assert P[0] == P[8] == P[7] == P[6] == 7.65e6
        assert P[1] == P[2] == P[3] == P[4] == P[5] == P[9] == 20.0e6

    def test_fractional_and_absolute_drops(self):
        params = replace(RECOMPRESSION_PARAMS, DP_LT=(-0.01, 50.0e3), DP_PC=(0.0, -0.02))
        P = design_pressures(params)
        assert P[2] == pytest.approx(20.0e6 * 0.99)
        assert P[3] == P[9] == P[2]
        assert P[8] == pytest.approx(7.65e6 / 0.98)
        assert P[7] == pytest.approx(P[8] + 50.0e3)

    def test_recuperator_drops_ignored_without_conductance(self):
        params = replace(RECOMPRESSION_PARAMS, UA_LT=0.0, DP_LT=(-0.01, -0.01))
        P = design_pressures(params)
        assert P[2] == P[1]
        assert P[7] == P[8]


class TestRecompressionDesign:
    """Test the converged recompression design."""

    def test_meets_power_target(self, recompression_design):
        p = recompression_design.point
        assert p.W_dot_net == pytest.approx(10.0e6, rel=1e-6)
        W = p.w_mc * p.m_dot_mc + p.w_rc * p.m_dot_rc + p.w_t * p.m_dot_t
        assert p.W_dot_net == pytest.approx(W)

    def test_efficiency_definition(self, recompression_design):
        p = recompression_design.point
        assert p.eta_thermal == pytest.approx(p.W_dot_net / p.Q_dot_PHX)
        assert 0.3 < p.eta_thermal < 0.55

    def test_mass_balance(self, recompression_design):
        p = recompression_design.point
        assert p.m_dot_mc + p.m_dot_rc == pytest.approx(p.m_dot_t)
        assert p.recomp_frac == pytest.approx(0.3)

    def test_positive_approach(self, recompression_design):
        p = recompression_design.point
        assert p.LT.min_dT > 0.0
        assert p.HT.min_dT > 0.0

    def test_conductance_matched_or_pinched(self, recompression_design):
        p = recompression_design.point
        for hx, target in ((p.LT, 5.0e5), (p.HT, 5.0e5)):
            matched = abs(hx.UA_design - target) / target < 1e-5
            assert matched or hx.min_dT < MIN_APPROACH

    def test_temperature_ordering(self, recompression_design):
        T = recompression_design.point.temperatures
        assert T[1] > T[0]  # compression
        assert T[2] > T[1]  # LT cold side heated
        assert T[4] > T[3]  # HT cold side heated
        assert T[6] < T[5]  # expansion
        assert T[7] < T[6] and T[8] < T[7]  # hot sides cooled

    def test_turbomachinery_sized(self, recompression_design):
        assert recompression_design.has_recompressor
        assert recompression_design.compressor.D_rotor > 0.0
        assert recompression_design.turbine.N_design == 3600.0
        assert recompression_design.recompressor.D_rotor_2 > 0.0

    def test_summary(self, recompression_design):
        data = recompression_design.summary()
        for key in ("W_dot_net", "eta_thermal", "T", "P", "compressor", "turbine", "recompressor"):
            assert key in data
        assert len(data["T"]) == 10


class TestSimpleDesign:
    def test_efficiency_band(self, simple_design):
        # No recuperators: most of the turbine exhaust heat goes to the cooler,
        # so eta sits well below a recuperated simple cycle.
        assert 0.14 < simple_design.eta_thermal < 0.16

    def test_no_recompressor(self, simple_design):
        assert not simple_design.has_recompressor
        assert simple_design.point.m_dot_rc == 0.0


class TestDesignBehaviour:
    """Test reproducibility, trends and failures."""

    def test_idempotent(self):
        a, code_a = RecompCycle().design(RECOMPRESSION_PARAMS)
        b, code_b = RecompCycle().design(RECOMPRESSION_PARAMS)
        assert code_a == code_b == 0
        assert a.eta_thermal == b.eta_thermal
        assert a.point.temperatures == b.point.temperatures

    def test_efficiency_rises_with_conductance(self, fluid, recompression_design):
        small = design_core(fluid, replace(RECOMPRESSION_PARAMS, UA_LT=2.5e5, UA_HT=2.5e5))
        assert small.eta_thermal < recompression_design.eta_thermal

    def test_no_net_power(self, fluid):
        params = replace(RECOMPRESSION_PARAMS, T_t_in=305.15)
        with pytest.raises(InfeasibleCycleError) as exc_info:
            design_core(fluid, params)
        assert exc_info.value.code == ErrorCode.NO_NET_POWER

    def test_iteration_cap(self, fluid):
        with pytest.raises(ConvergenceError) as exc_info:
            design_core(fluid, RECOMPRESSION_PARAMS, max_iter=1)
        assert exc_info.value.code in (ErrorCode.T9_NOT_CONVERGED, ErrorCode.T8_NOT_CONVERGED)

    def test_huge_conductance_terminates(self):
        params = replace(RECOMPRESSION_PARAMS, UA_LT=1.0e12, UA_HT=1.0e12)
        _, code = RecompCycle().design(params)
        assert code in (0, ErrorCode.T9_NOT_CONVERGED, ErrorCode.T8_NOT_CONVERGED)

    def test_invalid_parameters(self, fluid):
        with pytest.raises(InputValidationError):
            design_core(fluid, DesignParameters(P_mc_out=5.0e6))

    def test_invalid_parameters_code(self):
        solved, code = RecompCycle().design(DesignParameters(recomp_frac=1.0))
        assert solved is None
        assert code == -1

    def test_linked_turbine_speed(self, fluid, recompression_design):
        params = replace(RECOMPRESSION_PARAMS, N_turbine=0.0)
        linked = finalize_design(fluid, replace(recompression_design.point, parameters=params))
        assert linked.turbine.N_design == pytest.approx(linked.compressor.N_design)

    def test_off_design_parameters_at_design(self, recompression_design):
        params = off_design_parameters_at_design(recompression_design)
        assert params.P_mc_in == 7.65e6
        assert params.N_mc == recompression_design.compressor.N_design
        assert params.recomp_frac == pytest.approx(0.3)


class TestRecordedPressureDrops:
    """Test that heat-exchanger records carry the nominal node pressure differences."""

    def test_zero_drops_recorded_exactly(self, recompression_design):
        p = recompression_design.point
        for hx in (p.LT, p.HT, p.PHX, p.PC):
            assert hx.dp_design == (0.0, 0.0)

    def test_zero_drop_design_reruns_at_design(self):
        cycle = RecompCycle()
        design, code = cycle.design(RECOMPRESSION_PARAMS)
        assert code == 0
        od, code = cycle.off_design(off_design_parameters_at_design(design))
        assert code == 0
        assert od.eta_thermal == pytest.approx(design.eta_thermal, rel=1e-3)

    def test_specified_drops_recorded(self, fluid):
        params = replace(RECOMPRESSION_PARAMS, DP_LT=(-0.01, 50.0e3), DP_PHX=(100.0e3, 0.0), DP_PC=(0.0, -0.02))
        point = design_core(fluid, params)
        P = design_pressures(params)
        assert point.LT.dp_design == (pytest.approx(0.01 * 20.0e6), pytest.approx(50.0e3))
        assert point.HT.dp_design == (0.0, 0.0)
        assert point.PHX.dp_design == (pytest.approx(100.0e3), 0.0)
        assert point.PC.dp_design == (0.0, P[8] - P[0])


class TestLightRecompression:
    """Test designs recompressing too little flow to size a recompressor."""

    PARAMS = replace(RECOMPRESSION_PARAMS, recomp_frac=0.5 * MIN_SIZED_RECOMP_FRACTION)

    def test_recompressor_not_sized(self, fluid):
        solved = finalize_design(fluid, design_core(fluid, self.PARAMS))
        assert not solved.has_recompressor
        assert solved.point.m_dot_rc > 0.0

    def test_at_design_runs_without_recompression(self):
        cycle = RecompCycle()
        design, code = cycle.design(self.PARAMS)
        assert code == 0
        params = off_design_parameters_at_design(design)
        assert params.recomp_frac == 0.0
        od, code = cycle.off_design(params)
        assert code == 0
        assert od.m_dot_rc == 0.0
