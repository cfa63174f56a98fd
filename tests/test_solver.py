"""Tests for the public RecompCycle solver."""

from dataclasses import replace

import pytest

from sco2_cycle.core.errors import ErrorCode, InputValidationError
from sco2_cycle.cycle.design import off_design_parameters_at_design
from sco2_cycle.cycle.parameters import DesignLimits, DesignParameters, OptimalDesignParameters
from sco2_cycle.cycle.solver import RecompCycle
from sco2_cycle.cycle.topology import BypassTopology

PARAMS = DesignParameters(UA_LT=5.0e5, UA_HT=5.0e5, recomp_frac=0.3)


@pytest.fixture(scope="module")
def cycle(fluid):
    cycle = RecompCycle(fluid)
    solved, code = cycle.design(PARAMS)
    assert code == 0
    return cycle


class TestRecompCycle:
    """Test the (result, code) contract and the kept solutions."""

    def test_defaults(self):
        cycle = RecompCycle()
        assert cycle.topology.name == "standard"
        assert cycle.last_design is None
        assert "standard" in repr(cycle)

    def test_topology_instance(self, fluid):
        topology = BypassTopology()
        assert RecompCycle(fluid, topology).topology is topology

    def test_unknown_topology(self):
        with pytest.raises(InputValidationError):
            RecompCycle(topology="triple")

    def test_keeps_design(self, cycle):
        assert cycle.last_design is not None
        assert cycle.last_design.W_dot_net == pytest.approx(10.0e6, rel=1e-6)

    def test_design_core_is_not_kept(self, fluid):
        cycle = RecompCycle(fluid)
        point, code = cycle.design_core(PARAMS)
        assert code == 0
        assert point.eta_thermal > 0.0
        assert cycle.last_design is None

    def test_failure_keeps_previous_design(self, cycle):
        before = cycle.last_design
        solved, code = cycle.design(replace(PARAMS, T_t_in=305.15))
        assert solved is None
        assert code == ErrorCode.NO_NET_POWER
        assert cycle.last_design is before

    def test_iteration_cap_from_limits(self, fluid):
        cycle = RecompCycle(fluid, limits=DesignLimits(design_max_iter=1))
        solved, code = cycle.design(PARAMS)
        assert solved is None
        assert code in (ErrorCode.T9_NOT_CONVERGED, ErrorCode.T8_NOT_CONVERGED)

    def test_off_design_uses_last_design(self, cycle):
        od, code = cycle.off_design(off_design_parameters_at_design(cycle.last_design))
        assert code == 0
        assert cycle.last_off_design is od
        assert od.eta_thermal == pytest.approx(cycle.last_design.eta_thermal, rel=1e-3)

    def test_off_design_failure_code(self, cycle):
        params = replace(off_design_parameters_at_design(cycle.last_design), N_mc=0.0)
        od, code = cycle.off_design_core(params)
        assert od is None
        assert code == ErrorCode.INVALID_INPUT

    def test_optimal_design_all_fixed(self, fluid):
        params = OptimalDesignParameters(
            UA_rec_total=1.0e6,
            fixed_P_mc_out=True,
            PR_mc_guess=20.0 / 7.65,
            fixed_PR_mc=True,
            fixed_recomp_frac=True,
            fixed_LT_frac=True,
        )
        solved, code = RecompCycle(fluid).optimal_design(params)
        assert code == 0
        assert solved.parameters.UA_LT == pytest.approx(5.0e5)
        assert solved.has_recompressor

    def test_seeded_generators_match(self):
        a = RecompCycle(seed=3).rng.uniform(size=4)
        b = RecompCycle(seed=3).rng.uniform(size=4)
        assert list(a) == list(b)
