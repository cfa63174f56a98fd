"""Tests for the off-design solution of a sized cycle."""

from dataclasses import replace

import pytest

from sco2_cycle.core.errors import ErrorCode, InputValidationError
from sco2_cycle.cycle.design import off_design_parameters_at_design
from sco2_cycle.cycle.off_design import off_design_core
from sco2_cycle.cycle.parameters import OffDesignParameters
from sco2_cycle.cycle.solver import RecompCycle


@pytest.fixture(scope="module")
def at_design(fluid, recompression_design):
    return off_design_core(fluid, off_design_parameters_at_design(recompression_design), recompression_design)


class TestDesignReproduction:
    """The design operating point solved off-design reproduces the design."""

    def test_mass_flow(self, at_design, recompression_design):
        assert at_design.m_dot_t == pytest.approx(recompression_design.point.m_dot_t, rel=1e-3)

    def test_efficiency(self, at_design, recompression_design):
        assert at_design.eta_thermal == pytest.approx(recompression_design.eta_thermal, rel=1e-3)

    def test_net_power(self, at_design):
        assert at_design.W_dot_net == pytest.approx(10.0e6, rel=1e-3)

    def test_compressor_near_design_flow(self, at_design):
        assert at_design.compressor.phi == pytest.approx(0.02971, rel=1e-2)
        assert not at_design.surge

    def test_summary(self, at_design):
        data = at_design.summary()
        assert data["N_mc"] == at_design.N_mc
        assert len(data["P"]) == 10


class TestOffDesignTrends:
    def test_linked_turbine_speed(self, fluid, recompression_design):
        params = replace(off_design_parameters_at_design(recompression_design), N_t=0.0)
        od = off_design_core(fluid, params, recompression_design)
        assert od.N_t == od.N_mc


class TestOffDesignFailures:
    """Test rejected operating points."""

    def test_zero_compressor_speed(self, fluid, recompression_design):
        params = replace(off_design_parameters_at_design(recompression_design), N_mc=0.0)
        with pytest.raises(InputValidationError):
            off_design_core(fluid, params, recompression_design)

    def test_recompression_without_recompressor(self, simple_design):
        params = replace(off_design_parameters_at_design(simple_design), recomp_frac=0.3)
        od, code = RecompCycle().off_design(params, simple_design)
        assert od is None
        assert code == ErrorCode.INVALID_INPUT

    def test_no_design(self):
        od, code = RecompCycle().off_design(OffDesignParameters(N_mc=30000.0))
        assert od is None
        assert code == -1
