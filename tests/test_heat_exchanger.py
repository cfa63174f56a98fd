"""Tests for the counter-flow heat exchanger model."""

import pytest

from sco2_cycle.core.errors import ErrorCode, HeatExchangerError, SecondLawViolation
from sco2_cycle.cycle.components.heat_exchanger import HeatExchangerDesign, calculate_ua

# Cold: 20 MPa compressor discharge; hot: 8 MPa turbine exhaust
COLD = dict(T_cold_in=350.0, P_cold_in=20e6, P_cold_out=20e6)
HOT = dict(T_hot_in=600.0, P_hot_in=8e6, P_hot_out=8e6)


def _ua(fluid, Q_dot, n_sub=10, m_c=1.0, m_h=1.0, **overrides):
    kwargs = {**COLD, **HOT, **overrides}
    return calculate_ua(
        fluid, n_sub, Q_dot, m_c, m_h,
        kwargs["T_cold_in"], kwargs["T_hot_in"],
        kwargs["P_cold_in"], kwargs["P_cold_out"],
        kwargs["P_hot_in"], kwargs["P_hot_out"],
    )


class TestCalculateUA:
    """Test the sub-divided effectiveness-NTU conductance."""

    def test_positive_conductance(self, fluid):
        UA, min_dT = _ua(fluid, 5.0e4)
        assert UA > 0
        assert 0 < min_dT < 250.0

    def test_more_duty_needs_more_conductance(self, fluid):
        UA_small, dT_small = _ua(fluid, 5.0e4)
        UA_large, dT_large = _ua(fluid, 1.5e5)
        assert UA_large > UA_small
        assert dT_large < dT_small

    def test_zero_duty(self, fluid):
        UA, min_dT = _ua(fluid, 0.0)
        assert UA == 0.0
        assert min_dT == pytest.approx(250.0)

    def test_negative_duty(self, fluid):
        with pytest.raises(HeatExchangerError) as exc_info:
            _ua(fluid, -1.0)
        assert exc_info.value.code == ErrorCode.HX_NEGATIVE_DUTY

    def test_hot_colder_than_cold(self, fluid):
        with pytest.raises(HeatExchangerError) as exc_info:
            _ua(fluid, 1.0e4, T_hot_in=340.0)
        assert exc_info.value.code == ErrorCode.HX_INLET_TEMPERATURE_ORDER

    def test_hot_pressure_rise(self, fluid):
        with pytest.raises(HeatExchangerError) as exc_info:
            _ua(fluid, 1.0e4, P_hot_out=8.1e6)
        assert exc_info.value.code == ErrorCode.HX_HOT_PRESSURE_RISE

    def test_cold_pressure_rise(self, fluid):
        with pytest.raises(HeatExchangerError) as exc_info:
            _ua(fluid, 1.0e4, P_cold_out=20.1e6)
        assert exc_info.value.code == ErrorCode.HX_COLD_PRESSURE_RISE

    def test_input_checks_in_order(self, fluid):
        """A negative duty is reported before any other problem."""
        with pytest.raises(HeatExchangerError) as exc_info:
            _ua(fluid, -1.0, T_hot_in=340.0, P_hot_out=9e6)
        assert exc_info.value.code == ErrorCode.HX_NEGATIVE_DUTY

    def test_second_law_violation(self, fluid):
        """A duty that heats the cold stream past the hot inlet is impossible."""
        with pytest.raises(SecondLawViolation) as exc_info:
            _ua(fluid, 6.0e5)
        assert exc_info.value.code == ErrorCode.SECOND_LAW_VIOLATION

    def test_pressure_drops_accepted(self, fluid):
        UA, _ = _ua(fluid, 5.0e4, P_cold_out=19.8e6, P_hot_out=7.9e6)
        assert UA > 0


class TestHeatExchangerDesign:
    """Test flow scaling of the design record."""

    def test_pressure_drops_at_design(self):
        hx = HeatExchangerDesign(dp_design=(1e5, 2e5), m_dot_design=(10.0, 20.0))
        assert hx.pressure_drops(10.0, 20.0) == pytest.approx((1e5, 2e5))

    def test_pressure_drop_scaling(self):
        hx = HeatExchangerDesign(dp_design=(1e5, 0.0), m_dot_design=(10.0, 20.0))
        cold, hot = hx.pressure_drops(20.0, 20.0)
        assert cold == pytest.approx(1e5 * 2.0**1.75)
        assert hot == 0.0

    def test_zero_design_flow_gives_zero_drop(self):
        hx = HeatExchangerDesign(dp_design=(1e5, 1e5), m_dot_design=(0.0, 10.0))
        cold, hot = hx.pressure_drops(5.0, 10.0)
        assert cold == 0.0
        assert hot == pytest.approx(1e5)

    def test_conductance_scaling(self):
        hx = HeatExchangerDesign(m_dot_design=(10.0, 10.0), UA_design=1e5)
        assert hx.conductance(10.0, 10.0) == pytest.approx(1e5)
        assert hx.conductance(5.0, 5.0) == pytest.approx(1e5 * 0.5**0.8)

    def test_conductance_without_design_flow(self):
        hx = HeatExchangerDesign(UA_design=1e5)
        assert hx.conductance(10.0, 10.0) == 0.0
