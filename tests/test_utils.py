"""Tests for utility modules."""

import logging

import pytest
from rich.console import Console

from sco2_cycle.utils.constants import MPA_TO_PA, RAD_S_TO_RPM, RPM_TO_RAD_S, T_CELSIUS_OFFSET
from sco2_cycle.utils.logging_utils import configure_logging
from sco2_cycle.utils.units import (
    conductance_to_si,
    convert,
    power_from_si,
    power_to_si,
    pressure_from_si,
    pressure_to_si,
    temperature_from_si,
    temperature_to_si,
)
from sco2_cycle.utils.validation import (
    Severity,
    ValidationResult,
    validate_non_negative,
    validate_positive,
    validate_range,
)


class TestConstants:
    def test_celsius_offset(self):
        assert T_CELSIUS_OFFSET == pytest.approx(273.15)

    def test_speed_conversion(self):
        assert RPM_TO_RAD_S * RAD_S_TO_RPM == pytest.approx(1.0, rel=1e-8)

    def test_mpa(self):
        assert MPA_TO_PA == 1.0e6


class TestUnits:
    """Test pint-based conversions."""

    def test_pressure(self):
        assert pressure_to_si(7.65, "MPa") == pytest.approx(7.65e6)
        assert pressure_to_si(1.0, "bar") == pytest.approx(1.0e5)
        assert pressure_from_si(2.0e7, "MPa") == pytest.approx(20.0)

    def test_temperature(self):
        assert temperature_to_si(32.0, "degC") == pytest.approx(305.15)
        assert temperature_from_si(823.15, "degC") == pytest.approx(550.0)

    def test_power(self):
        assert power_to_si(10.0, "MW") == pytest.approx(1.0e7)
        assert power_from_si(5.0e5, "kW") == pytest.approx(500.0)

    def test_conductance(self):
        assert conductance_to_si(500.0, "kW/K") == pytest.approx(5.0e5)

    def test_convert(self):
        assert convert(1.0, "MW", "kW") == pytest.approx(1000.0)
        assert convert(0.125, "m**2", "cm**2") == pytest.approx(1250.0)


class TestValidation:
    """Test validation helpers."""

    def test_positive(self):
        result = ValidationResult()
        validate_positive("x", 1.0, result)
        assert result.is_valid
        validate_positive("y", 0.0, result)
        assert not result.is_valid

    def test_non_negative(self):
        result = ValidationResult()
        validate_non_negative("x", 0.0, result)
        assert result.is_valid
        validate_non_negative("x", float("nan"), result)
        assert not result.is_valid

    def test_range_warning(self):
        result = ValidationResult()
        validate_range("f", 1.5, 0.0, 1.0, result, severity=Severity.WARNING)
        assert result.is_valid
        assert result.has_warnings
        assert result.warnings[0].limit == (0.0, 1.0)

    def test_summary_and_merge(self):
        a = ValidationResult()
        a.error("x", "x is bad")
        b = ValidationResult()
        b.error("y", "y is bad")
        b.info("z", "z is fine")
        a.merge(b)
        assert a.summary() == "x is bad; y is bad"
        assert len(a.messages) == 3


class TestLogging:
    def test_configure_logging(self):
        logger = configure_logging("DEBUG", console=Console(file=None), force=True)
        assert logger.name == "sco2_cycle"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_repeat_keeps_single_handler(self):
        configure_logging(logging.INFO, force=True)
        logger = configure_logging(logging.WARNING)
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
