"""Unit conversion utilities built on pint.

Solvers work in SI only; the command-line layer converts user input and
displayed results here.
"""

from __future__ import annotations

from functools import lru_cache

import pint

_ureg = pint.UnitRegistry()
Q_ = _ureg.Quantity


def pressure_to_si(value: float, unit: str) -> float:
    """Convert pressure value to Pascals (e.g. from "MPa", "bar", "kPa")."""
    return Q_(value, unit).to("Pa").magnitude


def pressure_from_si(value_pa: float, unit: str) -> float:
    """Convert pressure from Pascals to target unit."""
    return Q_(value_pa, "Pa").to(unit).magnitude


def temperature_to_si(value: float, unit: str) -> float:
    """Convert temperature to Kelvin (e.g. from "degC")."""
    return Q_(value, unit).to("K").magnitude


def temperature_from_si(value_k: float, unit: str) -> float:
    """Convert temperature from Kelvin to target unit."""
    return Q_(value_k, "K").to(unit).magnitude


def power_to_si(value: float, unit: str) -> float:
    """Convert power to Watts."""
    return Q_(value, unit).to("W").magnitude


def power_from_si(value_w: float, unit: str) -> float:
    """Convert power from Watts to target unit."""
    return Q_(value_w, "W").to(unit).magnitude


def conductance_to_si(value: float, unit: str) -> float:
    """Convert a conductance (UA) to W/K."""
    return Q_(value, unit).to("W/K").magnitude


@lru_cache(maxsize=256)
def convert(value: float, from_unit: str, to_unit: str) -> float:
    """General-purpose unit conversion."""
    return Q_(value, from_unit).to(to_unit).magnitude
