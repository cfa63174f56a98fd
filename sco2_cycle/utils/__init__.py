"""Utility modules for sco2-cycle."""

from sco2_cycle.utils.constants import RAD_S_TO_RPM, RPM_TO_RAD_S, T_CELSIUS_OFFSET
from sco2_cycle.utils.units import convert

__all__ = ["RAD_S_TO_RPM", "RPM_TO_RAD_S", "T_CELSIUS_OFFSET", "convert"]
