"""Error taxonomy for the cycle solvers.

Every failure carries an integer code so that the public solver methods can
return ``(result, code)`` pairs.  Zero means success.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sco2_cycle.utils.validation import ValidationResult


class ErrorCode(IntEnum):
    """Numeric error codes reported by the cycle solvers."""

    SUCCESS = 0
    INVALID_INPUT = -1

    # Components
    COMPRESSOR_INFEASIBLE = 1
    COMPRESSOR_OUTLET_OUT_OF_RANGE = 2
    PROPERTY_FAILURE = 3
    HX_NEGATIVE_DUTY = 4
    HX_INLET_TEMPERATURE_ORDER = 5
    HX_HOT_PRESSURE_RISE = 6
    HX_COLD_PRESSURE_RISE = 7
    TURBINE_SHAFT_SPEED = 8
    HX_HOT_INLET_PROPERTY = 9
    TURBINE_PRESSURE_RATIO = 10
    SECOND_LAW_VIOLATION = 11
    HX_HOT_NODE_PROPERTY = 12
    HX_COLD_NODE_PROPERTY = 13
    HX_CONDUCTANCE_NAN = 14

    # Cycle equilibrium
    NO_NET_POWER = 25
    TARGET_NOT_BRACKETED = 26
    NEGATIVE_MASS_FLOW = 29
    T9_NOT_CONVERGED = 31
    T8_NOT_CONVERGED = 35
    MASS_FLOW_NOT_CONVERGED = 42
    TARGET_NOT_CONVERGED = 82

    # Drivers
    NO_MAXIMUM_OUTPUT = 99
    NO_FEASIBLE_DESIGN = 100
    NO_FEASIBLE_OFF_DESIGN = 111


class CycleError(Exception):
    """Base class for all solver failures."""

    default_code = ErrorCode.PROPERTY_FAILURE

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = ErrorCode(code) if code is not None else self.default_code

    def __str__(self) -> str:
        return f"[{int(self.code)}] {self.args[0]}"


class SecondLawViolation(CycleError):
    """Cold stream at or above the hot stream somewhere in a recuperator."""

    default_code = ErrorCode.SECOND_LAW_VIOLATION


class HeatExchangerError(CycleError):
    """Invalid heat-exchanger inputs or a non-finite conductance."""

    default_code = ErrorCode.HX_CONDUCTANCE_NAN


class CompressorOperatingError(CycleError):
    """The compressor map cannot deliver the requested operating point."""

    default_code = ErrorCode.COMPRESSOR_INFEASIBLE


class InfeasibleCycleError(CycleError):
    """The cycle cannot produce positive net power with these inputs."""

    default_code = ErrorCode.NO_NET_POWER


class ConvergenceError(CycleError):
    """A bounded iteration exhausted its iteration cap."""

    default_code = ErrorCode.MASS_FLOW_NOT_CONVERGED


class InputValidationError(CycleError):
    """Inputs rejected before solving."""

    default_code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, validation: ValidationResult | None = None):
        super().__init__(message, ErrorCode.INVALID_INPUT)
        self.validation = validation
