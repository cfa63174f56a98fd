"""Input validation for cycle parameters."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity level for validation messages."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationMessage:
    """A single validation finding."""

    severity: Severity
    parameter: str
    message: str
    value: Any = None
    limit: Any = None


@dataclass
class ValidationResult:
    """Aggregated validation result."""

    messages: list[ValidationMessage] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(m.severity == Severity.ERROR for m in self.messages)

    @property
    def has_warnings(self) -> bool:
        return any(m.severity == Severity.WARNING for m in self.messages)

    @property
    def errors(self) -> list[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.WARNING]

    def add(self, severity: Severity, parameter: str, message: str, **kwargs: Any) -> None:
        self.messages.append(
            ValidationMessage(severity=severity, parameter=parameter, message=message, **kwargs)
        )

    def error(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.ERROR, parameter, message, **kwargs)

    def warning(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.WARNING, parameter, message, **kwargs)

    def info(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.INFO, parameter, message, **kwargs)

    def merge(self, other: ValidationResult) -> None:
        self.messages.extend(other.messages)

    def summary(self) -> str:
        """One line per error, for exception messages."""
        return "; ".join(m.message for m in self.errors)


def validate_positive(name: str, value: float, result: ValidationResult) -> None:
    """Validate that a value is strictly positive and finite."""
    if not math.isfinite(value) or value <= 0:
        result.error(name, f"{name} must be positive, got {value}", value=value)


def validate_non_negative(name: str, value: float, result: ValidationResult) -> None:
    """Validate that a value is zero or positive."""
    if not math.isfinite(value) or value < 0:
        result.error(name, f"{name} must be non-negative, got {value}", value=value)


def validate_range(
    name: str,
    value: float,
    low: float,
    high: float,
    result: ValidationResult,
    severity: Severity = Severity.ERROR,
) -> None:
    """Validate that a value falls within [low, high]."""
    if not math.isfinite(value) or value < low or value > high:
        result.add(
            severity, name, f"{name} = {value} is outside [{low}, {high}]",
            value=value, limit=(low, high),
        )
