"""Base classes for cycle components.

Turbomachines are sized once at the design point, which yields an immutable
design record, and then evaluated at arbitrary off-design conditions against
that record.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sco2_cycle.core.errors import CycleError, ErrorCode
from sco2_cycle.core.fluids import Fluid

DesignT = TypeVar("DesignT")


class Turbomachine(ABC, Generic[DesignT]):
    """Abstract base class for a sized turbomachine.

    Args:
        fluid: Property oracle used for all state evaluations.
        design: Design record from a previous :meth:`size` call, if any.
    """

    name: str = ""

    def __init__(self, fluid: Fluid, design: DesignT | None = None):
        self.fluid = fluid
        self._design = design

    @property
    def design(self) -> DesignT:
        """Design record; raises if the machine has not been sized."""
        if self._design is None:
            raise CycleError(f"{self.name} has not been sized", ErrorCode.INVALID_INPUT)
        return self._design

    @abstractmethod
    def size(self, *args: Any, **kwargs: Any) -> DesignT:
        """Fix geometry and design speed from a design-point duty."""
        ...

    @abstractmethod
    def off_design(self, *args: Any, **kwargs: Any) -> Any:
        """Evaluate the machine at off-design conditions."""
        ...
