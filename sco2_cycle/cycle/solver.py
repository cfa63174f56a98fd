"""Public recompression-cycle solver.

:class:`RecompCycle` owns a property oracle and a topology, and exposes every
design and off-design driver with a ``(result, code)`` contract: ``code`` is
0 on success, otherwise the :class:`~sco2_cycle.core.errors.ErrorCode` of the
failure and ``result`` is ``None``.  The last sized design and the last
off-design solution are kept; they are never mutated.

Typical use::

    cycle = RecompCycle()
    design, code = cycle.design(DesignParameters(UA_LT=5.0e5, UA_HT=5.0e5, recomp_frac=0.3))
    od, code = cycle.off_design(off_design_parameters_at_design(design))
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import numpy as np

from sco2_cycle.core.errors import CycleError, ErrorCode, InputValidationError
from sco2_cycle.core.fluids import Fluid
from sco2_cycle.cycle import design as _design
from sco2_cycle.cycle import off_design as _off_design
from sco2_cycle.cycle.design import DesignPoint, DesignSolved
from sco2_cycle.cycle.off_design import OffDesignSolved
from sco2_cycle.cycle.parameters import (
    AutoOptimalDesignParameters,
    DesignLimits,
    DesignParameters,
    MaxOutputParameters,
    OffDesignParameters,
    OptimalDesignParameters,
    OptimalOffDesignParameters,
    TargetEfficiencyParameters,
    TargetOffDesignParameters,
)
from sco2_cycle.cycle.topology import Topology, get_topology
from sco2_cycle.optimization import design_opt, off_design_opt
from sco2_cycle.utils.validation import ValidationResult

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class RecompCycle:
    """Recompression Brayton cycle with design, off-design and optimisation drivers.

    Args:
        fluid: Property oracle; a fresh CO2 :class:`Fluid` when omitted.
        topology: Topology name (see :data:`~sco2_cycle.cycle.topology.TOPOLOGIES`)
            or instance.
        limits: Iteration caps and conductance-ratio limits.
        seed: Seed of the generator used for random retries.
    """

    def __init__(
        self,
        fluid: Fluid | None = None,
        topology: str | Topology = "standard",
        limits: DesignLimits = DesignLimits(),
        seed: int = 0,
    ):
        self.fluid = fluid or Fluid()
        self.topology = get_topology(topology)
        self.limits = limits
        self.rng = np.random.default_rng(seed)
        self.last_design: DesignSolved | None = None
        self.last_off_design: OffDesignSolved | None = None

    def __repr__(self) -> str:
        return f"RecompCycle(fluid={self.fluid.name!r}, topology={self.topology.name!r})"

    def _run(self, label: str, func: Callable[..., ResultT], *args: Any) -> tuple[ResultT | None, int]:
        try:
            return func(*args), int(ErrorCode.SUCCESS)
        except CycleError as exc:
            logger.warning("%s failed: %s", label, exc)
            return None, int(exc.code)

    def _require_design(self, design: DesignSolved | None) -> DesignSolved:
        design = design or self.last_design
        if design is None:
            raise InputValidationError("No sized design available; run a design first")
        return design

    def _keep_design(self, solved: DesignSolved | None) -> None:
        if solved is not None:
            self.last_design = solved

    def _keep_off_design(self, solved: OffDesignSolved | None) -> None:
        if solved is not None:
            self.last_off_design = solved

    # --- Design ---

    def design_core(self, params: DesignParameters) -> tuple[DesignPoint | None, int]:
        """Converged design state vector without turbomachinery sizing."""
        return self._run(
            "Design",
            _design.design_core,
            self.fluid, params, self.topology, self.limits.design_max_iter,
        )

    def finalize_design(self, point: DesignPoint) -> tuple[DesignSolved | None, int]:
        """Size the turbomachinery for ``point`` and keep the result."""
        solved, code = self._run("Design sizing", _design.finalize_design, self.fluid, point)
        self._keep_design(solved)
        return solved, code

    def design(self, params: DesignParameters) -> tuple[DesignSolved | None, int]:
        """Solve and size a design point."""
        point, code = self.design_core(params)
        if point is None:
            return None, code
        return self.finalize_design(point)

    def optimal_design(self, params: OptimalDesignParameters) -> tuple[DesignSolved | None, int]:
        """Locally optimise the free design variables, then size the best design."""
        point, code = self._run(
            "Design optimisation",
            design_opt.optimize_design,
            self.fluid, params, self.topology, self.limits.design_max_iter,
        )
        if point is None:
            return None, code
        return self.finalize_design(point)

    def auto_optimal_design(self, params: AutoOptimalDesignParameters) -> tuple[DesignSolved | None, int]:
        """Search the high pressure, fraction and split for the best efficiency."""
        solved, code = self._run(
            "Auto-optimisation",
            design_opt.auto_optimize,
            self.fluid, params, self.topology, self.limits.design_max_iter,
        )
        self._keep_design(solved)
        return solved, code

    def design_for_target_efficiency(
        self, params: TargetEfficiencyParameters
    ) -> tuple[DesignSolved | None, int, ValidationResult]:
        """Size the recuperator conductance for a target thermal efficiency.

        Returns:
            ``(design, code, findings)``; the findings list clamps as warnings
            and rejections as errors.
        """
        try:
            solved, validation = design_opt.design_for_target_efficiency(
                self.fluid, params, self.limits, self.topology
            )
        except CycleError as exc:
            logger.warning("Target-efficiency design failed: %s", exc)
            validation = getattr(exc, "validation", None) or ValidationResult()
            if not validation.errors:
                validation.error("eta_thermal", str(exc))
            return None, int(exc.code), validation
        for message in validation.warnings:
            logger.warning("%s: %s", message.parameter, message.message)
        self._keep_design(solved)
        return solved, int(ErrorCode.SUCCESS), validation

    # --- Off-design ---

    def off_design_core(
        self, params: OffDesignParameters, design: DesignSolved | None = None
    ) -> tuple[OffDesignSolved | None, int]:
        """Solve an operating point of ``design`` (the last sized design by default)."""
        try:
            design = self._require_design(design)
        except InputValidationError as exc:
            logger.warning("Off-design failed: %s", exc)
            return None, int(exc.code)
        return self._run(
            "Off-design",
            _off_design.off_design_core,
            self.fluid, params, design, self.limits.off_design_max_iter,
        )

    def off_design(
        self, params: OffDesignParameters, design: DesignSolved | None = None
    ) -> tuple[OffDesignSolved | None, int]:
        """Solve an operating point and keep the result."""
        solved, code = self.off_design_core(params, design)
        self._keep_off_design(solved)
        return solved, code

    def target_off_design(
        self, params: TargetOffDesignParameters, design: DesignSolved | None = None
    ) -> tuple[OffDesignSolved | None, int]:
        """Find the compressor inlet pressure that meets a power or heat target."""
        solved, code = self._off_design_driver(
            "Target off-design", off_design_opt.target_off_design, params, design, self.rng
        )
        self._keep_off_design(solved)
        return solved, code

    def optimal_off_design(
        self, params: OptimalOffDesignParameters, design: DesignSolved | None = None
    ) -> tuple[OffDesignSolved | None, int]:
        """Maximise net power or efficiency over the free off-design controls."""
        solved, code = self._off_design_driver(
            "Optimal off-design", off_design_opt.optimal_off_design, params, design
        )
        self._keep_off_design(solved)
        return solved, code

    def max_output_off_design(
        self, params: MaxOutputParameters, design: DesignSolved | None = None
    ) -> tuple[tuple[float, OffDesignSolved] | None, int]:
        """Largest achievable power (or heat input) as ``((value, solution), code)``."""
        result, code = self._off_design_driver(
            "Max-output off-design", off_design_opt.max_output_off_design, params, design
        )
        if result is not None:
            self._keep_off_design(result[1])
        return result, code

    def _off_design_driver(
        self, label: str, func: Callable[..., ResultT], params: Any, design: DesignSolved | None, *extra: Any
    ) -> tuple[ResultT | None, int]:
        try:
            design = self._require_design(design)
        except InputValidationError as exc:
            logger.warning("%s failed: %s", label, exc)
            return None, int(exc.code)
        return self._run(label, func, self.fluid, params, design, self.limits.off_design_max_iter, *extra)
