"""Project state and JSON I/O for cycle studies.

A project file stores the topology, the design parameters, the solved design
summary and any off-design or optimisation summaries.  Solved objects are not
pickled: a stored design is re-solved from its parameters when it is needed
again.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

import numpy as np

from sco2_cycle.core.errors import InputValidationError
from sco2_cycle.cycle.parameters import DesignParameters

logger = logging.getLogger(__name__)

ParamsT = TypeVar("ParamsT")


# --- Project metadata ---


@dataclass
class ProjectMeta:
    """Top-level project metadata."""

    name: str = "Untitled"
    description: str = ""
    author: str = ""
    version: str = "0.1.0"
    created: str = ""
    modified: str = ""

    def touch(self) -> None:
        """Update the modified timestamp (and the creation stamp on first save)."""
        now = datetime.now(timezone.utc).isoformat()
        if not self.created:
            self.created = now
        self.modified = now


@dataclass
class CycleProject:
    """Everything persisted for one cycle study."""

    meta: ProjectMeta = field(default_factory=ProjectMeta)
    topology: str = "standard"
    fluid: str = "CO2"

    # Design inputs (see DesignParameters)
    design_parameters: dict[str, Any] = field(default_factory=dict)

    # Solved design summary
    design: dict[str, Any] = field(default_factory=dict)

    # Named off-design and optimisation summaries
    off_design: dict[str, Any] = field(default_factory=dict)
    optimization: dict[str, Any] = field(default_factory=dict)

    def set_design_parameters(self, params: DesignParameters) -> None:
        self.design_parameters = parameters_to_dict(params)

    def get_design_parameters(self) -> DesignParameters:
        if not self.design_parameters:
            raise InputValidationError(f"Project '{self.meta.name}' has no design parameters")
        return parameters_from_dict(DesignParameters, self.design_parameters)


# --- Parameter conversion ---


def parameters_to_dict(params: Any) -> dict[str, Any]:
    """Plain dictionary of a parameter dataclass (pairs become lists)."""
    if not is_dataclass(params):
        raise TypeError(f"Expected a parameter dataclass, got {type(params).__name__}")
    return {key: list(value) if isinstance(value, tuple) else value for key, value in asdict(params).items()}


def parameters_from_dict(cls: type[ParamsT], data: dict[str, Any]) -> ParamsT:
    """Build a parameter dataclass from a dictionary; lists become tuples.

    Raises:
        InputValidationError: on keys the dataclass does not define.
    """
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InputValidationError(f"Unknown {cls.__name__} fields: {', '.join(unknown)}")
    kwargs = {key: tuple(value) if isinstance(value, list) else value for key, value in data.items()}
    return cls(**kwargs)


# --- JSON serialization ---


class _NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, (np.integer,)):
            return int(obj)
        if isinstance(obj, (np.floating,)):
            return float(obj)
        if isinstance(obj, (np.bool_,)):
            return bool(obj)
        return super().default(obj)


def save_project_json(project: CycleProject, path: str | Path) -> None:
    """Save a project to a JSON file."""
    path = Path(path)
    project.meta.touch()
    with open(path, "w") as f:
        json.dump(asdict(project), f, indent=2, cls=_NumpyEncoder)
    logger.info("Saved project to %s", path)


def load_project_json(path: str | Path) -> CycleProject:
    """Load a project from a JSON file."""
    path = Path(path)
    with open(path) as f:
        data = json.load(f)
    meta = ProjectMeta(**data.pop("meta", {}))
    return CycleProject(meta=meta, **data)


def load_design_project(path: str | Path) -> CycleProject:
    """Read a project file, or wrap a flat parameter file in a default project.

    A project file is recognised by its ``design_parameters`` entry and keeps
    its topology and fluid; any other JSON object is taken as the parameter
    fields themselves.  The parameters are checked on load.
    """
    path = Path(path)
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise InputValidationError(f"{path} does not hold a JSON object")
    if "design_parameters" in data:
        project = load_project_json(path)
    else:
        project = CycleProject(meta=ProjectMeta(name=path.stem), design_parameters=data)
    project.get_design_parameters()
    return project