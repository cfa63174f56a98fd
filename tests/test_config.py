"""Tests for project files and parameter conversion."""

import json

import numpy as np
import pytest

from sco2_cycle.core.config import (
    CycleProject,
    ProjectMeta,
    load_design_project,
    load_project_json,
    parameters_from_dict,
    parameters_to_dict,
    save_project_json,
)
from sco2_cycle.core.errors import InputValidationError
from sco2_cycle.cycle.parameters import DesignParameters, OffDesignParameters


class TestProjectMeta:
    def test_touch(self):
        meta = ProjectMeta(name="Test")
        meta.touch()
        assert meta.created != ""
        assert meta.modified >= meta.created

    def test_touch_keeps_creation_stamp(self):
        meta = ProjectMeta(created="2020-01-01T00:00:00+00:00")
        meta.touch()
        assert meta.created == "2020-01-01T00:00:00+00:00"


class TestParameterConversion:
    """Test dataclass <-> dictionary conversion."""

    def test_pairs_become_lists(self):
        data = parameters_to_dict(DesignParameters(DP_LT=(-0.01, 5.0e4)))
        assert data["DP_LT"] == [-0.01, 5.0e4]
        assert data["UA_LT"] == 0.0

    def test_lists_become_tuples(self):
        params = parameters_from_dict(DesignParameters, {"DP_HT": [0.0, -0.02], "recomp_frac": 0.25})
        assert params.DP_HT == (0.0, -0.02)
        assert params.recomp_frac == 0.25
        assert params.W_dot_net == 10.0e6

    def test_round_trip(self):
        params = DesignParameters(UA_LT=3.0e5, DP_PC=(0.0, 1.0e4))
        assert parameters_from_dict(DesignParameters, parameters_to_dict(params)) == params

    def test_unknown_keys(self):
        with pytest.raises(InputValidationError, match="UA_total"):
            parameters_from_dict(DesignParameters, {"UA_total": 1.0e6})

    def test_other_parameter_sets(self):
        params = parameters_from_dict(OffDesignParameters, {"N_mc": 30000.0})
        assert params.N_mc == 30000.0

    def test_rejects_non_dataclass(self):
        with pytest.raises(TypeError):
            parameters_to_dict({"UA_LT": 1.0})


class TestCycleProject:
    def test_design_parameters(self):
        project = CycleProject()
        project.set_design_parameters(DesignParameters(recomp_frac=0.3))
        assert project.get_design_parameters().recomp_frac == 0.3

    def test_missing_design_parameters(self):
        with pytest.raises(InputValidationError):
            CycleProject().get_design_parameters()


class TestJsonPersistence:
    """Test saving and loading project files."""

    def test_save_and_load(self, tmp_path):
        project = CycleProject(meta=ProjectMeta(name="Test Cycle"), topology="bypass")
        project.set_design_parameters(DesignParameters(UA_LT=5.0e5, DP_LT=(-0.01, -0.01)))
        project.off_design["run"] = {"W_dot_net": 9.5e6}
        path = tmp_path / "cycle.json"
        save_project_json(project, path)

        loaded = load_project_json(path)
        assert loaded.meta.name == "Test Cycle"
        assert loaded.meta.modified != ""
        assert loaded.topology == "bypass"
        assert loaded.get_design_parameters().DP_LT == (-0.01, -0.01)
        assert loaded.off_design["run"]["W_dot_net"] == pytest.approx(9.5e6)

    def test_numpy_serialization(self, tmp_path):
        """Numpy values in summaries are written as plain JSON."""
        project = CycleProject()
        project.design = {
            "T": np.linspace(300.0, 800.0, 10),
            "eta_thermal": np.float64(0.45),
            "surge": np.bool_(False),
        }
        path = tmp_path / "np.json"
        save_project_json(project, path)

        with open(path) as f:
            data = json.load(f)
        assert len(data["design"]["T"]) == 10
        assert data["design"]["surge"] is False

    def test_load_design_project_keeps_topology_and_fluid(self, tmp_path):
        project = CycleProject(topology="bypass", fluid="CarbonDioxide")
        project.set_design_parameters(DesignParameters(recomp_frac=0.35))
        path = tmp_path / "project.json"
        save_project_json(project, path)
        loaded = load_design_project(path)
        assert loaded.get_design_parameters().recomp_frac == 0.35
        assert loaded.topology == "bypass"
        assert loaded.fluid == "CarbonDioxide"

    def test_load_design_project_flat(self, tmp_path):
        path = tmp_path / "flat.json"
        path.write_text(json.dumps({"UA_LT": 2.0e5, "DP_PHX": [-0.02, 0.0]}))
        project = load_design_project(path)
        assert project.topology == "standard"
        assert project.fluid == "CO2"
        params = project.get_design_parameters()
        assert params.UA_LT == 2.0e5
        assert params.DP_PHX == (-0.02, 0.0)

    def test_load_design_project_not_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(InputValidationError):
            load_design_project(path)
