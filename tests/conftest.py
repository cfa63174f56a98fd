"""Shared fixtures: one property oracle and two solved reference designs."""

import pytest

from sco2_cycle.core.fluids import Fluid
from sco2_cycle.cycle.design import design_core, finalize_design
from sco2_cycle.cycle.parameters import DesignParameters

# 10 MW, 32 C / 7.65 MPa compressor inlet, 550 C / 20 MPa turbine inlet
RECOMPRESSION_PARAMS = DesignParameters(UA_LT=5.0e5, UA_HT=5.0e5, recomp_frac=0.3)
SIMPLE_PARAMS = DesignParameters(UA_LT=0.0, UA_HT=0.0, recomp_frac=0.0)


@pytest.fixture(scope="session")
def fluid():
    return Fluid()


@pytest.fixture(scope="session")
def recompression_design(fluid):
    return finalize_design(fluid, design_core(fluid, RECOMPRESSION_PARAMS))


@pytest.fixture(scope="session")
def simple_design(fluid):
    return finalize_design(fluid, design_core(fluid, SIMPLE_PARAMS))
