# tests/conftest.py
import pytest

from bfit.cases import get_case
from bfit.config_utils import load_config
from bfit.parameters import ParameterVector

CASE_CODE = "137i07"


@pytest.fixture(scope="session")
def config():
    """A master fixture that loads and preprocesses config/default.yaml once for all tests."""
    return load_config()


@pytest.fixture(scope="session")
def case(config):
    return get_case(config, CASE_CODE)


@pytest.fixture(scope="session")
def parameters(config):
    """Starting vector of the default case (all rate shifts zero)."""
    return ParameterVector.from_mapping(config['cases'][CASE_CODE]['parameters'])


@pytest.fixture(scope="session")
def shifted_parameters(parameters):
    """Generation-1 trapped and untrapped rate shifts switched on."""
    return parameters.replace(gammaT1=0.05, gammaU1=0.02)
