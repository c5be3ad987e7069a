"""
Analytic decay-chain populations of a periodically reloaded ion trap.

Three generations (parent, daughter, granddaughter) are followed through a
measurement cycle made of a free-decay background window and a capture
window with periodic injections. The model returns expected counts per
histogram bin for a fit parameter vector.
"""

from .constants import IOTA, LN2, lifetime_from_halflife, halflife_from_lifetime

from .parameters import (
    PAR_NAMES,
    PAR_INDEX,
    N_PARS,
    ParameterLayoutError,
    ParameterVector,
)

from .cases import (
    CaseConstants,
    CaseConfigurationError,
    case_from_config,
    load_cases,
    get_case,
)

from .config_utils import convert_numeric_strings, preprocess_config, load_config

# chain before populations: the initial-value solver needs the capture kernels
from .chain import (
    ChainCoefficients,
    DerivedState,
    ParameterCache,
    InitialValues,
    compute_chain_coefficients,
    compute_derived_state,
    solve_initial_values,
)

from .populations import species_value

from .observables import BFitModel

__all__ = [
    "IOTA",
    "LN2",
    "lifetime_from_halflife",
    "halflife_from_lifetime",
    "PAR_NAMES",
    "PAR_INDEX",
    "N_PARS",
    "ParameterLayoutError",
    "ParameterVector",
    "CaseConstants",
    "CaseConfigurationError",
    "case_from_config",
    "load_cases",
    "get_case",
    "convert_numeric_strings",
    "preprocess_config",
    "load_config",
    "ChainCoefficients",
    "DerivedState",
    "ParameterCache",
    "InitialValues",
    "compute_chain_coefficients",
    "compute_derived_state",
    "solve_initial_values",
    "species_value",
    "BFitModel",
]
