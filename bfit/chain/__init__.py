from .coefficients import (
    modified_lifetime,
    sigma_t,
    sigma_w,
    sigma_z,
    injection_index,
)
from .amplitudes import ChainCoefficients, compute_chain_coefficients, effective_parameters
from .cache import DerivedState, ParameterCache, compute_derived_state
from .initial_values import InitialValues, solve_initial_values

__all__ = [
    "modified_lifetime",
    "sigma_t",
    "sigma_w",
    "sigma_z",
    "injection_index",
    "ChainCoefficients",
    "compute_chain_coefficients",
    "effective_parameters",
    "DerivedState",
    "ParameterCache",
    "compute_derived_state",
    "InitialValues",
    "solve_initial_values",
]
