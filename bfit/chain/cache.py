"""
Parameter-dependent precomputation for the decay-chain model.

Everything the population kernels need that depends on the parameter vector
but not on time is computed here, once per accepted parameter change. An
optimiser evaluates the model at every histogram bin with the same vector, so
the expensive part (modified lifetimes, amplitudes, steady-state initial
values) is paid once per iteration instead of once per bin.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from ..cases import CaseConstants
from ..constants import IOTA
from ..parameters import (
    N_PARS,
    PAR_INDEX,
    PAR_NAMES,
    ParameterLayoutError,
    ParameterVector,
    as_parameter_array,
    changed_names,
)
from .amplitudes import ChainCoefficients, compute_chain_coefficients
from .initial_values import InitialValues, solve_initial_values

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedState:
    """Coefficients plus steady-state initial values; read-only between refreshes."""

    coeffs: ChainCoefficients
    initial: InitialValues


def compute_derived_state(par: Union[ParameterVector, Sequence[float], np.ndarray],
                          case: CaseConstants) -> DerivedState:
    """Pure function of (parameters, case); no dependency on earlier cache contents."""
    coeffs = compute_chain_coefficients(par, case)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        initial = solve_initial_values(coeffs, case)
    return DerivedState(coeffs=coeffs, initial=initial)


class ParameterCache:
    """
    Lazily rebuilt derived state for one fit session.

    ``refresh`` compares the incoming vector element-wise with the last
    accepted one and only recomputes when some element moved by more than
    ``tol``. Not safe for concurrent use with different parameter streams;
    give every concurrent fit its own instance.

    Parameters
    ----------
    case : CaseConstants
        Constants of the case being fitted
    tol : float
        Absolute per-element tolerance for change detection
    free : iterable of str, optional
        Parameter names reported in the change log (all when omitted)

    Raises
    ------
    ParameterLayoutError
        If ``free`` names a parameter outside the layout
    """

    def __init__(self, case: CaseConstants, tol: float = IOTA,
                 free: Optional[Iterable[str]] = None):
        self.case = case
        self.tol = float(tol)
        self.free = list(free) if free else None
        if self.free:
            unknown = [name for name in self.free if name not in PAR_INDEX]
            if unknown:
                raise ParameterLayoutError(
                    f"Unknown free parameter name(s): {unknown}. Available: {list(PAR_NAMES)}"
                )
        self.n_changes = 0
        self._last: Optional[np.ndarray] = None
        self._state: Optional[DerivedState] = None

    @property
    def state(self) -> Optional[DerivedState]:
        return self._state

    @property
    def last_parameters(self) -> Optional[ParameterVector]:
        return ParameterVector(self._last) if self._last is not None else None

    def reset(self) -> None:
        self._last = None
        self._state = None

    def is_current(self, a: np.ndarray) -> bool:
        if self._last is None:
            return False
        # NaN never compares as unchanged
        return bool(np.all(np.abs(a[:N_PARS] - self._last) <= self.tol))

    def refresh(self, par: Union[ParameterVector, Sequence[float], np.ndarray]) -> DerivedState:
        """
        Return the derived state for ``par``, recomputing only on change.

        Raises
        ------
        ParameterLayoutError
            If ``par`` has fewer elements than the parameter layout
        """
        a = as_parameter_array(par)
        if a.size < N_PARS:
            raise ParameterLayoutError(f"Parameter vector has {a.size} elements, expected {N_PARS}")
        if self._state is not None and self.is_current(a):
            return self._state

        new = np.array(a[:N_PARS], dtype=float)
        names = changed_names(self._last, new, self.tol, self.free)

        self._state = compute_derived_state(new, self.case)
        self._last = new
        self.n_changes += 1

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("New params (%d): %s", self.n_changes,
                         " ".join(f"{name}={new[PAR_INDEX[name]]:.4e}" for name in names))
        return self._state


