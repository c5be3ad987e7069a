"""
Named layout of the fit parameter vector.

The optimiser hands the model a flat array; everything inside the package
addresses slots by name through ``PAR_INDEX`` so the ordering is defined in
exactly one place.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

PAR_NAMES = (
    "p",        # fraction of injected ions captured in the trap
    "rho",      # per-capture trap retention
    "r1", "r2", "r3",                   # production rates per generation (ions/ms)
    "gammaT1", "gammaT2", "gammaT3",    # trapped decay-rate shifts (1/s)
    "gammaU1", "gammaU2", "gammaU3",    # untrapped decay-rate shifts (1/s)
    "epsT", "epsV", "epsW", "epsZ", "epsX", "epsY",  # detection efficiencies
    "DC",       # background rate (counts/ms)
    "dt",       # bin width (ms)
    "nCyc",     # number of cycles summed into the histogram
)

N_PARS = len(PAR_NAMES)

PAR_INDEX: Dict[str, int] = {name: i for i, name in enumerate(PAR_NAMES)}


class ParameterLayoutError(ValueError):
    """Raised when a parameter vector does not match the fixed layout."""


class ParameterVector:
    """
    Immutable, name-addressed view of a fit parameter vector.

    Parameters
    ----------
    values : sequence of float
        Exactly ``N_PARS`` values in ``PAR_NAMES`` order

    Raises
    ------
    ParameterLayoutError
        If the number of values differs from ``N_PARS``
    """

    __slots__ = ("_values",)

    def __init__(self, values: Sequence[float]):
        if isinstance(values, ParameterVector):
            values = values._values
        arr = np.array(values, dtype=float).reshape(-1)
        if arr.size != N_PARS:
            raise ParameterLayoutError(
                f"Parameter vector has {arr.size} elements, expected {N_PARS} ({', '.join(PAR_NAMES)})"
            )
        arr.setflags(write=False)
        self._values = arr

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, float],
                     base: Optional["ParameterVector"] = None) -> "ParameterVector":
        """Build a vector from ``{name: value}``; unspecified slots come from ``base`` or 0."""
        unknown = sorted(set(mapping) - set(PAR_NAMES))
        if unknown:
            raise ParameterLayoutError(f"Unknown parameter name(s): {unknown}. Available: {list(PAR_NAMES)}")
        values = base.as_array() if base is not None else np.zeros(N_PARS)
        for name, value in mapping.items():
            values[PAR_INDEX[name]] = float(value)
        return cls(values)

    def __getitem__(self, name: str) -> float:
        try:
            return float(self._values[PAR_INDEX[name]])
        except KeyError:
            raise KeyError(f"Unknown parameter name: {name}") from None

    def __len__(self) -> int:
        return N_PARS

    def keys(self):
        return PAR_NAMES

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParameterVector):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    def __repr__(self) -> str:
        body = ", ".join(f"{n}={v:.6g}" for n, v in zip(PAR_NAMES, self._values))
        return f"ParameterVector({body})"

    def as_array(self) -> np.ndarray:
        """Writable copy of the values in layout order."""
        return self._values.copy()

    def as_dict(self) -> Dict[str, float]:
        return {name: float(v) for name, v in zip(PAR_NAMES, self._values)}

    def replace(self, **changes: float) -> "ParameterVector":
        return ParameterVector.from_mapping(changes, base=self)


def as_parameter_array(par: Union[ParameterVector, Sequence[float], np.ndarray]) -> np.ndarray:
    """Return the raw float array of ``par`` without validating its length."""
    if isinstance(par, ParameterVector):
        return par._values
    return np.asarray(par, dtype=float)


def changed_names(old: Optional[np.ndarray], new: np.ndarray, tol: float,
                  names: Optional[Iterable[str]] = None) -> List[str]:
    """
    List the parameter names whose absolute change exceeds ``tol``.

    When ``old`` is None every name counts as changed. ``names`` restricts the
    report to a subset (e.g. the parameters a fit leaves free).
    """
    selected = list(names) if names is not None else list(PAR_NAMES)
    if old is None:
        return selected
    return [name for name in selected
            if not abs(new[PAR_INDEX[name]] - old[PAR_INDEX[name]]) <= tol]
