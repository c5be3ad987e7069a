"""
Detected decay rates and expected counts per histogram bin.

Each population contributes its radiative decay rate, population / t_i with
the nominal lifetime t_i, weighted by the detection efficiency of its
species. The fit observable is the expected number of counts in a bin of
width ``dt`` summed over ``nCyc`` cycles; the instantaneous rate is the same
sum without that scaling, so

    y_all(t) == r_all(t) * nCyc * dt

for every t and parameter vector.
"""

import logging
from typing import Iterable, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import integrate  # type: ignore

from ..cases import CaseConstants
from ..chain.cache import DerivedState, ParameterCache
from ..constants import IOTA
from ..parameters import PAR_INDEX, ParameterVector, as_parameter_array
from ..populations.evaluator import (
    SPECIES_GENERATIONS,
    check_generation,
    species_value,
    t_tot,
    v_tot,
    w_tot,
    x_tot,
    y_tot,
    z_tot,
)

logger = logging.getLogger(__name__)

ParLike = Union[ParameterVector, Sequence[float], np.ndarray]

_EFFICIENCY = {
    "T": "epsT",
    "V": "epsV",
    "W": "epsW",
    "Z": "epsZ",
    "X": "epsX",
    "Y": "epsY",
}

_I_DC = PAR_INDEX["DC"]
_I_DT = PAR_INDEX["dt"]
_I_NCYC = PAR_INDEX["nCyc"]


def trapped_rate(state: DerivedState, case: CaseConstants, i: int, t: float) -> float:
    """Detected decay rate of trapped generation-``i`` ions."""
    check_generation(i)
    c = state.coeffs
    eps = c.par[PAR_INDEX["epsT"]]
    return eps * t_tot(state, case, i, t) / c.nominal(i)


def untrapped_rate(state: DerivedState, case: CaseConstants, i: int, t: float) -> float:
    """Detected decay rate of all untrapped generation-``i`` ions."""
    check_generation(i)
    c = state.coeffs
    a = c.par
    f = (a[PAR_INDEX["epsV"]] * v_tot(state, case, i, t)
         + a[PAR_INDEX["epsW"]] * w_tot(state, case, i, t)
         + a[PAR_INDEX["epsZ"]] * z_tot(state, case, i, t))
    if i >= 2:
        f += (a[PAR_INDEX["epsX"]] * x_tot(state, case, i, t)
              + a[PAR_INDEX["epsY"]] * y_tot(state, case, i, t))
    return f / c.nominal(i)


def species_rate(state: DerivedState, case: CaseConstants, species: str, i: int, t: float) -> float:
    """Detected decay rate of one species; zero for generations it does not exist in."""
    if species not in SPECIES_GENERATIONS:
        raise ValueError(f"Unknown species: {species}. Available: {list(SPECIES_GENERATIONS)}")
    check_generation(i)
    if i not in SPECIES_GENERATIONS[species]:
        return 0.0
    c = state.coeffs
    eps = c.par[PAR_INDEX[_EFFICIENCY[species]]]
    return eps * species_value(state, case, species, i, t) / c.nominal(i)


def total_rate(state: DerivedState, case: CaseConstants, t: float) -> float:
    """Background plus every detected decay rate."""
    f = state.coeffs.par[_I_DC]
    for i in (1, 2, 3):
        f += trapped_rate(state, case, i, t) + untrapped_rate(state, case, i, t)
    return f


class BFitModel:
    """
    Fit model for one case; the callable handed to the optimiser.

    Every evaluation first refreshes the parameter cache, so calling the
    model at many times with an unchanged vector only pays for the
    time-dependent part.

    Parameters
    ----------
    case : CaseConstants
        Constants of the measurement case
    parameters : ParameterVector or sequence of float, optional
        Starting vector; validated against the parameter layout here, once,
        and used to prime the cache
    tol : float
        Absolute per-element tolerance for parameter-change detection
    free : iterable of str, optional
        Names of the parameters the optimiser varies (for change logging)

    Raises
    ------
    ParameterLayoutError
        If ``parameters`` does not match the layout or ``free`` names an
        unknown parameter
    """

    def __init__(self, case: CaseConstants, parameters: Optional[ParLike] = None,
                 tol: float = IOTA, free: Optional[Iterable[str]] = None):
        self.case = case.validate()
        self.cache = ParameterCache(case, tol=tol, free=free)
        if parameters is not None:
            self.cache.refresh(ParameterVector(as_parameter_array(parameters)))

    @property
    def state(self) -> Optional[DerivedState]:
        return self.cache.state

    @property
    def n_changes(self) -> int:
        return self.cache.n_changes

    def _scale(self, par: ParLike) -> float:
        a = as_parameter_array(par)
        return a[_I_NCYC] * a[_I_DT]

    # ---- fit observable ------------------------------------------------

    def __call__(self, t: float, par: ParLike) -> float:
        return self.y_all(t, par)

    def y_all(self, t: float, par: ParLike) -> float:
        """Expected counts per bin at time ``t`` (background included)."""
        state = self.cache.refresh(par)
        return float(self._scale(state.coeffs.par) * total_rate(state, self.case, t))

    def y_dc(self, t: float, par: ParLike) -> float:
        state = self.cache.refresh(par)
        return float(self._scale(state.coeffs.par) * state.coeffs.par[_I_DC])

    def y_trapped(self, i: int, t: float, par: ParLike) -> float:
        state = self.cache.refresh(par)
        return float(self._scale(state.coeffs.par) * trapped_rate(state, self.case, i, t))

    def y_untrapped(self, i: int, t: float, par: ParLike) -> float:
        state = self.cache.refresh(par)
        return float(self._scale(state.coeffs.par) * untrapped_rate(state, self.case, i, t))

    def y_species(self, species: str, i: int, t: float, par: ParLike) -> float:
        state = self.cache.refresh(par)
        return float(self._scale(state.coeffs.par) * species_rate(state, self.case, species, i, t))

    # offset curves: component on top of the background, for plotting over data

    def o_trapped(self, i: int, t: float, par: ParLike) -> float:
        return self.y_dc(t, par) + self.y_trapped(i, t, par)

    def o_untrapped(self, i: int, t: float, par: ParLike) -> float:
        return self.y_dc(t, par) + self.y_untrapped(i, t, par)

    # ---- instantaneous rates -------------------------------------------

    def r_all(self, t: float, par: ParLike) -> float:
        """Instantaneous detected rate, not scaled by nCyc or dt."""
        state = self.cache.refresh(par)
        return float(total_rate(state, self.case, t))

    def r_dc(self, t: float, par: ParLike) -> float:
        return float(self.cache.refresh(par).coeffs.par[_I_DC])

    def r_trapped(self, i: int, t: float, par: ParLike) -> float:
        return float(trapped_rate(self.cache.refresh(par), self.case, i, t))

    def r_untrapped(self, i: int, t: float, par: ParLike) -> float:
        return float(untrapped_rate(self.cache.refresh(par), self.case, i, t))

    def r_species(self, species: str, i: int, t: float, par: ParLike) -> float:
        return float(species_rate(self.cache.refresh(par), self.case, species, i, t))

    # ---- batch helpers -------------------------------------------------

    def evaluate(self, t_vec: Iterable[float], par: ParLike, kind: str = "y") -> np.ndarray:
        """
        Evaluate ``y_all`` (kind='y') or ``r_all`` (kind='r') on an array of times.
        """
        if kind not in ("y", "r"):
            raise ValueError(f"kind must be 'y' or 'r', got {kind!r}")
        state = self.cache.refresh(par)
        scale = self._scale(state.coeffs.par) if kind == "y" else 1.0
        t_arr = np.asarray(t_vec, dtype=float)
        out = np.fromiter((total_rate(state, self.case, t) for t in t_arr.ravel()),
                          dtype=float, count=t_arr.size)
        return (scale * out).reshape(t_arr.shape)

    def components(self, t_vec: Iterable[float], par: ParLike) -> pd.DataFrame:
        """
        Expected counts per bin of every component on a time grid.

        Columns: t, DC, T1..T3 (trapped), U1..U3 (untrapped), total.
        """
        state = self.cache.refresh(par)
        scale = self._scale(state.coeffs.par)
        dc = scale * state.coeffs.par[_I_DC]
        rows = []
        for t in np.asarray(t_vec, dtype=float).ravel():
            row = {"t": t, "DC": dc}
            for i in (1, 2, 3):
                row[f"T{i}"] = scale * trapped_rate(state, self.case, i, t)
                row[f"U{i}"] = scale * untrapped_rate(state, self.case, i, t)
            rows.append(row)
        df = pd.DataFrame(rows, columns=["t", "DC", "T1", "T2", "T3", "U1", "U2", "U3"])
        df["total"] = df[["DC", "T1", "T2", "T3", "U1", "U2", "U3"]].sum(axis=1)
        return df

    def integrated_counts(self, t0: float, t1: float, par: ParLike) -> float:
        """
        Expected counts between ``t0`` and ``t1`` summed over nCyc cycles.

        Integrates the instantaneous rate with capture starts as break points,
        where the untrapped and trapped populations jump.
        """
        state = self.cache.refresh(par)
        case = self.case
        n_cyc = state.coeffs.par[_I_NCYC]
        starts = case.t_bkgd + np.arange(case.n_injections + 1) * case.t_capt
        points = [float(s) for s in starts if t0 < s < t1]

        result, abserr = integrate.quad(lambda t: total_rate(state, case, t), t0, t1,
                                        points=points or None, limit=max(50, 4 * len(points) + 50))
        logger.debug("Integrated rate over [%g, %g] ms: %g (abserr %.2e)", t0, t1, result, abserr)
        return float(n_cyc * result)
