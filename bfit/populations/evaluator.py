"""
Species populations over a full measurement cycle.

The cycle starts with the free-decay (background) window, 0 <= t < t_bkgd,
followed by the capture window, t_bkgd <= t <= t_cycle. Untrapped
populations carry over from the previous cycle and decay freely for the whole
cycle; populations created in the current capture window are added on top.
Trapped ions are ejected at the end of the cycle and only exist during
capture. Outside [0, t_cycle] everything is zero.

All functions take a ``DerivedState`` that has already been refreshed for
the parameter vector in use.
"""

from typing import TYPE_CHECKING, Dict, Tuple

import numpy as np

from ..cases import CaseConstants
from .capture import t_cap, v_cap, w_cap, x_cap, y_cap, z_cap

if TYPE_CHECKING:
    from ..chain.cache import DerivedState

__all__ = [
    "SPECIES",
    "SPECIES_GENERATIONS",
    "t_tot",
    "v_tot",
    "w_tot",
    "z_tot",
    "x_tot",
    "y_tot",
    "u_tot",
    "y2_background",
    "y3_background",
    "species_value",
    "check_generation",
]

SPECIES_GENERATIONS: Dict[str, Tuple[int, ...]] = {
    "T": (1, 2, 3),
    "V": (1, 2, 3),
    "W": (1, 2, 3),
    "Z": (1, 2, 3),
    "X": (2, 3),
    "Y": (2, 3),
}

SPECIES = tuple(SPECIES_GENERATIONS)


def check_generation(i: int) -> None:
    if i not in (1, 2, 3):
        raise ValueError(f"Generation must be 1, 2 or 3, got {i}")


def _in_cycle(case: CaseConstants, t: float) -> bool:
    return 0.0 <= t <= case.t_cycle


def _in_capture(case: CaseConstants, t: float) -> bool:
    return case.t_bkgd <= t <= case.t_cycle


def _free_decay(state: "DerivedState", case: CaseConstants, species: str, i: int, t: float) -> float:
    if not _in_cycle(case, t):
        return 0.0
    return state.initial.get(species, i) * np.exp(-t / state.coeffs.untrapped_lifetime(i))


def t_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    """Trapped population; zero outside the capture window."""
    if not _in_capture(case, t):
        return 0.0
    return t_cap(state.coeffs, case, i, t)


def v_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    f = _free_decay(state, case, "V", i, t)
    if _in_capture(case, t):
        f += v_cap(state.coeffs, case, i, t)
    return f


def w_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    f = _free_decay(state, case, "W", i, t)
    if _in_capture(case, t):
        f += w_cap(state.coeffs, case, i, t)
    return f


def z_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    f = _free_decay(state, case, "Z", i, t)
    if _in_capture(case, t):
        f += z_cap(state.coeffs, case, i, t)
    return f


def x_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    if i < 2:
        return 0.0
    f = _free_decay(state, case, "X", i, t)
    if _in_capture(case, t):
        f += x_cap(state.coeffs, case, i, t)
    return f


def y2_background(state: "DerivedState", u10: float, y20: float, t: float) -> float:
    """Generation-2 daughters of untrapped ions carried over from earlier cycles."""
    c = state.coeffs
    e1 = np.exp(-t / c.tU1)
    e2 = np.exp(-t / c.tU2)
    return y20 * e2 + u10 * c.tU1 / c.t1 * c.tU2 / (c.tU2 - c.tU1) * (e2 - e1)


def y3_background(state: "DerivedState", u10: float, u20: float, y30: float, t: float) -> float:
    """Generation-3 daughters of untrapped ions carried over from earlier cycles."""
    c = state.coeffs
    e1 = np.exp(-t / c.tU1)
    e2 = np.exp(-t / c.tU2)
    e3 = np.exp(-t / c.tU3)
    return (y30 * e3
            + u20 * c.tU2 / c.t2 * c.tU3 / (c.tU3 - c.tU2) * (e3 - e2)
            + u10 * c.tU1 / c.t1 * c.tU2 / c.t2 * c.tU3 / c.ThetaU
            * (c.cYU1 * e1 - c.cYU2 * e2 + c.cYU3 * e3))


def y_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    if i < 2:
        return 0.0
    f = 0.0
    init = state.initial
    if _in_cycle(case, t):
        if i == 2:
            f += y2_background(state, init.U10, init.Y20, t)
        else:
            f += y3_background(state, init.U10, init.U20, init.Y30, t)
    if _in_capture(case, t):
        f += y_cap(state.coeffs, case, i, t)
    return f


def u_tot(state: "DerivedState", case: CaseConstants, i: int, t: float) -> float:
    """Untrapped total of generation ``i``, reported during the capture window only."""
    if not _in_capture(case, t):
        return 0.0
    f = v_tot(state, case, i, t) + w_tot(state, case, i, t) + z_tot(state, case, i, t)
    if i >= 2:
        f += x_tot(state, case, i, t) + y_tot(state, case, i, t)
    return f


_TOTALS = {
    "T": t_tot,
    "V": v_tot,
    "W": w_tot,
    "Z": z_tot,
    "X": x_tot,
    "Y": y_tot,
}


def species_value(state: "DerivedState", case: CaseConstants, species: str, i: int, t: float) -> float:
    """
    Population of ``species`` in generation ``i`` at time ``t``.

    Raises
    ------
    ValueError
        For an unknown species letter or a generation outside 1..3
    """
    if species not in _TOTALS:
        raise ValueError(f"Unknown species: {species}. Available: {list(SPECIES)}")
    check_generation(i)
    return _TOTALS[species](state, case, i, t)
