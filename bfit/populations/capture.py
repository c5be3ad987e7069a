"""
Populations produced during the current capture window.

Every function here returns the part of a population that was created by the
injections of the present cycle, i.e. the population that would exist at
``t`` if the cycle had started empty. The caller is responsible for only
asking inside the capture window (``t_bkgd <= t <= t_cycle``).

``n`` is the index of the capture interval containing ``t`` and ``x`` the time
elapsed since that interval started.
"""

from typing import Tuple

import numpy as np

from ..cases import CaseConstants
from ..chain.amplitudes import ChainCoefficients
from ..chain.coefficients import injection_index, sigma_t, sigma_w, sigma_z
from ..constants import PER_S_TO_PER_MS

__all__ = [
    "t_cap",
    "v_cap",
    "w_cap",
    "z_cap",
    "x_cap",
    "y_cap",
    "u_cap",
    "y2_kernel",
    "y3_kernel",
    "injection_starts",
]


def _interval(case: CaseConstants, t: float) -> Tuple[int, float]:
    n = injection_index(t, case.t_bkgd, case.t_capt)
    return n, t - case.t_bkgd - (n - 1) * case.t_capt


def injection_starts(case: CaseConstants, n: int) -> np.ndarray:
    """Start times of the first ``n`` capture intervals."""
    return case.t_bkgd + np.arange(max(n, 0)) * case.t_capt


def t_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """Trapped population of generation ``i``."""
    n, x = _interval(case, t)
    tT = c.trapped_lifetime(i)
    return c.amp("T", i) * sigma_t(c.rho, tT, n, case.t_capt) * np.exp(-x / tT)


def v_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """Ions of generation ``i`` that were never captured."""
    n, x = _interval(case, t)
    tU = c.untrapped_lifetime(i)
    return c.amp("V", i) * sigma_t(1.0, tU, n, case.t_capt) * np.exp(-x / tU)


def w_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """Ions of generation ``i`` lost from the trap at a later capture."""
    n, x = _interval(case, t)
    tT = c.trapped_lifetime(i)
    tU = c.untrapped_lifetime(i)
    return c.amp("W", i) * sigma_w(c.rho, tT, tU, n, case.t_capt) * np.exp(-x / tU)


def _fed_from_trap(amp: float, rho: float, tT: float, tU: float, n: int, x: float, t_capt: float) -> float:
    # untrapped population fed at a constant branching from a trapped one
    st = sigma_t(rho, tT, n, t_capt)
    sz = sigma_z(rho, tT, tU, n, t_capt)
    return amp * ((sz + st) * np.exp(-x / tU) - st * np.exp(-x / tT))


def z_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """Ions of generation ``i`` that left the trap through the extra loss rate."""
    n, x = _interval(case, t)
    return _fed_from_trap(c.amp("Z", i), c.rho, c.trapped_lifetime(i), c.untrapped_lifetime(i),
                          n, x, case.t_capt)


def x_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """Generation-``i`` daughters of trapped generation-``i-1`` parents. Zero for i = 1."""
    if i < 2:
        return 0.0
    n, x = _interval(case, t)
    return _fed_from_trap(c.amp("X", i), c.rho, c.trapped_lifetime(i - 1), c.untrapped_lifetime(i),
                          n, x, case.t_capt)


def y2_kernel(c: ChainCoefficients, tx):
    """
    Generation-2 daughters of the untrapped parents created by one injection.

    ``tx`` is the time since that injection (scalar or array). The kernel
    vanishes at ``tx = 0``.
    """
    eT1 = np.exp(-tx / c.tT1)
    eU1 = np.exp(-tx / c.tU1)
    eU2 = np.exp(-tx / c.tU2)
    from_z = c.ampY2ptA * c.ST1_1cap * (c.cT1 * eT1 - c.cU1 * eU1 + c.cU2 * eU2)
    parents = ((1 - c.p) * c.ST1_1cap
               + c.p * (1 - c.rho) * c.SW11_1cap
               + c.p * c.zeta1 * c.SZ11_1cap)
    return c.ampY2ptB * (from_z + parents * (eU2 - eU1))


def y3_kernel(c: ChainCoefficients, tx):
    """
    Generation-3 daughters of untrapped generation-2 ions created by one injection.

    Sums the feeding from the V, W, Z, X and Y populations of generation 2.
    """
    tT1, tT2, tU1, tU2, tU3 = c.tT1, c.tT2, c.tU1, c.tU2, c.tU3
    p, gT1, gU1 = c.p, c.gammaT1, c.gammaU1
    eT1 = np.exp(-tx / tT1)
    eT2 = np.exp(-tx / tT2)
    eU1 = np.exp(-tx / tU1)
    eU2 = np.exp(-tx / tU2)
    eU3 = np.exp(-tx / tU3)

    from_v = c.ampY3fromV2 * c.ST2_1cap * (eU3 - eU2)
    from_w = c.ampY3fromW2 * c.SW22_1cap * (eU3 - eU2)
    from_z = c.ampY3fromZ2 * (c.ST2_1cap / c.cZU2) * (c.cZT2 * eT2 - c.cZU2 * eU2 + c.cZU3 * eU3)
    from_x = c.ampY3fromX2 * (c.ST1_1cap / c.cXU2) * (c.cXT1 * eT1 - c.cXU2 * eU2 + c.cXU3 * eU3)
    # gammaT1, gammaU1 are in 1/s; the amplitude carries 1/(gammaT1/1000)
    from_y = c.ampY3fromY2_ST1 * c.ST1_1cap * PER_S_TO_PER_MS * (
        - eT1 * tT1 * tT1 * (tU3 - tU2) * (tU3 - tU1) * (tU2 - tU1) * p * gT1
        + eU1 * tU1 * tU1 * (tU3 - tU2) * (tU3 - tT1) * (tU2 - tT1) * (gT1 - (1 - p) * gU1)
        - eU2 * tU2 * (tU3 - tU1) * (tU3 - tT1) * (gT1 * (tU1 * tU2 - tT1 * (p * tU2 + (1 - p) * tU1))
                                                   - gU1 * (1 - p) * tU1 * (tU2 - tT1))
        + eU3 * tU3 * (tU2 - tU1) * (tU2 - tT1) * (gT1 * (tU1 * tU3 - tT1 * (p * tU3 + (1 - p) * tU1))
                                                   - gU1 * (1 - p) * tU1 * (tU3 - tT1))
    )
    return from_v + from_w + from_x + from_y + from_z


def y_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """
    Daughters of untrapped parents, summed over every injection so far.

    No closed form: one kernel per completed capture interval, so the cost
    grows linearly with the number of injections in the cycle.
    """
    if i < 2:
        return 0.0
    n = injection_index(t, case.t_bkgd, case.t_capt)
    if n < 1:
        return 0.0
    tx = t - injection_starts(case, n)
    kernel = y2_kernel if i == 2 else y3_kernel
    return float(np.sum(kernel(c, tx)))


def u_cap(c: ChainCoefficients, case: CaseConstants, i: int, t: float) -> float:
    """Untrapped total of generation ``i`` created in the current capture window."""
    f = v_cap(c, case, i, t) + w_cap(c, case, i, t) + z_cap(c, case, i, t)
    if i >= 2:
        f += x_cap(c, case, i, t) + y_cap(c, case, i, t)
    return f
