"""
Closed-form sums over repeated injections into the trap.

Each capture period a fresh bunch is injected. Trapped ions decay with the
modified trapped lifetime and a fraction ``rho`` survives every new capture;
the rest is lost to the untrapped populations. The sigma functions give the
geometric sums of these contributions after ``n`` injections, measured at the
start of the n-th capture interval.

Arithmetic is done on NumPy scalars so that degenerate inputs give inf/nan
instead of raising.
"""

import math

import numpy as np

from ..constants import IOTA, PER_S_TO_PER_MS

__all__ = [
    "modified_lifetime",
    "sigma_t",
    "sigma_w",
    "sigma_z",
    "injection_index",
]


def modified_lifetime(tau: float, shift: float) -> float:
    """
    Lifetime including an additional loss rate.

    Parameters
    ----------
    tau : float
        Nominal 1/e lifetime in ms
    shift : float
        Additional decay rate in 1/s

    Returns
    -------
    float
        1 / (1/tau + shift/1000) in ms. Shifts that drive the total rate to
        zero or below give a non-finite or negative lifetime.
    """
    return np.float64(1.0) / (np.float64(1.0) / tau + np.float64(shift) * PER_S_TO_PER_MS)


def sigma_t(rho: float, tau: float, n: int, t_capt: float) -> float:
    """
    Surviving fraction after ``n`` periodic injections into one decay channel.

    (1 - (rho a)^n) / (1 - rho a), with a = exp(-t_capt / tau).
    """
    q = rho * np.exp(-t_capt / tau)
    return (1.0 - q ** n) / (1.0 - q)


def sigma_w(rho: float, t_t: float, t_u: float, n: int, t_capt: float) -> float:
    """
    Sum of trapped ions lost at each capture, decaying untrapped afterwards.

    Zero before the second injection, since nothing has been lost yet.
    """
    if n < 2:
        return 0.0
    exp_t = np.exp(-t_capt / t_t)
    exp_u = np.exp(-t_capt / t_u)
    q = rho * exp_t
    s = q / exp_u
    mixed = exp_u ** n * (s ** n - s + IOTA) / (s - 1.0 + IOTA)
    trapped = (q ** n - q + IOTA) / (q - 1.0 + IOTA)
    return (1.0 + IOTA) / (rho * (exp_u - 1.0) + IOTA) * (mixed - trapped)


def sigma_z(rho: float, t_t: float, t_u: float, n: int, t_capt: float) -> float:
    """
    Sum of ions fed out of the trapped population during earlier intervals.

    Zero before the second injection.
    """
    if n < 2:
        return 0.0
    exp_t = np.exp(-t_capt / t_t)
    exp_u = np.exp(-t_capt / t_u)
    inv_u = 1.0 / exp_u
    s = rho * exp_t / exp_u
    geometric = (inv_u ** n - inv_u) / (inv_u - 1.0)
    mixed = (s ** n - s) / (s - 1.0 + IOTA)
    return (exp_u - exp_t) * exp_u ** (n - 1) / (1.0 - rho * exp_t) * (geometric - mixed)


def injection_index(t: float, t_bkgd: float, t_capt: float) -> int:
    """Index of the capture interval containing ``t`` (0 at the capture start)."""
    return int(math.ceil((t - t_bkgd) / t_capt))
