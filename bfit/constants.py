"""
Physical constants and unit helpers for the trapped-ion decay-chain model.

All model times are in milliseconds. Rate shifts (gammaT*, gammaU*) are
quoted in 1/s and converted where they enter a lifetime.
"""

"python -m pytest tests/test_coefficients.py -v"

import math

# Regularisation constant. Added to every denominator of the mixing sums and
# amplitude ratios that is singular when two lifetimes coincide, and used as
# the absolute tolerance for parameter-change detection. Relative bias on a
# regularised quantity is about IOTA / |denominator|.
IOTA = 1e-9

LN2 = math.log(2.0)

# Unit conversions
MS_PER_S = 1000.0
PER_S_TO_PER_MS = 1.0 / MS_PER_S


def lifetime_from_halflife(t_half: float) -> float:
    """
    Convert a half-life to a 1/e lifetime (same units).

    Parameters
    ----------
    t_half : float
        Half-life

    Returns
    -------
    float
        Mean lifetime t_half / ln 2
    """
    return t_half / LN2


def halflife_from_lifetime(tau: float) -> float:
    """Inverse of lifetime_from_halflife."""
    return tau * LN2
