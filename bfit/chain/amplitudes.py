"""
Amplitudes and lifetime coefficients derived from the parameter vector.

Naming follows the population letters used throughout the package:

T  trapped ions
V  never captured (fraction 1 - p of every bunch)
W  lost from the trap at a later capture (fraction 1 - rho)
Z  left the trap through the extra trapped loss rate gammaT
X  daughters of trapped parents, born untrapped
Y  daughters of untrapped parents
U  untrapped total, V + W + Z (+ X + Y for generations 2 and 3)
"""

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from ..cases import CaseConstants
from ..constants import IOTA, PER_S_TO_PER_MS
from ..parameters import PAR_INDEX, ParameterVector, as_parameter_array
from .coefficients import modified_lifetime, sigma_t, sigma_w, sigma_z

_P = PAR_INDEX


@dataclass(frozen=True, eq=False)
class ChainCoefficients:
    """Time-independent quantities derived from (parameters, case)."""

    # effective parameters (after case-specific ties)
    par: np.ndarray
    p: float
    rho: float
    gammaT1: float
    gammaU1: float

    # nominal lifetimes (ms)
    t1: float
    t2: float
    t3: float

    # modified lifetimes (ms)
    tT1: float
    tT2: float
    tT3: float
    tU1: float
    tU2: float
    tU3: float

    # lifetime-difference coefficients of the three-generation mixing terms
    cT1: float
    cU1: float
    cU2: float
    cZT2: float
    cZU2: float
    cZU3: float
    cXT1: float
    cXU2: float
    cXU3: float
    cYU1: float
    cYU2: float
    cYU3: float
    ThetaU: float

    # share of trapped losses that leave through the Z channel, gammaT / (gammaT - gammaU)
    zeta1: float
    zeta2: float
    zeta3: float

    # sigma sums after a single capture
    ST1_1cap: float
    ST2_1cap: float
    SW11_1cap: float
    SW22_1cap: float
    SZ11_1cap: float

    # amplitudes per species and generation
    ampT1: float
    ampT2: float
    ampT3: float
    ampV1: float
    ampV2: float
    ampV3: float
    ampW1: float
    ampW2: float
    ampW3: float
    ampZ1: float
    ampZ2: float
    ampZ3: float
    ampX2: float
    ampX3: float
    ampY2ptA: float
    ampY2ptB: float
    ampY3fromV2: float
    ampY3fromW2: float
    ampY3fromZ2: float
    ampY3fromX2: float
    ampY3fromY2_ST1: float

    # survival of untrapped populations over a full cycle
    eU1tCyc: float
    eU2tCyc: float
    eU3tCyc: float

    def nominal(self, i: int) -> float:
        return (self.t1, self.t2, self.t3)[i - 1]

    def trapped_lifetime(self, i: int) -> float:
        return (self.tT1, self.tT2, self.tT3)[i - 1]

    def untrapped_lifetime(self, i: int) -> float:
        return (self.tU1, self.tU2, self.tU3)[i - 1]

    def untrapped_survival(self, i: int) -> float:
        return (self.eU1tCyc, self.eU2tCyc, self.eU3tCyc)[i - 1]

    def amp(self, species: str, i: int) -> float:
        """Amplitude of a closed-form species, e.g. amp('W', 2) -> ampW2."""
        return getattr(self, f"amp{species}{i}")


def effective_parameters(par: Union[ParameterVector, Sequence[float], np.ndarray],
                         case: CaseConstants) -> np.ndarray:
    """Private float copy of ``par`` with the case's parameter ties applied."""
    a = np.array(as_parameter_array(par), dtype=float)
    if case.tie_gammaT3_to_gammaT2:
        a[_P["gammaT3"]] = a[_P["gammaT2"]]
    a.setflags(write=False)
    return a


def compute_chain_coefficients(par: Union[ParameterVector, Sequence[float], np.ndarray],
                               case: CaseConstants) -> ChainCoefficients:
    """
    Compute every parameter-dependent, time-independent coefficient.

    Degenerate parameter combinations (equal lifetimes, vanishing rates)
    give inf/nan entries rather than an exception.
    """
    a = effective_parameters(par, case)
    t_capt = case.t_capt
    t_cycle = case.t_cycle
    t1, t2, t3 = (np.float64(t) for t in case.lifetimes)

    p = a[_P["p"]]
    rho = a[_P["rho"]]
    r1, r2, r3 = a[_P["r1"]], a[_P["r2"]], a[_P["r3"]]
    gT1, gT2, gT3 = a[_P["gammaT1"]], a[_P["gammaT2"]], a[_P["gammaT3"]]
    gU1, gU2, gU3 = a[_P["gammaU1"]], a[_P["gammaU2"]], a[_P["gammaU3"]]

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        tT1 = modified_lifetime(t1, gT1)
        tT2 = modified_lifetime(t2, gT2)
        tT3 = modified_lifetime(t3, gT3)
        tU1 = modified_lifetime(t1, gU1)
        tU2 = modified_lifetime(t2, gU2)
        tU3 = modified_lifetime(t3, gU3)

        ThetaU = (tU3 - tU2) * (tU3 - tU1) * (tU2 - tU1)

        # regularised gammaT / (gammaT - gammaU)
        zeta1 = (gT1 + IOTA) / ((gT1 - gU1) + IOTA)
        zeta2 = (gT2 + IOTA) / ((gT2 - gU2) + IOTA)
        zeta3 = (gT3 + IOTA) / ((gT3 - gU3) + IOTA)

        # bunch sizes per capture
        n1, n2, n3 = r1 * t_capt, r2 * t_capt, r3 * t_capt

        # feeding of generation 3 from untrapped generation 2
        feed23 = r2 * (t_capt / t2) * tU2 * tU3 / (tU3 - tU2)
        # feeding of generation 3 from the generation-2 Y population
        feed123 = r1 * (t_capt / t2) * tU1 * tU2 * tU3 / ThetaU / t1

        coeffs = ChainCoefficients(
            par=a,
            p=p,
            rho=rho,
            gammaT1=gT1,
            gammaU1=gU1,
            t1=t1, t2=t2, t3=t3,
            tT1=tT1, tT2=tT2, tT3=tT3,
            tU1=tU1, tU2=tU2, tU3=tU3,
            cT1=tT1 * (tU2 - tU1),
            cU1=tU1 * (tU2 - tT1),
            cU2=tU2 * (tU1 - tT1),
            cZT2=tT2 * (tU3 - tU2),
            cZU2=tU2 * (tU3 - tT2),
            cZU3=tU3 * (tU2 - tT2),
            cXT1=tT1 * (tU3 - tU2),
            cXU2=tU2 * (tU3 - tT1),
            cXU3=tU3 * (tU2 - tT1),
            cYU1=tU1 * (tU3 - tU2),
            cYU2=tU2 * (tU3 - tU1),
            cYU3=tU3 * (tU2 - tU1),
            ThetaU=ThetaU,
            zeta1=zeta1,
            zeta2=zeta2,
            zeta3=zeta3,
            ST1_1cap=sigma_t(rho, tT1, 1, t_capt),
            ST2_1cap=sigma_t(rho, tT2, 1, t_capt),
            SW11_1cap=sigma_w(rho, tT1, tU1, 1, t_capt),
            SW22_1cap=sigma_w(rho, tT2, tU2, 1, t_capt),
            SZ11_1cap=sigma_z(rho, tT1, tU1, 1, t_capt),
            ampT1=n1 * p,
            ampT2=n2 * p,
            ampT3=n3 * p,
            ampV1=n1 * (1 - p),
            ampV2=n2 * (1 - p),
            ampV3=n3 * (1 - p),
            ampW1=n1 * (1 - rho) * p,
            ampW2=n2 * (1 - rho) * p,
            ampW3=n3 * (1 - rho) * p,
            ampZ1=n1 * p * zeta1,
            ampZ2=n2 * p * zeta2,
            ampZ3=n3 * p * zeta3,
            ampX2=n1 * p * (1 / t1) * (tT1 * tU2 / (tU2 - tT1)),
            ampX3=n2 * p * (1 / t2) * (tT2 * tU3 / (tU3 - tT2)),
            ampY2ptA=p * zeta1 / tU1 / (tU2 - tT1),
            ampY2ptB=r1 * (t_capt / t1) * tU1 * tU2 / (tU2 - tU1),
            ampY3fromV2=feed23 * (1 - p),
            ampY3fromW2=feed23 * p * (1 - rho),
            ampY3fromZ2=feed23 * p * zeta2,
            ampY3fromX2=r1 * (t_capt / t2) * tU2 * tU3 / (tU3 - tU2) * p * tT1 * tU2 / (tU2 - tT1) / t1,
            ampY3fromY2_ST1=feed123 * zeta1 / tU1 / (gT1 * PER_S_TO_PER_MS + IOTA) / (tU3 - tT1) / (tU2 - tT1),
            eU1tCyc=np.exp(-t_cycle / tU1),
            eU2tCyc=np.exp(-t_cycle / tU2),
            eU3tCyc=np.exp(-t_cycle / tU3),
        )
    return coeffs


