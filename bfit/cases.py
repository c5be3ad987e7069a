"""
Case constants: isotope chain, cycle timing and nominal lifetimes.

A case is fixed for the whole fit session. Timing constants are in ms.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Any, Tuple

from .constants import lifetime_from_halflife

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ('T_capt', 'T_bkgd', 'T_cycle', 'halflife1', 'halflife2', 'halflife3')


class CaseConfigurationError(ValueError):
    """Raised when a case record violates the timing or lifetime invariants."""


@dataclass(frozen=True)
class CaseConstants:
    """
    Timing and decay constants of one measurement case.

    Attributes
    ----------
    code : str
        Case identifier, e.g. '137i07'
    species : tuple of str
        Parent, daughter and granddaughter labels
    t_capt : float
        Capture (injection) period in ms
    t_last : float
        Time from the last capture to ejection in ms (informational)
    t_bkgd : float
        Background measurement duration in ms; capture starts at this time
    t_cycle : float
        Full cycle length in ms
    halflife : tuple of (value, uncertainty)
        Half-lives of the three generations in ms
    tie_gammaT3_to_gammaT2 : bool
        Force the generation-3 trapped rate shift to follow generation 2
    """
    code: str
    species: Tuple[str, str, str]
    t_capt: float
    t_bkgd: float
    t_cycle: float
    halflife: Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float]]
    t_last: float = 0.0
    tie_gammaT3_to_gammaT2: bool = False
    file: str = ""

    @property
    def lifetimes(self) -> Tuple[float, float, float]:
        """Nominal 1/e lifetimes t1, t2, t3 in ms."""
        return tuple(lifetime_from_halflife(h[0]) for h in self.halflife)

    @property
    def lifetime_uncertainties(self) -> Tuple[float, float, float]:
        return tuple(lifetime_from_halflife(h[1]) for h in self.halflife)

    @property
    def n_injections(self) -> int:
        """Number of capture starts between t_bkgd and t_cycle."""
        return int(math.ceil((self.t_cycle - self.t_bkgd) / self.t_capt))

    def validate(self) -> "CaseConstants":
        if not (0.0 < self.t_capt <= self.t_bkgd <= self.t_cycle):
            raise CaseConfigurationError(
                f"Case {self.code}: need 0 < T_capt <= T_bkgd <= T_cycle, "
                f"got {self.t_capt}, {self.t_bkgd}, {self.t_cycle}"
            )
        for i, tau in enumerate(self.lifetimes, start=1):
            if not (tau > 0.0 and math.isfinite(tau)):
                raise CaseConfigurationError(f"Case {self.code}: lifetime of generation {i} must be positive, got {tau}")
        return self


def case_from_config(entry: Dict[str, Any], code: str) -> CaseConstants:
    """
    Build a validated CaseConstants from one ``cases`` entry of the config.

    Raises
    ------
    CaseConfigurationError
        If required keys are missing or the invariants do not hold
    """
    missing = [key for key in _REQUIRED_KEYS if key not in entry]
    if missing:
        raise CaseConfigurationError(f"Case {code}: missing key(s) {missing}")

    def _halflife(key: str) -> Tuple[float, float]:
        value = entry[key]
        if isinstance(value, (list, tuple)):
            return float(value[0]), float(value[1]) if len(value) > 1 else 0.0
        return float(value), 0.0

    species = tuple(str(s) for s in entry.get('species', ('', '', '')))
    if len(species) != 3:
        raise CaseConfigurationError(f"Case {code}: expected three species, got {species}")

    case = CaseConstants(
        code=str(code),
        species=species,
        t_capt=float(entry['T_capt']),
        t_bkgd=float(entry['T_bkgd']),
        t_cycle=float(entry['T_cycle']),
        halflife=(_halflife('halflife1'), _halflife('halflife2'), _halflife('halflife3')),
        t_last=float(entry.get('T_last', 0.0)),
        tie_gammaT3_to_gammaT2=bool(entry.get('tie_gammaT3_to_gammaT2', False)),
        file=str(entry.get('file', "")),
    )
    return case.validate()


def load_cases(config: Dict[str, Any]) -> Dict[str, CaseConstants]:
    """Build every case of a preprocessed configuration."""
    return {code: case_from_config(entry, code) for code, entry in config.get('cases', {}).items()}


def get_case(config: Dict[str, Any], code: str) -> CaseConstants:
    """
    Look up one case by its code.

    Raises
    ------
    ValueError
        If ``code`` is not in the configuration
    """
    cases = config.get('cases', {})
    if code not in cases:
        available = list(cases.keys())
        raise ValueError(f"Invalid case code: {code}. Available: {available}")
    case = case_from_config(cases[code], code)
    logger.info("Case %s: %s -> %s -> %s, lifetimes (ms) %s",
                code, *case.species, ", ".join(f"{t:.1f}" for t in case.lifetimes))
    return case
