"""
Configuration utilities: YAML loading and string-to-numeric conversion.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

from .parameters import PAR_NAMES

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"

# Keys kept as strings even when they look numeric (e.g. case code "137i07")
_STRING_KEYS = {"file", "species", "code"}

_CASE_KEYS = {
    "file", "species", "T_capt", "T_last", "T_bkgd", "T_cycle",
    "halflife1", "halflife2", "halflife3",
    "tie_gammaT3_to_gammaT2", "parameters", "free",
}


def convert_numeric_strings(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively convert string representations of numbers to actual numeric types.

    Handles scientific notation (e.g., '2.49e3', '6_000') and underscores.
    Values stored under descriptive keys (file names, species labels) are
    left untouched.

    Parameters
    ----------
    config : dict
        Configuration dictionary from YAML

    Returns
    -------
    dict
        Configuration with numeric strings converted to float
    """
    def convert_value(value: Any, key: Optional[str] = None) -> Any:
        if key in _STRING_KEYS:
            return value
        if isinstance(value, str):
            try:
                return float(value.replace('_', ''))
            except ValueError:
                return value
        elif isinstance(value, dict):
            return {k: convert_value(v, str(k)) for k, v in value.items()}
        elif isinstance(value, list):
            return [convert_value(item) for item in value]
        else:
            return value

    return convert_value(config)


def _warn_unknown_keys(code: str, entry: Dict[str, Any]) -> None:
    unknown = sorted(set(entry) - _CASE_KEYS)
    if unknown:
        logger.warning("Case %s: ignoring unknown key(s) %s", code, unknown)
    for section in ("parameters", "free"):
        names = sorted(set(entry[section]) - set(PAR_NAMES))
        if names:
            logger.warning("Case %s: unknown parameter name(s) in %s: %s. Available: %s",
                           code, section, names, list(PAR_NAMES))


def preprocess_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Preprocess configuration to ensure all numeric values are properly typed.

    Case codes are normalised to strings, each case gets a ``parameters``
    mapping and a ``free`` list (possibly empty) so downstream code does not
    have to test for their presence.

    Parameters
    ----------
    config : dict
        Raw configuration from YAML

    Returns
    -------
    dict
        Processed configuration
    """
    config = convert_numeric_strings(config or {})

    cases = config.get('cases') or {}
    normalised = {}
    for code, entry in cases.items():
        entry = dict(entry or {})
        entry.setdefault('parameters', {})
        entry['parameters'] = {str(k): float(v) for k, v in (entry['parameters'] or {}).items()}
        entry['free'] = [str(name) for name in (entry.get('free') or [])]
        entry['tie_gammaT3_to_gammaT2'] = bool(entry.get('tie_gammaT3_to_gammaT2', False))
        _warn_unknown_keys(str(code), entry)
        normalised[str(code)] = entry
    config['cases'] = normalised

    return config


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load and preprocess a YAML configuration file.

    Parameters
    ----------
    path : str or Path, optional
        Configuration file; defaults to ``config/default.yaml`` at the
        repository root.

    Returns
    -------
    dict
        Preprocessed configuration
    """
    cfg_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    with open(cfg_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    cfg = preprocess_config(raw)
    logger.info("Loaded %d case(s) from %s", len(cfg['cases']), cfg_path)
    return cfg
