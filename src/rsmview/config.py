"""
YAML defaults for the rsmview command line.

YAML: env RSMVIEW_DEFAULTS_YAML, else ~/.rsmview_defaults.yaml
"""

from __future__ import annotations

import copy
import logging
import os
from typing import Any, Dict

import yaml

from rsm2d.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULTS_ENV = "RSMVIEW_DEFAULTS_YAML"

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "data": {"raw_file": None, "strict_axis": False},
    "offsets": {"omega": 0.0, "two_theta": 0.0},
    "crop": {"mode": "none", "bounds": None},
    "expected": {"omega": None, "two_theta": None, "material": None, "hkl": None, "align": False},
    "view": {
        "space": "q", "x_dir": "0 1 0", "y_dir": "0 0 1", "sub": None,
        "x_range": None, "y_range": None, "zmin": 0.5, "zmax": 4.0,
        "width": 500, "marker_size": None,
    },
    "export": {"html": None, "json": None, "csv": None},
}


# ─────────────────────────────────────────────────────────────────────────────
# YAML utils
# ─────────────────────────────────────────────────────────────────────────────

def yaml_path() -> str:
    p = os.environ.get(DEFAULTS_ENV, "").strip()
    if p:
        return os.path.abspath(os.path.expanduser(p))
    return os.path.join(os.path.expanduser("~"), ".rsmview_defaults.yaml")


def ensure_yaml(path: str) -> None:
    if os.path.isfile(path):
        return
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(DEFAULTS, f, sort_keys=False)


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except OSError as e:
        logger.warning("Could not read defaults YAML %s: %s", path, e)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid defaults YAML {path}: {e}") from None
    if not isinstance(doc, dict):
        raise ConfigError(f"Top-level YAML in {path} must be a mapping of sections.")
    return doc


def save_yaml(path: str, doc: Dict[str, Any]) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(doc, f, sort_keys=False)
    except OSError as e:
        logger.error("Failed to write YAML: %s", e)


# ─────────────────────────────────────────────────────────────────────────────
# Merging
# ─────────────────────────────────────────────────────────────────────────────

def merged(doc: Dict[str, Any] | None) -> Dict[str, Dict[str, Any]]:
    """
    DEFAULTS overlaid with a loaded YAML document.

    Unknown sections/keys are ignored with a warning; a section that is not a
    mapping is a ConfigError. ``None`` values keep the default.
    """
    out = copy.deepcopy(DEFAULTS)
    for section, values in (doc or {}).items():
        if section not in out:
            logger.warning("Ignoring unknown YAML section %r", section)
            continue
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ConfigError(f"YAML section {section!r} must be a mapping")
        for key, val in values.items():
            if key not in out[section]:
                logger.warning("Ignoring unknown YAML key %s.%s", section, key)
                continue
            if val is not None:
                out[section][key] = val
    return out


def as_pair(v: Any, name: str):
    """[lo, hi] from YAML/CLI → (float, float), or None."""
    if v is None:
        return None
    try:
        lo, hi = v
        return float(lo), float(hi)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a [min, max] pair, got {v!r}") from None
