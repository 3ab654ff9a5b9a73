"""Configuration manager for TypeGraph CLI using a TOML file."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)

VALID_MODES = ("syntactic", "semantic")


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config.CONFIG_FILE, exc)
        return {}


def load_analysis_config() -> Dict[str, Any]:
    """Analysis defaults merged over the built-in ones.

    Unknown keys are dropped and an unknown ``mode`` falls back to the
    built-in default.
    """
    settings = dict(config.DEFAULT_ANALYSIS)
    section = load_full_config().get("analysis", {})
    if not isinstance(section, dict):
        return settings

    for key, default in config.DEFAULT_ANALYSIS.items():
        if key not in section:
            continue
        value = section[key]
        if isinstance(default, bool):
            settings[key] = bool(value)
        elif key == "mode" and value in VALID_MODES:
            settings[key] = value
        elif key == "mode":
            logger.warning("Unknown resolution mode '%s' in config; using %s", value, default)
    return settings


def save_analysis_config(
    mode: Optional[str] = None,
    include_method_signatures: Optional[bool] = None,
    strict: Optional[bool] = None,
    lenient: Optional[bool] = None,
) -> Dict[str, Any]:
    """Update the ``[analysis]`` section, preserving any other sections.

    Only arguments that are not ``None`` are written.  Returns the
    resulting analysis settings.
    """
    if mode is not None and mode not in VALID_MODES:
        raise ValueError(f"Mode must be one of: {', '.join(VALID_MODES)}")

    full = load_full_config()
    section = dict(load_analysis_config())
    updates = {
        "mode": mode,
        "include_method_signatures": include_method_signatures,
        "strict": strict,
        "lenient": lenient,
    }
    section.update({k: v for k, v in updates.items() if v is not None})
    full["analysis"] = section

    config.CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
        toml.dump(full, f)
    return section
