"""Settings loaded from the CodeGraph CS TOML config file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .config import CONFIG_FILE, DEFAULT_INDENT, DEFAULT_LOG_LEVEL

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AppSettings:
    indent: Optional[int] = DEFAULT_INDENT
    log_level: str = DEFAULT_LOG_LEVEL


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict if the file is missing or cannot be parsed.
    """
    path = config_file or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}


def load_settings(config_file: Optional[Path] = None) -> AppSettings:
    """Build :class:`AppSettings` from ``[output]`` and ``[logging]``.

    Unknown keys are ignored; invalid values fall back to the defaults.
    """
    full = load_full_config(config_file)
    output = full.get("output", {})
    logging_section = full.get("logging", {})

    indent: Optional[int] = DEFAULT_INDENT
    raw_indent = output.get("indent", DEFAULT_INDENT)
    if isinstance(raw_indent, int) and not isinstance(raw_indent, bool) and raw_indent >= 0:
        indent = raw_indent
    else:
        logger.warning("Invalid [output] indent %r, using %d", raw_indent, DEFAULT_INDENT)

    level = str(logging_section.get("level", DEFAULT_LOG_LEVEL)).upper()
    if level not in LOG_LEVELS:
        logger.warning("Invalid [logging] level %r, using %s", level, DEFAULT_LOG_LEVEL)
        level = DEFAULT_LOG_LEVEL

    return AppSettings(indent=indent, log_level=level)
