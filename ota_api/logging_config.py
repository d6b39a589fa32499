"""Process-wide logging setup for the update server.

``OTA_LOG_LEVEL`` picks the level explicitly (name or number); otherwise a
truthy ``OTA_DEBUG`` switches to DEBUG. uvicorn receives the same level so
access and application logs agree.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"
LEVEL_ENV_VAR = "OTA_LOG_LEVEL"
DEBUG_ENV_VAR = "OTA_DEBUG"

_UVICORN_LEVELS = {
    logging.CRITICAL: "critical",
    logging.ERROR: "error",
    logging.WARNING: "warning",
    logging.INFO: "info",
    logging.DEBUG: "debug",
}


def parse_level(value: Optional[str]) -> Optional[int]:
    """Return the level named by ``value`` or ``None`` if it names none."""
    text = (value or "").strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else None


def level_from_env(env: Optional[Mapping[str, str]] = None) -> Optional[int]:
    env = os.environ if env is None else env
    explicit = parse_level(env.get(LEVEL_ENV_VAR))
    if explicit is not None:
        return explicit
    if env.get(DEBUG_ENV_VAR, "").strip().lower() in {"1", "true", "yes", "on"}:
        return logging.DEBUG
    return None


def configure_root(default_level: int = logging.INFO, env: Optional[Mapping[str, str]] = None) -> int:
    """Install the compact root handler once and return the effective level."""
    level = level_from_env(env)
    if level is None:
        level = default_level

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root.setLevel(level)
    return level


def uvicorn_log_level(level: int) -> str:
    """Map ``level`` onto the nearest name uvicorn accepts."""
    for threshold in sorted(_UVICORN_LEVELS):
        if level <= threshold:
            return _UVICORN_LEVELS[threshold]
    return "critical"
