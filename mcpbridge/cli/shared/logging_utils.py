"""Loguru helpers for consistent logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from mcpbridge.config.loader import get_data_dir

_SINK_IDS: dict[str, int] = {}

_CONSOLE_FORMAT = "<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>"


def configure_logging(debug: bool = False, quiet: bool = False) -> None:
    """Replace the default stderr sink; DEBUG when debug, ERROR when quiet, else INFO."""
    level = "DEBUG" if debug else ("ERROR" if quiet else "INFO")
    logger.remove()
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)
    logger.enable("mcpbridge")


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Attach (once per name) a rotating file sink under ~/.mcpbridge/logs."""
    log_path = get_data_dir() / "logs" / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    sink_id = logger.add(
        str(log_path),
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path
