"""Logging setup (loguru).

All diagnostics go to stderr so STDOUT stays clean for tailed data.
"""

from __future__ import annotations

import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> {extra}"
)


def setup_logging(debug: bool = False, *, level: str | None = None) -> None:
    """Replace loguru's default handler with a single stderr handler."""
    logger.remove()
    log_level = level or ("DEBUG" if debug else "INFO")
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=log_level,
        colorize=None,
        backtrace=debug,
        diagnose=debug,
    )
    logger.debug("Logging initialised: level={}", log_level)
