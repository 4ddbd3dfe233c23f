"""Loguru sink setup for library users."""

from __future__ import annotations

import sys

from loguru import logger

__all__ = ["configure_logging"]


def configure_logging(level: str = "INFO") -> None:
    """Send restresource logs at ``level`` and above to stderr, one line per record."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="{time:HH:mm:ss} {level} [{name}] {message}",
        colorize=False,
    )
