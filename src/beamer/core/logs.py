"""Logging setup for beamer processes."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler: logging.Handler | None = None


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure the beamer logger to write to stdout.

    Calling this again replaces the previously installed handler.

    Args:
        level: Logging level name or number.

    Returns:
        The configured "beamer" logger.
    """
    global _handler

    root_logger = logging.getLogger("beamer")
    if isinstance(level, str):
        level = level.upper()
    root_logger.setLevel(level)

    if _handler is not None:
        root_logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(_handler)
    return root_logger
