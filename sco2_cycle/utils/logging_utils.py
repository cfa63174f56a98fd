"""Logging setup for the sco2 command-line tool."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "sco2_cycle"


def configure_logging(
    level: int | str = logging.INFO,
    *,
    console: Console | None = None,
    force: bool = False,
) -> logging.Logger:
    """Configure the package logger with a rich handler.

    Args:
        level: Logging level (e.g. ``logging.DEBUG`` or ``"DEBUG"``).
        console: Console the handler writes to (stderr by default).
        force: Replace handlers that are already attached.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    if force:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

    if not logger.handlers:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger
