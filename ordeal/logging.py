"""Logging setup for Ordeal.

Every module logs through ``logging.getLogger(__name__)``. Nothing is shown
until ``configure_logging`` attaches a Rich console handler to the
``ordeal`` logger, which the CLI does on startup.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PROJECT_LOGGER = "ordeal"


def configure_logging(level: int | str = logging.WARNING, color: bool = True) -> RichHandler:
    """Attach a RichHandler writing to stderr to the ``ordeal`` logger.

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Minimum level, as a number or a level name.
        color: Enable color output when True.

    Returns:
        RichHandler: The installed handler.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    console = Console(color_system="auto" if color else None, stderr=True)
    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=level <= logging.DEBUG,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger(PROJECT_LOGGER)
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
