"""Logging setup for the Shellmind CLI."""

import logging
from typing import Optional, Union

from rich.logging import RichHandler

from .config import LogLevel
from .ui import stderr_console

_handler: Optional[RichHandler] = None


def configure_logging(level: Union[LogLevel, str] = LogLevel.WARNING) -> logging.Logger:
    """Route ``shellmind.*`` loggers through a Rich handler on stderr."""
    global _handler

    if isinstance(level, LogLevel):
        level = level.value
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    logger = logging.getLogger("shellmind")
    logger.setLevel(numeric_level)

    if _handler is None:
        _handler = RichHandler(
            console=stderr_console,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        _handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(_handler)

    _handler.setLevel(numeric_level)
    return logger
