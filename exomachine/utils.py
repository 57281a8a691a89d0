"""Shared logging helpers."""

import logging
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("exomachine")


def setup_logging(level: int | str | None = None) -> None:
    """Set up logging with Rich handler to stderr.

    :param level: Log level; defaults to EXOMACHINE_LOG_LEVEL or INFO
    """
    if level is None:
        level = os.getenv("EXOMACHINE_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    rich_handler = RichHandler(
        console=Console(stderr=True),
        log_time_format="[%X]",
        show_path=False,
        markup=True,
    )
    rich_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.addHandler(rich_handler)

    for name, lvl in [
        ("urllib3", logging.WARNING),
        ("requests", logging.WARNING),
        ("paramiko", logging.WARNING),
        ("fabric", logging.WARNING),
        ("invoke", logging.WARNING),
    ]:
        lg = logging.getLogger(name)
        for h in lg.handlers[:]:
            lg.removeHandler(h)
        lg.setLevel(lvl)
        lg.propagate = True


def log(msg: str) -> None:
    """Log info message."""
    logger.info(msg)


def debug(msg: str) -> None:
    logger.debug(msg)


def warn(msg: str) -> None:
    """Log warning message."""
    logger.warning(msg)


def error(msg: str) -> None:
    """Log error message and exit."""
    logger.error(msg)
    sys.exit(1)
