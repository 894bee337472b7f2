"""
Logging setup for liveload.

Every module logs through a child of the ``liveload`` logger.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "liveload"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the liveload namespace.

    Args:
        name: Module name (usually ``__name__``)

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def setup_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """
    Install a rich handler on the liveload root logger.

    Safe to call more than once; later calls only adjust the level.

    Args:
        level: Log level name
        console: Optional rich console (stderr by default)

    Returns:
        The configured root logger
    """
    global _configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not _configured:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True

    return logger
