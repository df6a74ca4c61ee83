"""
Shared logging helpers.

All modules log through the ``tempo_checkout`` logger hierarchy so that an
embedding application can configure output once via :func:`setup_logger`.
"""

import logging
from typing import Optional

logger = logging.getLogger("tempo_checkout")

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a child logger of the package logger (e.g. ``engine.executors``)."""
    return logger.getChild(name)


def setup_logger(level: str = "INFO", fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Safe to call more than once; a handler is only added the first time.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO").
        fmt: Optional format string, defaults to a timestamped single line.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or _LOG_FORMAT))
        logger.addHandler(handler)
    return logger
