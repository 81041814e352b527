"""
Logging configuration for Style Space.

Library modules obtain loggers through ``get_logger(__name__)`` and never
configure handlers on import. Applications (or scripts) call
``setup_logging()`` once at startup.

Usage:
    from style_space.utils.logging_config import setup_logging, get_logger

    setup_logging()  # honours LOG_LEVEL
    logger = get_logger(__name__)
    logger.info("Projection finished")
"""

import logging
import os
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "style_space"


def setup_logging(
    level: Optional[Union[int, str]] = None,
    fmt: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger with a stream handler.

    Args:
        level: Logging level name or number. Defaults to the LOG_LEVEL
            environment variable, then INFO.
        fmt: Log record format string (default: DEFAULT_FORMAT)

    Returns:
        The configured package logger

    Raises:
        ValueError: If *level* is not a known logging level name
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Re-running setup replaces our handler instead of stacking duplicates
    for handler in list(logger.handlers):
        if getattr(handler, "_style_space_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler._style_space_handler = True
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name* (normally the caller's ``__name__``)."""
    return logging.getLogger(name)
