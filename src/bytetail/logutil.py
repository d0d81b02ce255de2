"""Project-wide logging utilities.

Provides a single logger configured lazily; applications embedding bytetail can
override handlers or levels as needed. We default to WARNING to stay quiet
unless something noteworthy happens (e.g., a read failure on a rotated file).
"""
from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER: Optional[logging.Logger] = None


def get_logger() -> logging.Logger:
    global _LOGGER
    if _LOGGER is None:
        logger = logging.getLogger("bytetail")
        # Only add a handler if the application hasn't configured logging.
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(logging.WARNING)
        _LOGGER = logger
    return _LOGGER


def set_level(level: Union[int, str]) -> None:
    """Change verbosity of the project logger (accepts names like "debug")."""
    if isinstance(level, str):
        level = level.upper()
    get_logger().setLevel(level)

__all__ = ["get_logger", "set_level"]
