"""Logging configuration for the proxy."""

import logging
import sys
from typing import Union

LOGGER_NAME = "sparkproxy"


def _coerce_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        resolved = logging.getLevelName(level.strip().upper())
        if isinstance(resolved, int):
            return resolved
    return logging.INFO


def setup_logging(level: Union[int, str, None] = None) -> logging.Logger:
    """Set up logging with proper handlers and formatters."""
    logger = logging.getLogger(LOGGER_NAME)
    resolved_level = _coerce_level(level)
    logger.setLevel(resolved_level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Propagate to root so test log capture still sees our records
    logger.propagate = True

    return logger


# Global logger instance
logger = setup_logging()
