"""Logging configuration for the live poll server."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)


def configure_logging(level: str) -> None:
    """Apply the configured level to the root logger.

    Args:
        level: Level name such as ``"INFO"`` or ``"DEBUG"``
    """
    logging.getLogger().setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
