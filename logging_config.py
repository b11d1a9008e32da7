"""Logging configuration helpers for the classroom service."""

import logging
from logging import Logger

from config import Config


def configure_logging(level: str = Config.LOG_LEVEL) -> Logger:
    """Configure basic logging for the service and return its logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("classroom")
