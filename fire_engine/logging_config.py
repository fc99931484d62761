"""Logging setup for the projection engine."""

import logging
import sys
from typing import Optional

from fire_engine.config import EngineSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(
    level: Optional[str] = None, settings: Optional[EngineSettings] = None
) -> logging.Logger:
    """Configure the ``fire_engine`` logger with a stream handler.

    Args:
        level: Explicit log level; takes precedence over settings
        settings: Engine settings providing ``log_level``

    Returns:
        The configured package logger
    """
    if level is None:
        level = settings.log_level if settings is not None else "INFO"

    logger = logging.getLogger("fire_engine")
    logger.setLevel(level.upper())

    # Remove existing handlers so repeated setup does not duplicate output
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    return logger
