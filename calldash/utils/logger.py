"""
CallDash Logger
Module loggers under the service logger namespace
"""

import logging
from typing import Optional

from .config import get_settings


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get logger instance

    Handlers and formatting are installed once by setup_logging() on the
    "calldash" logger; module loggers propagate to it.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger
    """
    settings = get_settings()
    logger = logging.getLogger(name or settings.service_name)

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    return logger
