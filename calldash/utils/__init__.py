"""
CallDash Shared Utilities
Configuration, logging and error types used across the service
"""

from .config import Settings, get_settings
from .errors import (
    AuthenticationError,
    AuthorizationError,
    CallDashException,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from .logger import get_logger

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Logging
    "get_logger",
    # Errors
    "CallDashException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "ServiceUnavailableError",
]
