"""
CallDash Errors
Custom exception classes
"""

from typing import Any, Dict, Optional


class CallDashException(Exception):
    """Base exception for CallDash application"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(CallDashException):
    """Validation error (400)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class AuthenticationError(CallDashException):
    """Authentication error (401)"""

    def __init__(
        self,
        message: str = "Authentication required",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, status_code=401, details=details)


class AuthorizationError(CallDashException):
    """Authorization error (403)"""

    def __init__(
        self, message: str = "Permission denied", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, status_code=403, details=details)


class NotFoundError(CallDashException):
    """Resource not found error (404)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=404, details=details)


class ConflictError(CallDashException):
    """Resource conflict error (409)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=409, details=details)


class ServiceUnavailableError(CallDashException):
    """Backing service unavailable or too slow (503)"""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, status_code=503, details=details)


# ============================================================================
# STORE ERRORS
# ============================================================================


class DuplicateEmailError(ConflictError):
    """An account with this normalized email already exists"""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


class AccountNotFoundError(NotFoundError):
    """No account with the requested id"""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class StoreUnavailableError(CallDashException):
    """Backing database unreachable (surfaced as 500)"""

    def __init__(self, message: str = "Database unavailable"):
        super().__init__(message, status_code=500)


# ============================================================================
# CREDENTIAL ERRORS
# ============================================================================


class MalformedHashError(ValidationError):
    """Stored password hash is not a bcrypt hash"""

    def __init__(self, message: str = "Malformed password hash"):
        super().__init__(message)


class InvalidTokenError(AuthorizationError):
    """Token signature, format or claims are invalid"""

    def __init__(self, message: str = "Invalid Token"):
        super().__init__(message)


class TokenExpiredError(InvalidTokenError):
    """Token is past its embedded expiry"""

    def __init__(self, message: str = "Token expired"):
        super().__init__(message)
