"""
CallDash Authentication Module
Cookie-carried JWT sessions over a bcrypt credential store
"""

from .dependencies import make_current_user_dependency
from .hashing import PasswordHasher
from .models import (
    LoginCommand,
    LoginResult,
    ProfileUpdateCommand,
    SignupCommand,
    TokenData,
    UserProfile,
    UserRecord,
    UserUpdateFields,
    normalize_email,
)
from .repository import CredentialStore, InMemoryUserRepository, UserRepository
from .router import create_auth_router
from .service import AuthErrorKind, AuthResult, AuthService, check_token
from .tokens import SessionTokenIssuer

__all__ = [
    # Service
    "AuthService",
    "AuthResult",
    "AuthErrorKind",
    "check_token",
    # Leaves
    "CredentialStore",
    "UserRepository",
    "InMemoryUserRepository",
    "PasswordHasher",
    "SessionTokenIssuer",
    # Router
    "create_auth_router",
    # Dependencies
    "make_current_user_dependency",
    # Models
    "SignupCommand",
    "LoginCommand",
    "ProfileUpdateCommand",
    "LoginResult",
    "TokenData",
    "UserProfile",
    "UserRecord",
    "UserUpdateFields",
    "normalize_email",
]
