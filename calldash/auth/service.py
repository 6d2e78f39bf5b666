"""
CallDash Authentication Service
Business logic for signup, login, logout, profile updates and token checks
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Generic, Optional, TypeVar
from uuid import UUID

from calldash.metrics import AUTH_OUTCOMES
from calldash.utils.errors import (
    AccountNotFoundError,
    DuplicateEmailError,
    InvalidTokenError,
    MalformedHashError,
    StoreUnavailableError,
    TokenExpiredError,
    ValidationError,
)
from calldash.utils.logger import get_logger

from .hashing import PasswordHasher
from .models import (
    LoginCommand,
    LoginResult,
    ProfileUpdateCommand,
    SignupCommand,
    TokenData,
    UserProfile,
    UserUpdateFields,
    normalize_email,
)
from .repository import CredentialStore
from .tokens import SessionTokenIssuer

logger = get_logger(__name__)

T = TypeVar("T")


class AuthErrorKind(str, Enum):
    EMAIL_TAKEN = "EMAIL_TAKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    NOT_FOUND = "NOT_FOUND"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    INVALID_INPUT = "INVALID_INPUT"


# Client-facing messages; never include internal exception text
ERROR_MESSAGES = {
    AuthErrorKind.EMAIL_TAKEN: "Email already registered",
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    AuthErrorKind.INVALID_TOKEN: "Invalid Token",
    AuthErrorKind.TOKEN_EXPIRED: "Token expired",
    AuthErrorKind.NOT_FOUND: "User not found",
    AuthErrorKind.STORE_UNAVAILABLE: "Service temporarily unavailable",
    AuthErrorKind.TIMEOUT: "Request timed out",
    AuthErrorKind.INVALID_INPUT: "Password is too long",
}


@dataclass(frozen=True)
class AuthResult(Generic[T]):
    """Outcome of an AuthService operation: a value or an error kind"""

    value: Optional[T] = None
    error: Optional[AuthErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> Optional[str]:
        return ERROR_MESSAGES[self.error] if self.error else None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "AuthResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AuthErrorKind) -> "AuthResult[T]":
        return cls(error=error)


def check_token(issuer: SessionTokenIssuer, token: str) -> AuthResult[TokenData]:
    """Verify a session token without touching the credential store"""
    try:
        return AuthResult.success(issuer.verify(token))
    except TokenExpiredError:
        return AuthResult.failure(AuthErrorKind.TOKEN_EXPIRED)
    except InvalidTokenError:
        return AuthResult.failure(AuthErrorKind.INVALID_TOKEN)


class AuthService:
    """
    Authentication service

    Stateless apart from the injected credential store. "Logged in" means
    holding an unexpired token issued by the token issuer; nothing about a
    session is persisted.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        issuer: SessionTokenIssuer,
        default_timeout: Optional[float] = None,
    ):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.default_timeout = default_timeout

    async def signup(
        self, command: SignupCommand, timeout: Optional[float] = None
    ) -> AuthResult[UserProfile]:
        """
        Register a new account. No token is issued; the client logs in next.

        Returns:
            AuthResult with the safe projection, or EMAIL_TAKEN
        """
        return await self._run("signup", self._signup(command), timeout)

    async def _signup(self, command: SignupCommand) -> AuthResult[UserProfile]:
        email = normalize_email(command.email)

        if await self.store.find_by_email(email) is not None:
            logger.info("Signup rejected: email already registered")
            return AuthResult.failure(AuthErrorKind.EMAIL_TAKEN)

        password_hash = await asyncio.to_thread(self.hasher.hash, command.password)

        try:
            # The store's unique index settles races the check above missed
            record = await self.store.create(
                first_name=command.first_name,
                last_name=command.last_name,
                email=email,
                password_hash=password_hash,
            )
        except DuplicateEmailError:
            return AuthResult.failure(AuthErrorKind.EMAIL_TAKEN)

        logger.info("User registered", extra={"user_id": str(record.id)})
        return AuthResult.success(record.to_profile())

    async def login(
        self, command: LoginCommand, timeout: Optional[float] = None
    ) -> AuthResult[LoginResult]:
        """
        Authenticate with email and password and issue a session token

        Unknown email and wrong password return the same INVALID_CREDENTIALS.
        """
        return await self._run("login", self._login(command), timeout)

    async def _login(self, command: LoginCommand) -> AuthResult[LoginResult]:
        email = normalize_email(command.email)

        record = await self.store.find_by_email(email)
        if record is None:
            logger.info("Login failed: invalid credentials")
            return AuthResult.failure(AuthErrorKind.INVALID_CREDENTIALS)

        try:
            matches = await asyncio.to_thread(
                self.hasher.verify, command.password, record.password_hash
            )
        except MalformedHashError:
            logger.error(
                "Stored password hash is malformed", extra={"user_id": str(record.id)}
            )
            matches = False

        if not matches:
            logger.info("Login failed: invalid credentials")
            return AuthResult.failure(AuthErrorKind.INVALID_CREDENTIALS)

        token = self.issuer.issue(record.id, record.email, record.first_name)

        logger.info("User authenticated", extra={"user_id": str(record.id)})
        return AuthResult.success(
            LoginResult(
                token=token,
                expires_in=self.issuer.ttl_seconds,
                user=record.to_profile(),
            )
        )

    async def logout(self) -> AuthResult[None]:
        """
        Stateless: the caller discards the client-held token.
        A token copied before logout stays valid until it expires.
        """
        return AuthResult.success()

    async def get_profile(
        self, subject_id: UUID, timeout: Optional[float] = None
    ) -> AuthResult[UserProfile]:
        """Safe projection for a verified subject"""
        return await self._run("get_profile", self._get_profile(subject_id), timeout)

    async def _get_profile(self, subject_id: UUID) -> AuthResult[UserProfile]:
        profile = await self.store.find_by_id(subject_id)
        if profile is None:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND)
        return AuthResult.success(profile)

    async def update_profile(
        self,
        subject_id: UUID,
        command: ProfileUpdateCommand,
        timeout: Optional[float] = None,
    ) -> AuthResult[UserProfile]:
        """
        Apply a partial profile update for a verified subject

        Args:
            subject_id: user_id from a token already checked by validate_token
            command: names and/or new password; empty values are left unchanged
        """
        return await self._run(
            "update_profile", self._update_profile(subject_id, command), timeout
        )

    async def _update_profile(
        self, subject_id: UUID, command: ProfileUpdateCommand
    ) -> AuthResult[UserProfile]:
        fields = UserUpdateFields(
            first_name=command.first_name or None,
            last_name=command.last_name or None,
        )
        if command.password:
            fields.password_hash = await asyncio.to_thread(
                self.hasher.hash, command.password
            )

        try:
            profile = await self.store.update_by_id(subject_id, fields)
        except AccountNotFoundError:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND)

        logger.info(
            "User profile updated",
            extra={
                "user_id": str(subject_id),
                "fields": sorted(fields.model_dump(exclude_none=True)),
            },
        )
        return AuthResult.success(profile)

    def validate_token(self, token: str) -> AuthResult[TokenData]:
        """Verify a session token and return its claims"""
        return check_token(self.issuer, token)

    # --------- Helpers ----------
    async def _run(
        self,
        operation: str,
        work: Awaitable[AuthResult[T]],
        timeout: Optional[float],
    ) -> AuthResult[T]:
        """Apply the deadline and turn store outages into result values"""
        result = await self._guarded(operation, work, timeout)
        outcome = "ok" if result.ok else result.error.value
        AUTH_OUTCOMES.labels(operation=operation, outcome=outcome).inc()
        return result

    async def _guarded(
        self,
        operation: str,
        work: Awaitable[AuthResult[T]],
        timeout: Optional[float],
    ) -> AuthResult[T]:
        deadline = timeout if timeout is not None else self.default_timeout
        try:
            if deadline is None:
                return await work
            return await asyncio.wait_for(work, timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"{operation} exceeded its {deadline}s deadline")
            return AuthResult.failure(AuthErrorKind.TIMEOUT)
        except StoreUnavailableError:
            logger.error(f"{operation} failed: credential store unavailable")
            return AuthResult.failure(AuthErrorKind.STORE_UNAVAILABLE)
        except ValidationError as e:
            logger.info(f"{operation} rejected: {e.message}")
            return AuthResult.failure(AuthErrorKind.INVALID_INPUT)
