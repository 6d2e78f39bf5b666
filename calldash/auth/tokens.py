"""
CallDash Session Tokens
Signed, time-limited JWT session tokens
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID

import jwt

from calldash.utils.errors import InvalidTokenError, TokenExpiredError
from calldash.utils.logger import get_logger

from .models import TokenData

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600

REQUIRED_CLAIMS = ["sub", "email", "iat", "exp"]

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionTokenIssuer:
    """
    Issues and verifies stateless session tokens

    The signing secret is fixed for the lifetime of the issuer. Tokens carry
    the subject id, email and first name plus iat/exp; there is no server-side
    session table, so a token stays valid until it expires.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ):
        if not secret:
            raise ValueError("SessionTokenIssuer requires a non-empty secret")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self._clock = clock or utc_now

    def issue(self, subject_id: UUID, email: str, first_name: Optional[str]) -> str:
        """
        Create a signed session token

        Args:
            subject_id: Account id
            email: Account email (denormalized for display)
            first_name: Account first name (denormalized for display)

        Returns:
            Encoded JWT token string
        """
        issued_at = int(self._clock().timestamp())
        payload = {
            "sub": str(subject_id),
            "email": email,
            "firstname": first_name,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenData:
        """
        Decode and validate a session token

        Args:
            token: JWT token string

        Returns:
            Verified claims

        Raises:
            InvalidTokenError: Bad signature, malformed token or missing claims
            TokenExpiredError: The issuer's clock is at or past the token expiry
        """
        try:
            # exp is checked against the injected clock below
            payload: Dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected session token: {type(e).__name__}")
            raise InvalidTokenError()

        try:
            expires_at = int(payload["exp"])
            claims = TokenData(
                user_id=UUID(str(payload["sub"])),
                email=payload["email"],
                first_name=payload.get("firstname"),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            )
        except (TypeError, ValueError, OverflowError, OSError):
            logger.info("Rejected session token: malformed claims")
            raise InvalidTokenError()

        if self._clock().timestamp() >= expires_at:
            raise TokenExpiredError()

        return claims
