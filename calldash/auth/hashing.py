"""
CallDash Password Hashing
One-way salted bcrypt hashing and verification
"""

import bcrypt

from calldash.utils.errors import MalformedHashError, ValidationError
from calldash.utils.logger import get_logger

from .models import MAX_PASSWORD_LENGTH

logger = get_logger(__name__)

DEFAULT_ROUNDS = 10


class PasswordHasher:
    """bcrypt hasher with a fixed work factor and a fresh salt per hash"""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt

        Args:
            password: Plain text password

        Returns:
            Hashed password string

        Raises:
            ValidationError: If the password exceeds bcrypt's 72 byte limit
        """
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at most {MAX_PASSWORD_LENGTH} bytes",
                details={"field": "password"},
            )
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """
        Verify a password against its hash

        Args:
            password: Plain text password to verify
            hashed: Stored password hash

        Returns:
            True if password matches, False otherwise

        Raises:
            MalformedHashError: If the stored hash is not a bcrypt hash
        """
        try:
            hashed_bytes = hashed.encode("utf-8")
        except AttributeError:
            raise MalformedHashError()

        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_LENGTH:
            # Never accepted by hash(), so it cannot match a stored hash
            return False

        try:
            return bcrypt.checkpw(encoded, hashed_bytes)
        except ValueError:
            logger.warning("Password verification failed: stored hash is malformed")
            raise MalformedHashError()
