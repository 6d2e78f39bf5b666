"""
CallDash User Repository
Credential store: persistence for user accounts
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Protocol
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calldash.utils.errors import (
    AccountNotFoundError,
    DuplicateEmailError,
    StoreUnavailableError,
)
from calldash.utils.logger import get_logger

from .models import UserProfile, UserRecord, UserUpdateFields

logger = get_logger(__name__)

# Any database failure other than a unique violation; covers lost
# connections, pool timeouts and a missing schema
STORE_ERRORS = (SQLAlchemyError, OSError)

PROFILE_COLUMNS = "id, email, first_name, last_name, created_at, updated_at"
RECORD_COLUMNS = f"{PROFILE_COLUMNS}, password_hash"


class CredentialStore(Protocol):
    """Contract for user account persistence"""

    async def find_by_email(self, email: str) -> Optional[UserRecord]: ...

    async def find_by_id(self, user_id: UUID) -> Optional[UserProfile]: ...

    async def create(
        self, first_name: str, last_name: str, email: str, password_hash: str
    ) -> UserRecord: ...

    async def update_by_id(
        self, user_id: UUID, fields: UserUpdateFields
    ) -> UserProfile: ...


class UserRepository:
    """PostgreSQL-backed credential store"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """
        Get user by email address

        Args:
            email: Normalized (lower-cased) email

        Returns:
            UserRecord with password_hash or None
        """
        query = text(f"SELECT {RECORD_COLUMNS} FROM users WHERE email = :email")

        try:
            result = await self.db.execute(query, {"email": email})
        except STORE_ERRORS as e:
            raise self._unavailable("find_by_email", e)

        row = result.mappings().fetchone()
        return UserRecord.model_validate(dict(row)) if row else None

    async def find_by_id(self, user_id: UUID) -> Optional[UserProfile]:
        """
        Get user by UUID

        Args:
            user_id: User UUID

        Returns:
            UserProfile (no password) or None
        """
        query = text(f"SELECT {PROFILE_COLUMNS} FROM users WHERE id = :user_id")

        try:
            result = await self.db.execute(query, {"user_id": str(user_id)})
        except STORE_ERRORS as e:
            raise self._unavailable("find_by_id", e)

        row = result.mappings().fetchone()
        return UserProfile.model_validate(dict(row)) if row else None

    async def create(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
    ) -> UserRecord:
        """
        Create a new user

        Uniqueness is enforced by the uq_users_email index, so two concurrent
        signups for the same email cannot both succeed.

        Raises:
            DuplicateEmailError: If the email is already registered
            StoreUnavailableError: If the database cannot be reached
        """
        query = text(f"""
            INSERT INTO users (id, email, first_name, last_name, password_hash)
            VALUES (:id, :email, :first_name, :last_name, :password_hash)
            RETURNING {RECORD_COLUMNS}
        """)

        try:
            result = await self.db.execute(
                query,
                {
                    "id": str(uuid4()),
                    "email": email,
                    "first_name": first_name,
                    "last_name": last_name,
                    "password_hash": password_hash,
                },
            )
            row = result.mappings().fetchone()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("Signup rejected by unique email index")
            raise DuplicateEmailError()
        except STORE_ERRORS as e:
            await self._safe_rollback()
            raise self._unavailable("create", e)
        except BaseException:
            await self._safe_rollback()
            raise

        return UserRecord.model_validate(dict(row))

    async def update_by_id(self, user_id: UUID, fields: UserUpdateFields) -> UserProfile:
        """
        Apply a partial profile update in a single statement

        Raises:
            AccountNotFoundError: If no account has this id
            StoreUnavailableError: If the database cannot be reached
        """
        if fields.is_empty():
            profile = await self.find_by_id(user_id)
            if profile is None:
                raise AccountNotFoundError()
            return profile

        updates = []
        params: Dict[str, Any] = {"user_id": str(user_id)}

        for column, value in fields.model_dump(exclude_none=True).items():
            updates.append(f"{column} = :{column}")
            params[column] = value

        query = text(f"""
            UPDATE users
            SET {", ".join(updates)}, updated_at = NOW()
            WHERE id = :user_id
            RETURNING {PROFILE_COLUMNS}
        """)

        try:
            result = await self.db.execute(query, params)
            row = result.mappings().fetchone()
            await self.db.commit()
        except STORE_ERRORS as e:
            await self._safe_rollback()
            raise self._unavailable("update_by_id", e)
        except BaseException:
            await self._safe_rollback()
            raise

        if row is None:
            raise AccountNotFoundError()
        return UserProfile.model_validate(dict(row))

    async def _safe_rollback(self) -> None:
        try:
            await self.db.rollback()
        except STORE_ERRORS:
            logger.debug("Rollback skipped: connection already gone")

    @staticmethod
    def _unavailable(operation: str, error: Exception) -> StoreUnavailableError:
        logger.error(f"Credential store unavailable during {operation}: {type(error).__name__}")
        return StoreUnavailableError()


class InMemoryUserRepository:
    """
    Process-local credential store for tests and local development.
    Keyed by normalized email and by id; create() is a single step with no
    await between the uniqueness check and the insert.
    """

    def __init__(self):
        self._by_email: Dict[str, UUID] = {}
        self._by_id: Dict[UUID, Dict[str, Any]] = {}

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        user_id = self._by_email.get(email)
        if user_id is None:
            return None
        return UserRecord.model_validate(self._by_id[user_id])

    async def find_by_id(self, user_id: UUID) -> Optional[UserProfile]:
        row = self._by_id.get(user_id)
        return _profile_from(row) if row else None

    async def create(
        self, first_name: str, last_name: str, email: str, password_hash: str
    ) -> UserRecord:
        if email in self._by_email:
            raise DuplicateEmailError()

        now = datetime.now(timezone.utc)
        row = {
            "id": uuid4(),
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "password_hash": password_hash,
            "created_at": now,
            "updated_at": now,
        }
        self._by_email[email] = row["id"]
        self._by_id[row["id"]] = row
        return UserRecord.model_validate(row)

    async def update_by_id(self, user_id: UUID, fields: UserUpdateFields) -> UserProfile:
        row = self._by_id.get(user_id)
        if row is None:
            raise AccountNotFoundError()

        changes = fields.model_dump(exclude_none=True)
        if changes:
            # Build the new row first so the swap is all-or-nothing
            updated = {**row, **changes, "updated_at": datetime.now(timezone.utc)}
            self._by_id[user_id] = updated
            row = updated
        return _profile_from(row)

    def __len__(self) -> int:
        return len(self._by_id)


def _profile_from(row: Mapping[str, Any]) -> UserProfile:
    return UserProfile.model_validate({k: v for k, v in row.items() if k != "password_hash"})
