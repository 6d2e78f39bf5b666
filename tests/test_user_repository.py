"""
Credential store tests.

  - InMemoryUserRepository: exercised directly.
  - UserRepository (PostgreSQL): SQL shape and failure mapping are checked
    against an AsyncMock session; the live round-trip at the bottom runs only
    when CALLDASH_TEST_DATABASE_URL (postgresql+asyncpg://...) is set.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from calldash.auth import (
    AuthErrorKind,
    AuthService,
    InMemoryUserRepository,
    LoginCommand,
    PasswordHasher,
    SessionTokenIssuer,
    UserRepository,
    UserUpdateFields,
)
from calldash.utils.errors import (
    AccountNotFoundError,
    DuplicateEmailError,
    StoreUnavailableError,
)


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


def test_in_memory_create_and_find():
    store = InMemoryUserRepository()

    created = _run(store.create("Ann", "Lee", "ann@example.com", "$2b$hash"))

    found = _run(store.find_by_email("ann@example.com"))
    assert found.id == created.id
    assert found.password_hash == "$2b$hash"
    profile = _run(store.find_by_id(created.id))
    assert profile.first_name == "Ann"
    assert "password_hash" not in profile.model_dump()


def test_in_memory_missing_lookups_return_none():
    store = InMemoryUserRepository()

    assert _run(store.find_by_email("nobody@example.com")) is None
    assert _run(store.find_by_id(uuid4())) is None


def test_in_memory_duplicate_email():
    store = InMemoryUserRepository()
    _run(store.create("Ann", "Lee", "ann@example.com", "h1"))

    with pytest.raises(DuplicateEmailError):
        _run(store.create("Other", "Person", "ann@example.com", "h2"))


def test_in_memory_partial_update_keeps_id_and_email():
    store = InMemoryUserRepository()
    created = _run(store.create("Ann", "Lee", "ann@example.com", "h1"))

    updated = _run(store.update_by_id(created.id, UserUpdateFields(last_name="Kim")))

    assert updated.id == created.id
    assert updated.email == "ann@example.com"
    assert updated.first_name == "Ann"
    assert updated.last_name == "Kim"
    assert _run(store.find_by_email("ann@example.com")).password_hash == "h1"


def test_in_memory_update_unknown_id():
    with pytest.raises(AccountNotFoundError):
        _run(InMemoryUserRepository().update_by_id(uuid4(), UserUpdateFields(first_name="X")))


# ---------------------------------------------------------------------------
# PostgreSQL repository against a mocked session
# ---------------------------------------------------------------------------


def _row(**overrides: Any) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    row = {
        "id": uuid4(),
        "email": "ann@example.com",
        "first_name": "Ann",
        "last_name": "Lee",
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


def _session(row: dict[str, Any] | None = None, error: Exception | None = None) -> AsyncMock:
    result = MagicMock()
    result.mappings.return_value.fetchone.return_value = row
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result, side_effect=error)
    return session


def test_sql_create_returns_record_and_commits():
    session = _session(_row(password_hash="$2b$hash"))

    record = _run(UserRepository(session).create("Ann", "Lee", "ann@example.com", "$2b$hash"))

    assert record.email == "ann@example.com"
    session.commit.assert_awaited_once()
    query, params = session.execute.call_args.args
    assert "INSERT INTO users" in str(query)
    assert params["email"] == "ann@example.com"
    assert params["password_hash"] == "$2b$hash"


def test_sql_unique_violation_is_duplicate_email():
    error = IntegrityError("INSERT INTO users", {}, Exception("uq_users_email"))
    session = _session(error=error)

    with pytest.raises(DuplicateEmailError):
        _run(UserRepository(session).create("Ann", "Lee", "ann@example.com", "h"))

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()


def test_sql_connection_failure_is_store_unavailable():
    session = _session(error=OperationalError("SELECT", {}, Exception("connection refused")))

    with pytest.raises(StoreUnavailableError):
        _run(UserRepository(session).find_by_email("ann@example.com"))


@pytest.mark.parametrize(
    "error",
    [
        ProgrammingError("SELECT", {}, Exception('relation "users" does not exist')),
        PoolTimeoutError("QueuePool limit reached"),
    ],
)
def test_sql_other_database_failures_are_store_unavailable(error: Exception):
    with pytest.raises(StoreUnavailableError):
        _run(UserRepository(_session(error=error)).find_by_email("ann@example.com"))


def test_missing_users_table_becomes_result_value(
    hasher: PasswordHasher, issuer: SessionTokenIssuer
):
    error = ProgrammingError("SELECT", {}, Exception('relation "users" does not exist'))
    service = AuthService(UserRepository(_session(error=error)), hasher, issuer)

    result = _run(service.login(LoginCommand(email="ann@example.com", password="pw")))

    assert result.error is AuthErrorKind.STORE_UNAVAILABLE


def test_sql_find_by_email_absent():
    assert _run(UserRepository(_session(None)).find_by_email("x@example.com")) is None


def test_sql_update_sets_only_provided_columns():
    session = _session(_row(first_name="X"))

    profile = _run(
        UserRepository(session).update_by_id(uuid4(), UserUpdateFields(first_name="X"))
    )

    assert profile.first_name == "X"
    query, params = session.execute.call_args.args
    sql = str(query)
    assert "first_name = :first_name" in sql
    assert "last_name =" not in sql
    assert "password_hash" not in sql
    assert set(params) == {"user_id", "first_name"}
    session.commit.assert_awaited_once()


def test_sql_update_unknown_id_is_not_found():
    with pytest.raises(AccountNotFoundError):
        _run(
            UserRepository(_session(None)).update_by_id(
                uuid4(), UserUpdateFields(last_name="Kim")
            )
        )


def test_sql_update_failure_rolls_back():
    session = _session(error=OperationalError("UPDATE", {}, Exception("gone")))

    with pytest.raises(StoreUnavailableError):
        _run(UserRepository(session).update_by_id(uuid4(), UserUpdateFields(first_name="X")))

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()


# ---------------------------------------------------------------------------
# Live PostgreSQL round-trip
# ---------------------------------------------------------------------------

LIVE_DB_URL = os.getenv("CALLDASH_TEST_DATABASE_URL")


@pytest.mark.skipif(not LIVE_DB_URL, reason="CALLDASH_TEST_DATABASE_URL not set")
def test_live_concurrent_signups_single_winner():
    from sqlalchemy import text

    from calldash.db import DatabaseConnectionPool, create_schema

    email = f"race_{uuid4().hex[:8]}@calldash.test"

    async def _scenario() -> list[Any]:
        pool = DatabaseConnectionPool(LIVE_DB_URL, min_connections=2, max_connections=4)
        await pool.initialize()
        try:
            await create_schema(pool.engine)

            async def _create(first: str) -> Any:
                async with pool.get_session() as session:
                    try:
                        return await UserRepository(session).create(first, "Race", email, "h")
                    except DuplicateEmailError as e:
                        return e

            outcomes = await asyncio.gather(_create("A"), _create("B"))

            async with pool.get_session() as session:
                await session.execute(text("DELETE FROM users WHERE email = :e"), {"e": email})
            return list(outcomes)
        finally:
            await pool.close()

    outcomes = _run(_scenario())

    assert sum(isinstance(o, DuplicateEmailError) for o in outcomes) == 1
