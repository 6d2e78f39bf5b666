"""
Shared fixtures for the CallDash test suite.

Everything here runs without PostgreSQL: the credential store and call data
are in-memory, bcrypt runs at its minimum cost and the token clock is fake.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from calldash.auth import (
    AuthService,
    InMemoryUserRepository,
    PasswordHasher,
    SessionTokenIssuer,
)
from calldash.calls import InMemoryCallSummaryRepository
from calldash.container import AppContainer
from calldash.main import create_app
from calldash.utils.config import Settings

TEST_SECRET = "test-secret"


class FakeClock:
    """Manually advanced UTC clock for token expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


SAMPLE_CALLS: list[dict[str, Any]] = [
    {"call_id": 1, "caller": "+15550100", "duration_seconds": 184, "outcome": "resolved"},
    {"call_id": 2, "caller": "+15550101", "duration_seconds": 42, "outcome": "voicemail"},
    {"call_id": 3, "caller": "+15550102", "duration_seconds": 305, "outcome": "escalated"},
]


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        json_logs=False,
        app_env="test",
        operation_timeout=5.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture()
def issuer(clock: FakeClock) -> SessionTokenIssuer:
    return SessionTokenIssuer(TEST_SECRET, ttl_seconds=3600, clock=clock)


@pytest.fixture()
def store() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def service(
    store: InMemoryUserRepository, hasher: PasswordHasher, issuer: SessionTokenIssuer
) -> AuthService:
    return AuthService(store=store, hasher=hasher, issuer=issuer)


@pytest.fixture()
def container(
    settings: Settings,
    store: InMemoryUserRepository,
    hasher: PasswordHasher,
    issuer: SessionTokenIssuer,
) -> AppContainer:
    return AppContainer(
        settings,
        user_store=store,
        call_store=InMemoryCallSummaryRepository(SAMPLE_CALLS),
        issuer=issuer,
        hasher=hasher,
    )


@pytest.fixture()
def client(container: AppContainer):
    with TestClient(create_app(container)) as test_client:
        yield test_client
