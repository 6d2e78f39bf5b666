"""
CallDash Dependency Container
Builds process-wide collaborators from Settings and exposes FastAPI dependencies
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from calldash.auth.hashing import PasswordHasher
from calldash.auth.repository import CredentialStore, UserRepository
from calldash.auth.service import AuthService
from calldash.auth.tokens import SessionTokenIssuer
from calldash.calls.repository import CallSummaryRepository, CallSummaryStore
from calldash.db.models import create_schema
from calldash.db.pool import DatabaseConnectionPool
from calldash.utils.config import Settings
from calldash.utils.logger import get_logger

logger = get_logger(__name__)


class AppContainer:
    """
    Holds the immutable configuration and the shared resources built from it.

    Passing `user_store` / `call_store` replaces the PostgreSQL-backed stores
    (tests, local development); no pool is created for a replaced store.
    """

    def __init__(
        self,
        settings: Settings,
        user_store: Optional[CredentialStore] = None,
        call_store: Optional[CallSummaryStore] = None,
        issuer: Optional[SessionTokenIssuer] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.settings = settings
        self.hasher = hasher or PasswordHasher(rounds=settings.bcrypt_rounds)
        self.issuer = issuer or SessionTokenIssuer(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            ttl_seconds=settings.jwt_expiration,
        )

        self._user_store = user_store
        self._call_store = call_store
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

        self.auth_pool: Optional[DatabaseConnectionPool] = None
        self.calls_pool: Optional[DatabaseConnectionPool] = None
        if user_store is None:
            self.auth_pool = DatabaseConnectionPool(
                settings.database_async_url, echo=settings.debug, name="auth"
            )
        if call_store is None:
            self.calls_pool = DatabaseConnectionPool(
                settings.calls_database_async_url, echo=settings.debug, name="calls"
            )

    async def startup(self) -> None:
        if self.auth_pool:
            await self.auth_pool.initialize()
            await self._ensure_schema()
        if self.calls_pool:
            await self.calls_pool.initialize()

    async def _ensure_schema(self) -> None:
        """Create the users table once; retried on later requests until it succeeds"""
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            try:
                await create_schema(self.auth_pool.engine)
            except (SQLAlchemyError, OSError) as e:
                # Requests report STORE_UNAVAILABLE until the database is back
                logger.warning(f"Credential store schema not ready: {type(e).__name__}")
                return
            self._schema_ready = True

    async def shutdown(self) -> None:
        for pool in (self.auth_pool, self.calls_pool):
            if pool:
                await pool.close()

    def _auth_service(self, store: CredentialStore) -> AuthService:
        return AuthService(
            store=store,
            hasher=self.hasher,
            issuer=self.issuer,
            default_timeout=self.settings.operation_timeout,
        )

    # --------- FastAPI dependencies ----------
    async def get_auth_service(self) -> AsyncGenerator[AuthService, None]:
        """Per-request AuthService bound to a fresh database session"""
        if self._user_store is not None:
            yield self._auth_service(self._user_store)
            return

        await self._ensure_schema()
        async with self.auth_pool.get_session() as session:
            yield self._auth_service(UserRepository(session))

    async def get_call_store(self) -> AsyncGenerator[CallSummaryStore, None]:
        if self._call_store is not None:
            yield self._call_store
            return

        async with self.calls_pool.get_session() as session:
            yield CallSummaryRepository(session)

    async def health(self) -> Dict[str, Any]:
        databases: Dict[str, str] = {}
        for name, pool in (("auth", self.auth_pool), ("calls", self.calls_pool)):
            if pool is None:
                databases[name] = "in-memory"
            else:
                databases[name] = "connected" if await pool.ping() else "unreachable"

        healthy = all(state != "unreachable" for state in databases.values())
        report: Dict[str, Any] = {
            "status": "healthy" if healthy else "degraded",
            "service": self.settings.service_name,
            "databases": databases,
        }
        pools = {
            name: pool.get_pool_status()
            for name, pool in (("auth", self.auth_pool), ("calls", self.calls_pool))
            if pool is not None
        }
        if pools:
            report["pools"] = pools
        return report


def build_lifespan(container: AppContainer):
    """Lifespan context manager for startup/shutdown"""

    @asynccontextmanager
    async def lifespan(app):
        logger.info(f"{container.settings.service_name} starting up")
        await container.startup()
        yield
        await container.shutdown()
        logger.info(f"{container.settings.service_name} shutting down")

    return lifespan
