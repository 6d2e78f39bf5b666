"""
CallDash - Database Connection Pooling
Async engine and session management for the PostgreSQL stores
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from calldash.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseConnectionPool:
    """
    Async database connection pool

    - Connection reuse across requests
    - Pre-ping so dropped connections are replaced transparently
    - Sessions commit on success and roll back on any error or cancellation
    """

    def __init__(
        self,
        database_url: str,
        min_connections: int = 5,
        max_connections: int = 20,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        echo: bool = False,
        name: str = "primary",
    ):
        """
        Initialize connection pool

        Args:
            database_url: SQLAlchemy async URL (postgresql+asyncpg://...)
            min_connections: Minimum pool size
            max_connections: Maximum pool size
            pool_recycle: Seconds before recycling connection
            pool_pre_ping: Test connection before use
            echo: Enable SQL echo (dev only)
            name: Label used in logs and health output
        """
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

        self.pool_config = {
            "pool_size": min_connections,
            "max_overflow": max_connections - min_connections,
            "pool_recycle": pool_recycle,
            "pool_pre_ping": pool_pre_ping,
            "pool_timeout": 30,
            "echo": echo,
        }

        self.database_url = database_url
        self.name = name
        self._is_initialized = False

        self.connection_errors = 0

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def initialize(self) -> None:
        """Create engine and session factory"""
        if self._is_initialized:
            logger.warning(f"Database pool '{self.name}' already initialized")
            return

        logger.info(f"Initializing database connection pool '{self.name}'")

        self.engine = create_async_engine(self.database_url, **self.pool_config)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._register_events()
        self._is_initialized = True

        logger.info(
            f"Database pool '{self.name}' initialized: "
            f"pool_size={self.pool_config['pool_size']}, "
            f"max_overflow={self.pool_config['max_overflow']}"
        )

    async def close(self) -> None:
        """Close all connections and dispose engine"""
        if not self._is_initialized:
            return

        logger.info(f"Closing database connection pool '{self.name}'")

        if self.engine:
            await self.engine.dispose()

        self._is_initialized = False

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get database session from pool

        Usage:
        async with pool.get_session() as session:
            result = await session.execute(query)
        """
        if not self._is_initialized:
            raise RuntimeError(
                "Database pool not initialized. Call initialize() first."
            )

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds"""
        if not self._is_initialized:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            self.connection_errors += 1
            logger.warning(f"Database pool '{self.name}' ping failed: {type(e).__name__}")
            return False

    def _register_events(self) -> None:
        """Register SQLAlchemy event listeners for monitoring"""

        @event.listens_for(self.engine.sync_engine, "connect")
        def receive_connect(dbapi_conn, connection_record):
            logger.debug(f"New database connection established ({self.name})")

        @event.listens_for(self.engine.sync_engine, "close")
        def receive_close(dbapi_conn, connection_record):
            logger.debug(f"Database connection closed ({self.name})")

    def get_pool_status(self) -> Dict[str, Any]:
        """Get connection pool status"""
        if not self.engine:
            return {"status": "not_initialized"}

        pool = self.engine.pool

        return {
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
            "connection_errors": self.connection_errors,
        }
