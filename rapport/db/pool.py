"""PostgreSQL connection pool shared by the relationship, counter and
profile stores."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg
import structlog

from rapport.config.models.storage import PostgresConfig
from rapport.db.errors import StoreUnavailableError

logger = structlog.get_logger(__name__)


class PostgresPool:
    """Lazily connected asyncpg pool.

    Usage:
        pool = PostgresPool(dsn="postgresql://...")
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        await pool.close()
    """

    def __init__(
        self,
        dsn: str | None = None,
        min_size: int = 5,
        max_size: int = 20,
        max_inactive_connection_lifetime: float = 300.0,
        command_timeout: float = 60.0,
    ) -> None:
        self._dsn = dsn or self._get_dsn_from_env()
        self._min_size = min_size
        self._max_size = max_size
        self._max_inactive_connection_lifetime = max_inactive_connection_lifetime
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    @classmethod
    def from_config(cls, config: PostgresConfig, dsn: str | None = None) -> "PostgresPool":
        return cls(
            dsn=dsn,
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
            max_inactive_connection_lifetime=config.max_inactive_connection_lifetime,
            command_timeout=config.command_timeout,
        )

    @staticmethod
    def _get_dsn_from_env() -> str:
        """Resolve the DSN from RAPPORT_DATABASE_URL, DATABASE_URL or POSTGRES_*."""
        dsn = os.environ.get("RAPPORT_DATABASE_URL") or os.environ.get("DATABASE_URL")
        if dsn:
            return dsn

        host = os.environ.get("POSTGRES_HOST", "localhost")
        port = os.environ.get("POSTGRES_PORT", "5432")
        user = os.environ.get("POSTGRES_USER", "rapport")
        password = os.environ.get("POSTGRES_PASSWORD", "rapport")
        database = os.environ.get("POSTGRES_DB", "rapport")
        return f"postgresql://{user}:{password}@{host}:{port}/{database}"

    async def connect(self) -> None:
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                max_inactive_connection_lifetime=self._max_inactive_connection_lifetime,
                command_timeout=self._command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_pool_connection_failed", error=str(e))
            raise StoreUnavailableError(
                f"Failed to connect to PostgreSQL: {e}", cause=e
            ) from e

        logger.info(
            "postgres_pool_connected",
            min_size=self._min_size,
            max_size=self._max_size,
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection, connecting on first use."""
        if self._pool is None:
            await self.connect()

        async with self._pool.acquire() as connection:
            yield connection

    async def health_check(self) -> bool:
        if self._pool is None:
            return False

        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (OSError, asyncpg.PostgresError) as e:
            logger.warning("postgres_health_check_failed", error=str(e))
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None
