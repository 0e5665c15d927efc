"""asyncpg pool for the PostgreSQL task store.

Every connection registers a JSONB codec, so event and pattern payloads
cross the driver as plain dicts.
"""

import json
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from taskbrain.config.models.storage import PostgresConfig
from taskbrain.errors import ConfigurationError, StoreConnectionError
from taskbrain.observability.logging import get_logger

logger = get_logger(__name__)


def resolve_dsn(config: PostgresConfig) -> str:
    """DSN from storage.postgres.dsn, else DATABASE_URL.

    Raises:
        ConfigurationError: If neither is set
    """
    dsn = config.dsn or os.environ.get("DATABASE_URL")
    if not dsn:
        raise ConfigurationError(
            "storage.postgres.dsn or DATABASE_URL is required for the postgres backend"
        )
    return dsn


def _encode_json(value: object) -> str:
    return json.dumps(value, default=str)


async def init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb", encoder=_encode_json, decoder=json.loads, schema="pg_catalog"
    )


class PostgresPool:
    """Connection pool owned by the service container."""

    def __init__(self, config: PostgresConfig) -> None:
        self._config = config
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        dsn = resolve_dsn(self._config)
        try:
            self._pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=self._config.min_pool_size,
                max_size=self._config.max_pool_size,
                max_inactive_connection_lifetime=self._config.max_inactive_connection_lifetime,
                command_timeout=self._config.command_timeout,
                init=init_connection,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_connect_failed", error=str(e))
            raise StoreConnectionError(f"Cannot reach PostgreSQL: {e}", cause=e) from e
        logger.info("postgres_pool_ready", max_size=self._config.max_pool_size)

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection. Driver errors surface as StoreConnectionError.

        Raises:
            StoreConnectionError: If the pool is not connected
        """
        if self._pool is None:
            raise StoreConnectionError("PostgreSQL pool is not connected")
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except asyncpg.PostgresError as e:
            logger.error("postgres_query_failed", error=str(e))
            raise StoreConnectionError(f"PostgreSQL error: {e}", cause=e) from e

    async def health_check(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except (OSError, asyncpg.PostgresError) as e:
            logger.warning("postgres_health_check_failed", error=str(e))
            return False
        return True
