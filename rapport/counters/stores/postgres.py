"""PostgreSQL implementation of CounterStore.

Adjustments are single upserts whose arithmetic runs inside the database
(``SET value = counters.value + $3``), so concurrent writers never lose an
update and no row lock is held across a round trip by the application.
"""

import asyncpg

from rapport.counters.store import CounterStore, check_amount, check_value
from rapport.db.errors import NotFoundError, StoreUnavailableError
from rapport.db.pool import PostgresPool
from rapport.observability.logging import get_logger

logger = get_logger(__name__)

INCREMENT_SQL = """
    INSERT INTO counters (entity_id, counter_name, value)
    VALUES ($1, $2, $3)
    ON CONFLICT (entity_id, counter_name) DO UPDATE
    SET value = counters.value + EXCLUDED.value, updated_at = NOW()
    RETURNING value
"""

DECREMENT_SQL = """
    INSERT INTO counters (entity_id, counter_name, value)
    VALUES ($1, $2, 0)
    ON CONFLICT (entity_id, counter_name) DO UPDATE
    SET value = GREATEST(counters.value - $3, 0), updated_at = NOW()
    RETURNING value
"""

CLAIM_REQUEST_SQL = """
    INSERT INTO counter_requests (request_id, entity_id, counter_name)
    VALUES ($1, $2, $3)
    ON CONFLICT (request_id) DO NOTHING
    RETURNING request_id
"""

SELECT_SQL = "SELECT value FROM counters WHERE entity_id = $1 AND counter_name = $2"


class PostgresCounterStore(CounterStore):
    """asyncpg-backed CounterStore over the ``counters`` table."""

    def __init__(self, pool: PostgresPool) -> None:
        self._pool = pool

    async def _adjust(
        self,
        sql: str,
        entity_id: str,
        counter_name: str,
        by: int,
        request_id: str | None,
    ) -> int:
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    if request_id is not None:
                        claimed = await conn.fetchval(
                            CLAIM_REQUEST_SQL, request_id, entity_id, counter_name
                        )
                        if claimed is None:
                            logger.debug(
                                "counter_request_duplicate",
                                entity_id=entity_id,
                                counter_name=counter_name,
                                request_id=request_id,
                            )
                            current = await conn.fetchval(SELECT_SQL, entity_id, counter_name)
                            return current or 0
                    return await conn.fetchval(sql, entity_id, counter_name, by)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(
                "postgres_counter_error",
                entity_id=entity_id,
                counter_name=counter_name,
                error=str(e),
            )
            raise StoreUnavailableError(f"Failed to adjust counter: {e}", cause=e) from e

    async def increment(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        check_amount(by)
        return await self._adjust(INCREMENT_SQL, entity_id, counter_name, by, request_id)

    async def decrement(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        check_amount(by)
        return await self._adjust(DECREMENT_SQL, entity_id, counter_name, by, request_id)

    async def get(self, entity_id: str, counter_name: str) -> int:
        try:
            async with self._pool.acquire() as conn:
                value = await conn.fetchval(SELECT_SQL, entity_id, counter_name)
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreUnavailableError(f"Failed to read counter: {e}", cause=e) from e

        if value is None:
            raise NotFoundError(f"Counter {counter_name} of {entity_id} not found")
        return value

    async def set(self, entity_id: str, counter_name: str, value: int) -> int:
        check_value(value)
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchval(
                    """
                    INSERT INTO counters (entity_id, counter_name, value)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (entity_id, counter_name) DO UPDATE
                    SET value = EXCLUDED.value, updated_at = NOW()
                    RETURNING value
                    """,
                    entity_id,
                    counter_name,
                    value,
                )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreUnavailableError(f"Failed to set counter: {e}", cause=e) from e
