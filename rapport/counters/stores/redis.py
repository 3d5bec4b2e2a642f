"""Redis implementation of CounterStore.

Increments use INCRBY. Floored decrements and request-id deduplication
need a read and a conditional write, so they run as Lua scripts which
Redis executes atomically.

Key format: {prefix}:{entity_id}:{counter_name}
Dedup key format: {prefix}:req:{request_id}
"""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from rapport.counters.store import CounterStore, check_amount, check_value
from rapport.db.errors import NotFoundError, StoreUnavailableError
from rapport.observability.logging import get_logger

logger = get_logger(__name__)

# KEYS[1] counter, KEYS[2] dedup marker; ARGV[1] amount, ARGV[2] request id, ARGV[3] ttl
INCREMENT_SCRIPT = """
if ARGV[2] ~= '' then
  if not redis.call('SET', KEYS[2], '1', 'NX', 'EX', ARGV[3]) then
    return tonumber(redis.call('GET', KEYS[1]) or '0')
  end
end
return redis.call('INCRBY', KEYS[1], ARGV[1])
"""

DECREMENT_SCRIPT = """
if ARGV[2] ~= '' then
  if not redis.call('SET', KEYS[2], '1', 'NX', 'EX', ARGV[3]) then
    return tonumber(redis.call('GET', KEYS[1]) or '0')
  end
end
local value = tonumber(redis.call('GET', KEYS[1]) or '0') - tonumber(ARGV[1])
if value < 0 then
  value = 0
end
redis.call('SET', KEYS[1], value)
return value
"""


class RedisCounterStore(CounterStore):
    """Redis-backed CounterStore."""

    def __init__(
        self,
        redis: Redis,
        key_prefix: str = "counter",
        dedup_ttl_seconds: int = 86400,
    ) -> None:
        self._redis = redis
        self._key_prefix = key_prefix
        self._dedup_ttl_seconds = dedup_ttl_seconds

    def _make_key(self, entity_id: str, counter_name: str) -> str:
        return f"{self._key_prefix}:{entity_id}:{counter_name}"

    def _make_dedup_key(self, request_id: str | None) -> str:
        return f"{self._key_prefix}:req:{request_id or ''}"

    async def _run(
        self,
        script: str,
        entity_id: str,
        counter_name: str,
        by: int,
        request_id: str | None,
    ) -> int:
        try:
            value = await self._redis.eval(
                script,
                2,
                self._make_key(entity_id, counter_name),
                self._make_dedup_key(request_id),
                by,
                request_id or "",
                self._dedup_ttl_seconds,
            )
        except RedisError as e:
            logger.error(
                "redis_counter_error",
                entity_id=entity_id,
                counter_name=counter_name,
                error=str(e),
            )
            raise StoreUnavailableError(f"Failed to adjust counter: {e}", cause=e) from e
        return int(value)

    async def increment(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        check_amount(by)
        return await self._run(INCREMENT_SCRIPT, entity_id, counter_name, by, request_id)

    async def decrement(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        check_amount(by)
        return await self._run(DECREMENT_SCRIPT, entity_id, counter_name, by, request_id)

    async def get(self, entity_id: str, counter_name: str) -> int:
        try:
            value = await self._redis.get(self._make_key(entity_id, counter_name))
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to read counter: {e}", cause=e) from e

        if value is None:
            raise NotFoundError(f"Counter {counter_name} of {entity_id} not found")
        return int(value)

    async def set(self, entity_id: str, counter_name: str, value: int) -> int:
        check_value(value)
        try:
            await self._redis.set(self._make_key(entity_id, counter_name), value)
        except RedisError as e:
            raise StoreUnavailableError(f"Failed to set counter: {e}", cause=e) from e
        return value
