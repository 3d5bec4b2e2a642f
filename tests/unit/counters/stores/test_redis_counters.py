"""Unit tests for RedisCounterStore with a mocked client."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rapport.counters import VIEW_COUNT
from rapport.counters.stores.redis import (
    DECREMENT_SCRIPT,
    INCREMENT_SCRIPT,
    RedisCounterStore,
)
from rapport.db.errors import NotFoundError, StoreUnavailableError, ValidationError


@pytest.fixture
def mock_redis():
    """Create mock Redis client."""
    redis = AsyncMock()
    redis.eval = AsyncMock(return_value=1)
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def store(mock_redis) -> RedisCounterStore:
    return RedisCounterStore(redis=mock_redis)


class TestKeyFormat:
    """Tests for Redis key formatting."""

    def test_counter_key(self, store: RedisCounterStore) -> None:
        assert store._make_key("rec-1", VIEW_COUNT) == "counter:rec-1:view_count"

    def test_dedup_key(self, store: RedisCounterStore) -> None:
        assert store._make_dedup_key("abc") == "counter:req:abc"

    def test_custom_prefix(self, mock_redis) -> None:
        store = RedisCounterStore(redis=mock_redis, key_prefix="rapport")
        assert store._make_key("e", "attendees_count") == "rapport:e:attendees_count"


class TestAdjustments:
    """Adjustments run as single Lua scripts."""

    async def test_increment_runs_script(self, store, mock_redis) -> None:
        mock_redis.eval.return_value = 7

        value = await store.increment("rec-1", VIEW_COUNT, 2, request_id="r1")

        assert value == 7
        mock_redis.eval.assert_awaited_once_with(
            INCREMENT_SCRIPT,
            2,
            "counter:rec-1:view_count",
            "counter:req:r1",
            2,
            "r1",
            86400,
        )

    async def test_decrement_runs_floored_script(self, store, mock_redis) -> None:
        mock_redis.eval.return_value = 0

        assert await store.decrement("rec-1", VIEW_COUNT) == 0
        assert mock_redis.eval.call_args.args[0] == DECREMENT_SCRIPT
        # No request id: dedup disabled by an empty ARGV[2]
        assert mock_redis.eval.call_args.args[5] == ""

    async def test_invalid_amount_rejected_before_io(self, store, mock_redis) -> None:
        with pytest.raises(ValidationError):
            await store.increment("rec-1", VIEW_COUNT, 0)
        mock_redis.eval.assert_not_called()

    async def test_redis_error_becomes_unavailable(self, store, mock_redis) -> None:
        mock_redis.eval.side_effect = RedisConnectionError("down")

        with pytest.raises(StoreUnavailableError):
            await store.increment("rec-1", VIEW_COUNT)


class TestReadWrite:
    """Tests for get and set."""

    async def test_get_missing_raises(self, store) -> None:
        with pytest.raises(NotFoundError):
            await store.get("rec-1", VIEW_COUNT)

    async def test_get_parses_value(self, store, mock_redis) -> None:
        mock_redis.get.return_value = "12"
        assert await store.get("rec-1", VIEW_COUNT) == 12

    async def test_set(self, store, mock_redis) -> None:
        assert await store.set("rec-1", VIEW_COUNT, 5) == 5
        mock_redis.set.assert_awaited_once_with("counter:rec-1:view_count", 5)
