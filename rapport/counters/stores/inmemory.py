"""In-memory implementation of CounterStore."""

import asyncio

from rapport.counters.store import CounterStore, check_amount, check_value
from rapport.db.errors import NotFoundError


class InMemoryCounterStore(CounterStore):
    """Dict-backed counters for tests and development.

    Every operation yields once and then reads and writes without
    suspending, which makes the adjustment atomic on the event loop.

    Applied request ids are kept for the life of the store and never
    expire, unlike the TTL-bound markers of the Redis backend, so memory
    grows with every deduplicated call.
    """

    def __init__(self) -> None:
        self._values: dict[tuple[str, str], int] = {}
        self._seen_requests: set[str] = set()

    def _already_applied(self, request_id: str | None) -> bool:
        if request_id is None:
            return False
        if request_id in self._seen_requests:
            return True
        self._seen_requests.add(request_id)
        return False

    async def increment(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        check_amount(by)
        await asyncio.sleep(0)
        key = (entity_id, counter_name)
        if not self._already_applied(request_id):
            self._values[key] = self._values.get(key, 0) + by
        return self._values.get(key, 0)

    async def decrement(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        check_amount(by)
        await asyncio.sleep(0)
        key = (entity_id, counter_name)
        if not self._already_applied(request_id):
            self._values[key] = max(self._values.get(key, 0) - by, 0)
        return self._values.get(key, 0)

    async def get(self, entity_id: str, counter_name: str) -> int:
        await asyncio.sleep(0)
        try:
            return self._values[(entity_id, counter_name)]
        except KeyError:
            raise NotFoundError(f"Counter {counter_name} of {entity_id} not found") from None

    async def set(self, entity_id: str, counter_name: str, value: int) -> int:
        check_value(value)
        await asyncio.sleep(0)
        self._values[(entity_id, counter_name)] = value
        return value
