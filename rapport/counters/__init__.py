"""Counter store: atomically updated non-negative counters."""

from rapport.counters.models import (
    ATTENDEES_COUNT,
    VIEW_COUNT,
    CounterDirection,
    CounterOperation,
)
from rapport.counters.store import CounterStore
from rapport.counters.stores import (
    InMemoryCounterStore,
    PostgresCounterStore,
    RedisCounterStore,
)

__all__ = [
    "ATTENDEES_COUNT",
    "VIEW_COUNT",
    "CounterDirection",
    "CounterOperation",
    "CounterStore",
    "InMemoryCounterStore",
    "PostgresCounterStore",
    "RedisCounterStore",
]
