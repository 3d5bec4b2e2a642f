"""CounterStore implementations."""

from rapport.counters.stores.inmemory import InMemoryCounterStore
from rapport.counters.stores.postgres import PostgresCounterStore
from rapport.counters.stores.redis import RedisCounterStore

__all__ = ["InMemoryCounterStore", "PostgresCounterStore", "RedisCounterStore"]
