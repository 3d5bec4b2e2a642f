"""Profile store implementations."""

from rapport.profiles.stores.inmemory import InMemoryProfileStore
from rapport.profiles.stores.postgres import PostgresProfileStore

__all__ = ["InMemoryProfileStore", "PostgresProfileStore"]
