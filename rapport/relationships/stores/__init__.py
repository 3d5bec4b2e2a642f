"""RelationshipStore implementations."""

from rapport.relationships.stores.inmemory import InMemoryRelationshipStore
from rapport.relationships.stores.postgres import PostgresRelationshipStore

__all__ = ["InMemoryRelationshipStore", "PostgresRelationshipStore"]
