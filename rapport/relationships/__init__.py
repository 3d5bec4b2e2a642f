"""Relationship repository: persistence for relationship records."""

from rapport.relationships.store import RelationshipStore
from rapport.relationships.stores import (
    InMemoryRelationshipStore,
    PostgresRelationshipStore,
)

__all__ = [
    "RelationshipStore",
    "InMemoryRelationshipStore",
    "PostgresRelationshipStore",
]
