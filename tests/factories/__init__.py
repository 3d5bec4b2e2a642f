"""Test factories for creating test data."""

from tests.factories.relationships import (
    ProfileFactory,
    RecordFactory,
    RelationshipPayloadFactory,
)

__all__ = [
    "ProfileFactory",
    "RecordFactory",
    "RelationshipPayloadFactory",
]
