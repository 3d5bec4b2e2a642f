"""RelationshipStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from rapport.domain import RelationshipFilter, RelationshipKind, RelationshipRecord


class RelationshipStore(ABC):
    """Persistence for the four relationship kinds.

    Side-effect free beyond the records themselves: a store never touches
    counters. Every mutation is a single conditional write guarded by the
    record's ``version``.
    """

    @abstractmethod
    async def create(
        self, kind: RelationshipKind, payload: Mapping[str, Any]
    ) -> RelationshipRecord:
        """Validate and persist a new record.

        Raises:
            ValidationError: missing or non-distinct participants
            ConflictError: another live record already holds the same
                uniqueness key (an open connection between the pair, an
                active registration for the same user and event)
        """

    @abstractmethod
    async def get(self, kind: RelationshipKind, record_id: UUID) -> RelationshipRecord:
        """Get a record by id.

        Raises:
            NotFoundError: no record with this id
        """

    @abstractmethod
    async def update(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        patch: Mapping[str, Any],
        expected_version: int,
    ) -> RelationshipRecord:
        """Apply ``patch`` only if the stored version equals ``expected_version``.

        Raises:
            NotFoundError: no record with this id
            ConflictError: the record changed since the caller read it
            ValidationError: the patched record violates its invariants
        """

    @abstractmethod
    async def list(
        self,
        kind: RelationshipKind,
        filter: RelationshipFilter | None = None,
    ) -> list[RelationshipRecord]:
        """List records, newest first (mentor sessions: soonest first)."""

    @abstractmethod
    async def delete(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        expected_version: int | None = None,
    ) -> RelationshipRecord | None:
        """Physically remove a record. Administrative use only.

        Returns the record as it was when removed, or None if there was no
        such record.

        Raises:
            ConflictError: ``expected_version`` is given and the record
                changed since the caller read it
        """


def sort_records(
    kind: RelationshipKind, records: list[RelationshipRecord]
) -> list[RelationshipRecord]:
    if kind == RelationshipKind.MENTOR_SESSION:
        return sorted(records, key=lambda r: r.scheduled_at)
    return sorted(records, key=lambda r: r.created_at, reverse=True)
