"""In-memory implementation of RelationshipStore."""

import asyncio
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from rapport.db.errors import ConflictError, NotFoundError
from rapport.domain import (
    RelationshipFilter,
    RelationshipKind,
    RelationshipRecord,
    apply_patch,
    build_record,
)
from rapport.relationships.store import RelationshipStore, sort_records


class InMemoryRelationshipStore(RelationshipStore):
    """Dict-backed store for tests and development.

    Each operation yields to the event loop once, the way a network round
    trip would, and then performs its read-check-write without suspending,
    so the conditional update is atomic within the loop. Stored records are
    copied on the way in and out.
    """

    def __init__(self) -> None:
        self._records: dict[RelationshipKind, dict[UUID, RelationshipRecord]] = {
            kind: {} for kind in RelationshipKind
        }

    def _check_unique(self, record: RelationshipRecord) -> None:
        key = record.active_key()
        if key is None:
            return
        for other in self._records[record.kind].values():
            if other.id != record.id and other.active_key() == key:
                raise ConflictError(
                    f"A live {record.kind.value} already exists for {key}"
                )

    async def create(
        self, kind: RelationshipKind, payload: Mapping[str, Any]
    ) -> RelationshipRecord:
        record = build_record(kind, payload)
        await asyncio.sleep(0)
        if record.id in self._records[kind]:
            raise ConflictError(f"{kind.value} {record.id} already exists")
        self._check_unique(record)
        self._records[kind][record.id] = record.model_copy(deep=True)
        return record

    async def get(self, kind: RelationshipKind, record_id: UUID) -> RelationshipRecord:
        await asyncio.sleep(0)
        record = self._records[kind].get(record_id)
        if record is None:
            raise NotFoundError(f"{kind.value} {record_id} not found")
        return record.model_copy(deep=True)

    async def update(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        patch: Mapping[str, Any],
        expected_version: int,
    ) -> RelationshipRecord:
        await asyncio.sleep(0)
        current = self._records[kind].get(record_id)
        if current is None:
            raise NotFoundError(f"{kind.value} {record_id} not found")
        if current.version != expected_version:
            raise ConflictError(
                f"{kind.value} {record_id} was modified concurrently",
                expected_version=expected_version,
                actual_version=current.version,
            )
        updated = apply_patch(current, patch)
        self._check_unique(updated)
        self._records[kind][record_id] = updated
        return updated.model_copy(deep=True)

    async def list(
        self,
        kind: RelationshipKind,
        filter: RelationshipFilter | None = None,
    ) -> list[RelationshipRecord]:
        filter = filter or RelationshipFilter()
        await asyncio.sleep(0)
        matches = [
            record.model_copy(deep=True)
            for record in self._records[kind].values()
            if filter.matches(record)
        ]
        return sort_records(kind, matches)[: filter.limit]

    async def delete(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        expected_version: int | None = None,
    ) -> RelationshipRecord | None:
        await asyncio.sleep(0)
        current = self._records[kind].get(record_id)
        if current is None:
            return None
        if expected_version is not None and current.version != expected_version:
            raise ConflictError(
                f"{kind.value} {record_id} was modified concurrently",
                expected_version=expected_version,
                actual_version=current.version,
            )
        return self._records[kind].pop(record_id)
