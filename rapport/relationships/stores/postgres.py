"""PostgreSQL implementation of RelationshipStore.

Each kind lives in its own table whose columns mirror the record model.
Updates are conditional on the version the caller read
(``WHERE id = $1 AND version = $2``), so of two racing transitions exactly
one lands and the other sees a ConflictError.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any
from uuid import UUID

import asyncpg

from rapport.db.errors import ConflictError, NotFoundError, StoreUnavailableError
from rapport.db.pool import PostgresPool
from rapport.domain import (
    RECORD_TYPES,
    ActorRole,
    RelationshipFilter,
    RelationshipKind,
    RelationshipRecord,
    apply_patch,
    build_record,
)
from rapport.observability.logging import get_logger
from rapport.relationships.store import RelationshipStore

logger = get_logger(__name__)

TABLES: dict[RelationshipKind, str] = {
    RelationshipKind.CONNECTION: "connection_requests",
    RelationshipKind.INTRODUCTION: "introduction_requests",
    RelationshipKind.MENTOR_SESSION: "mentor_sessions",
    RelationshipKind.EVENT_REGISTRATION: "event_registrations",
}


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _columns(kind: RelationshipKind) -> list[str]:
    return list(RECORD_TYPES[kind].model_fields)


def _order_by(kind: RelationshipKind) -> str:
    if kind == RelationshipKind.MENTOR_SESSION:
        return "scheduled_at ASC"
    return "created_at DESC"


class PostgresRelationshipStore(RelationshipStore):
    """asyncpg-backed RelationshipStore."""

    def __init__(self, pool: PostgresPool) -> None:
        self._pool = pool

    def _row_to_record(self, kind: RelationshipKind, row: asyncpg.Record) -> RelationshipRecord:
        return build_record(kind, dict(row))

    async def _fetch(
        self, conn: asyncpg.Connection, kind: RelationshipKind, record_id: UUID
    ) -> RelationshipRecord:
        row = await conn.fetchrow(
            f"SELECT * FROM {TABLES[kind]} WHERE id = $1",
            record_id,
        )
        if row is None:
            raise NotFoundError(f"{kind.value} {record_id} not found")
        return self._row_to_record(kind, row)

    async def create(
        self, kind: RelationshipKind, payload: Mapping[str, Any]
    ) -> RelationshipRecord:
        record = build_record(kind, payload)
        columns = _columns(kind)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    f"INSERT INTO {TABLES[kind]} ({', '.join(columns)}) "
                    f"VALUES ({placeholders})",
                    *(_to_db(getattr(record, column)) for column in columns),
                )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(
                f"A live {kind.value} already exists: {e}", cause=e
            ) from e
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_create_error", kind=kind.value, error=str(e))
            raise StoreUnavailableError(f"Failed to create {kind.value}: {e}", cause=e) from e

        logger.debug("relationship_inserted", kind=kind.value, record_id=str(record.id))
        return record

    async def get(self, kind: RelationshipKind, record_id: UUID) -> RelationshipRecord:
        try:
            async with self._pool.acquire() as conn:
                return await self._fetch(conn, kind, record_id)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(
                "postgres_get_error", kind=kind.value, record_id=str(record_id), error=str(e)
            )
            raise StoreUnavailableError(f"Failed to get {kind.value}: {e}", cause=e) from e

    async def update(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        patch: Mapping[str, Any],
        expected_version: int,
    ) -> RelationshipRecord:
        try:
            async with self._pool.acquire() as conn:
                current = await self._fetch(conn, kind, record_id)
                if current.version != expected_version:
                    raise ConflictError(
                        f"{kind.value} {record_id} was modified concurrently",
                        expected_version=expected_version,
                        actual_version=current.version,
                    )

                updated = apply_patch(current, patch)
                columns = [c for c in _columns(kind) if c not in ("id", "created_at")]
                assignments = ", ".join(
                    f"{column} = ${i}" for i, column in enumerate(columns, start=3)
                )
                result = await conn.execute(
                    f"UPDATE {TABLES[kind]} SET {assignments} "
                    "WHERE id = $1 AND version = $2",
                    record_id,
                    expected_version,
                    *(_to_db(getattr(updated, column)) for column in columns),
                )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(
                f"A live {kind.value} already exists: {e}", cause=e
            ) from e
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(
                "postgres_update_error",
                kind=kind.value,
                record_id=str(record_id),
                error=str(e),
            )
            raise StoreUnavailableError(f"Failed to update {kind.value}: {e}", cause=e) from e

        if result.split()[-1] != "1":
            # Another writer committed between our read and our write
            raise ConflictError(
                f"{kind.value} {record_id} was modified concurrently",
                expected_version=expected_version,
            )
        return updated

    async def list(
        self,
        kind: RelationshipKind,
        filter: RelationshipFilter | None = None,
    ) -> list[RelationshipRecord]:
        filter = filter or RelationshipFilter()
        record_type = RECORD_TYPES[kind]
        clauses: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if filter.status is not None:
            clauses.append(f"status = {bind(filter.status)}")
        if filter.participant_id is not None:
            fields: dict[ActorRole, str] = record_type.participant_fields
            if filter.role is not None:
                field = fields.get(filter.role)
                if field is None:
                    return []
                clauses.append(f"{field} = {bind(filter.participant_id)}")
            else:
                placeholder = bind(filter.participant_id)
                clauses.append(
                    "(" + " OR ".join(f"{f} = {placeholder}" for f in fields.values()) + ")"
                )
        if filter.counterpart_id is not None:
            placeholder = bind(filter.counterpart_id)
            clauses.append(
                "("
                + " OR ".join(
                    f"{f} = {placeholder}" for f in record_type.participant_fields.values()
                )
                + ")"
            )
        if filter.event_id is not None:
            if kind != RelationshipKind.EVENT_REGISTRATION:
                return []
            clauses.append(f"event_id = {bind(filter.event_id)}")
        if filter.registration_role is not None:
            if kind != RelationshipKind.EVENT_REGISTRATION:
                return []
            clauses.append(f"role = {bind(filter.registration_role.value)}")

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = (
            f"SELECT * FROM {TABLES[kind]} {where} "
            f"ORDER BY {_order_by(kind)} LIMIT {bind(filter.limit)}"
        )

        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, *params)
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_list_error", kind=kind.value, error=str(e))
            raise StoreUnavailableError(f"Failed to list {kind.value}: {e}", cause=e) from e

        return [self._row_to_record(kind, row) for row in rows]

    async def delete(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        expected_version: int | None = None,
    ) -> RelationshipRecord | None:
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"DELETE FROM {TABLES[kind]} "
                    "WHERE id = $1 AND ($2::integer IS NULL OR version = $2) "
                    "RETURNING *",
                    record_id,
                    expected_version,
                )
                exists = row is None and expected_version is not None and (
                    await conn.fetchval(
                        f"SELECT 1 FROM {TABLES[kind]} WHERE id = $1", record_id
                    )
                    is not None
                )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(
                "postgres_delete_error", kind=kind.value, record_id=str(record_id), error=str(e)
            )
            raise StoreUnavailableError(f"Failed to delete {kind.value}: {e}", cause=e) from e

        if exists:
            raise ConflictError(
                f"{kind.value} {record_id} was modified concurrently",
                expected_version=expected_version,
            )
        if row is None:
            return None
        return self._row_to_record(kind, row)
