"""PostgreSQL profile store reading the application's ``profiles`` table."""

from collections.abc import Iterable

import asyncpg

from rapport.db.errors import StoreUnavailableError
from rapport.db.pool import PostgresPool
from rapport.domain import DisplayProfile
from rapport.observability.logging import get_logger
from rapport.profiles.resolver import ProfileResolver, UserDirectory

logger = get_logger(__name__)

PROFILE_COLUMNS = "id::text AS id, first_name, last_name, email, company, profile_image_url"


def _row_to_profile(row: asyncpg.Record) -> DisplayProfile:
    return DisplayProfile(
        user_id=row["id"],
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        email=row["email"],
        company=row["company"],
        photo_url=row["profile_image_url"],
    )


class PostgresProfileStore(ProfileResolver, UserDirectory):
    """Read-only adapter over ``profiles``."""

    def __init__(self, pool: PostgresPool) -> None:
        self._pool = pool

    async def resolve(self, user_id: str) -> DisplayProfile | None:
        profiles = await self.resolve_many([user_id])
        return profiles.get(user_id)

    async def resolve_many(self, user_ids: Iterable[str]) -> dict[str, DisplayProfile]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id::text = ANY($1::text[])",
                    ids,
                )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("postgres_profile_lookup_error", count=len(ids), error=str(e))
            raise StoreUnavailableError(f"Failed to resolve profiles: {e}", cause=e) from e

        return {row["id"]: _row_to_profile(row) for row in rows}

    async def list_user_ids(self) -> list[str]:
        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch("SELECT id::text AS id FROM profiles")
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreUnavailableError(f"Failed to list users: {e}", cause=e) from e
        return [row["id"] for row in rows]
