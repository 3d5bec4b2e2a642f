"""In-memory profile store: a ProfileResolver and UserDirectory in one."""

import asyncio
from collections.abc import Iterable

from rapport.domain import DisplayProfile
from rapport.profiles.resolver import ProfileResolver, UserDirectory


class InMemoryProfileStore(ProfileResolver, UserDirectory):
    """Profiles held in a dict, for tests and development."""

    def __init__(self, profiles: Iterable[DisplayProfile] = ()) -> None:
        self._profiles: dict[str, DisplayProfile] = {p.user_id: p for p in profiles}

    def add(self, profile: DisplayProfile) -> None:
        self._profiles[profile.user_id] = profile

    def remove(self, user_id: str) -> None:
        self._profiles.pop(user_id, None)

    async def resolve(self, user_id: str) -> DisplayProfile | None:
        await asyncio.sleep(0)
        return self._profiles.get(user_id)

    async def resolve_many(self, user_ids: Iterable[str]) -> dict[str, DisplayProfile]:
        await asyncio.sleep(0)
        return {uid: self._profiles[uid] for uid in set(user_ids) if uid in self._profiles}

    async def list_user_ids(self) -> list[str]:
        await asyncio.sleep(0)
        return list(self._profiles)
