"""Profile resolution and the user population.

Both interfaces describe collaborators owned by the surrounding
application: the engine reads display fields and member ids through them
and never writes.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from rapport.domain import DisplayProfile


class ProfileResolver(ABC):
    """Resolve user ids to display attributes."""

    @abstractmethod
    async def resolve(self, user_id: str) -> DisplayProfile | None:
        """Return the profile, or None if the user does not exist."""

    @abstractmethod
    async def resolve_many(self, user_ids: Iterable[str]) -> dict[str, DisplayProfile]:
        """Batch form of ``resolve`` in a single round trip.

        Missing users are absent from the result.
        """

    async def resolve_or_placeholder(self, user_id: str) -> DisplayProfile:
        return await self.resolve(user_id) or DisplayProfile.placeholder(user_id)


class UserDirectory(ABC):
    """The member population, read fresh on every call."""

    @abstractmethod
    async def list_user_ids(self) -> list[str]:
        """All current member ids."""
