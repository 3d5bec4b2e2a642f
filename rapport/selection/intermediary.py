"""Intermediary candidate selection for introduction requests.

Produces a best-effort shortlist of members who could plausibly introduce
a requester to a target. Members with accepted connections to both sides
come first, then those connected to either side, then the rest of the
population at random. Each tier is shuffled, so callers must not read
meaning into the order.
"""

import asyncio
import random

from rapport.db.errors import ValidationError
from rapport.domain import ConnectionStatus, RelationshipFilter, RelationshipKind
from rapport.observability.logging import get_logger
from rapport.profiles.resolver import UserDirectory
from rapport.relationships.store import RelationshipStore

logger = get_logger(__name__)

# Accepted connections read per party; members beyond this are not tiered
CONTACT_SCAN_LIMIT = 5000


class IntermediarySelector:
    """Suggest intermediaries from the current member population."""

    def __init__(
        self,
        directory: UserDirectory,
        relationships: RelationshipStore,
        rng: random.Random | None = None,
    ) -> None:
        self._directory = directory
        self._relationships = relationships
        self._rng = rng or random.Random()

    async def _contacts(self, user_id: str) -> set[str]:
        """Ids of members holding an accepted connection with ``user_id``."""
        connections = await self._relationships.list(
            RelationshipKind.CONNECTION,
            RelationshipFilter(
                participant_id=user_id,
                status=ConnectionStatus.ACCEPTED.value,
                limit=CONTACT_SCAN_LIMIT,
            ),
        )
        if len(connections) >= CONTACT_SCAN_LIMIT:
            logger.warning(
                "contact_scan_truncated", user_id=user_id, limit=CONTACT_SCAN_LIMIT
            )
        contacts: set[str] = set()
        for connection in connections:
            contacts.update(connection.participants().values())
        contacts.discard(user_id)
        return contacts

    async def suggest(self, requester_id: str, target_id: str, limit: int = 3) -> list[str]:
        """Return up to ``limit`` distinct candidate intermediaries.

        Never includes the requester or the target. Reads the population
        and connections at call time.

        Raises:
            ValidationError: requester and target are the same member
        """
        if requester_id == target_id:
            raise ValidationError("Requester and target must be different members")
        if limit <= 0:
            return []

        population, requester_contacts, target_contacts = await asyncio.gather(
            self._directory.list_user_ids(),
            self._contacts(requester_id),
            self._contacts(target_id),
        )
        candidates = set(population) - {requester_id, target_id}

        mutual = candidates & requester_contacts & target_contacts
        either = (candidates & (requester_contacts | target_contacts)) - mutual
        rest = candidates - mutual - either

        shortlist: list[str] = []
        for tier in (mutual, either, rest):
            ordered = sorted(tier)
            self._rng.shuffle(ordered)
            shortlist.extend(ordered[: limit - len(shortlist)])
            if len(shortlist) >= limit:
                break

        logger.debug(
            "intermediaries_suggested",
            requester_id=requester_id,
            target_id=target_id,
            mutual=len(mutual),
            returned=len(shortlist),
        )
        return shortlist
