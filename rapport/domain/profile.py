"""Display attributes of a user, as returned by a profile resolver."""

from pydantic import BaseModel, Field, SerializeAsAny

from rapport.domain.enums import ActorRole
from rapport.domain.models import RelationshipRecord

UNKNOWN_FIRST_NAME = "Unknown"
UNKNOWN_LAST_NAME = "User"


class DisplayProfile(BaseModel):
    """Denormalized participant info shown next to a relationship."""

    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    company: str | None = None
    photo_url: str | None = None
    is_placeholder: bool = Field(default=False, description="Stand-in for a missing user")

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.user_id

    @classmethod
    def placeholder(cls, user_id: str) -> "DisplayProfile":
        return cls(
            user_id=user_id,
            first_name=UNKNOWN_FIRST_NAME,
            last_name=UNKNOWN_LAST_NAME,
            is_placeholder=True,
        )


class RelationshipView(BaseModel):
    """A relationship record enriched with its participants' profiles."""

    record: SerializeAsAny[RelationshipRecord]
    participants: dict[ActorRole, DisplayProfile]
