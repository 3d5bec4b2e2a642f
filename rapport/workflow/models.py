"""Actor and result models for workflow operations."""

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator

from rapport.domain import ActorRole, RelationshipRecord

CLAIMABLE_ROLES: frozenset[ActorRole] = frozenset(
    {ActorRole.ADMIN, ActorRole.SYSTEM, ActorRole.ORGANIZER}
)


class Actor(BaseModel):
    """Who is performing an operation.

    Participant roles are never claimed: they are derived from the record.
    ``claims`` carries the global roles the calling application has already
    established (administrator, system job, staff organizer).
    """

    model_config = ConfigDict(frozen=True)

    user_id: str | None = Field(default=None, description="Acting member, if any")
    claims: frozenset[ActorRole] = Field(default_factory=frozenset)

    @field_validator("claims")
    @classmethod
    def _only_global_roles(cls, value: frozenset[ActorRole]) -> frozenset[ActorRole]:
        invalid = value - CLAIMABLE_ROLES
        if invalid:
            names = ", ".join(sorted(role.value for role in invalid))
            raise ValueError(f"participant roles cannot be claimed: {names}")
        return value

    @classmethod
    def member(cls, user_id: str) -> "Actor":
        return cls(user_id=user_id)

    @classmethod
    def admin(cls, user_id: str | None = None) -> "Actor":
        return cls(user_id=user_id, claims=frozenset({ActorRole.ADMIN}))

    @classmethod
    def system(cls) -> "Actor":
        return cls(claims=frozenset({ActorRole.SYSTEM}))

    @property
    def is_admin(self) -> bool:
        return ActorRole.ADMIN in self.claims


class TransitionResult(BaseModel):
    """Outcome of a create or transition call.

    ``applied`` is False when the call found the record already in the
    requested state and changed nothing.
    """

    record: SerializeAsAny[RelationshipRecord]
    applied: bool = True
    counter_value: int | None = Field(
        default=None, description="Counter value after the side effect, if any"
    )
