"""Relationship record models.

Every record carries an opaque id, creation/update timestamps, an integer
``version`` used as the optimistic concurrency token, a status drawn from
the closed enum of its kind, and the ids of its participants. Participants
are referenced, never owned.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rapport.db.errors import ValidationError
from rapport.domain.enums import (
    ActorRole,
    ConnectionStatus,
    IntroductionStatus,
    MentorSessionStatus,
    RegistrationRole,
    RegistrationStatus,
    RelationshipKind,
)

ParticipantId = str

# Fields no patch may touch; the store owns them.
SYSTEM_FIELDS: frozenset[str] = frozenset({"id", "created_at", "updated_at", "version"})


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class RelationshipRecord(BaseModel):
    """Common shape of all relationship records."""

    model_config = ConfigDict(frozen=False, validate_assignment=True, extra="forbid")

    kind: ClassVar[RelationshipKind]
    participant_fields: ClassVar[dict[ActorRole, str]]
    distinct_participants: ClassVar[bool] = True

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    updated_at: datetime = Field(default_factory=utc_now, description="Last mutation time")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency token")

    @model_validator(mode="after")
    def _check_participants(self) -> "RelationshipRecord":
        ids = self.participants()
        for role, value in ids.items():
            if not value or not value.strip():
                raise ValueError(f"{role.value} is required")
        if self.distinct_participants and len(set(ids.values())) != len(ids):
            roles = ", ".join(role.value for role in ids)
            raise ValueError(f"participants ({roles}) must be pairwise distinct")
        return self

    def participants(self) -> dict[ActorRole, ParticipantId]:
        """Map each participant role to the user id bound to it."""
        return {role: getattr(self, field) for role, field in self.participant_fields.items()}

    def roles_of(self, user_id: ParticipantId) -> set[ActorRole]:
        return {role for role, pid in self.participants().items() if pid == user_id}

    def involves(self, user_id: ParticipantId) -> bool:
        return user_id in self.participants().values()

    def active_key(self) -> tuple[Any, ...] | None:
        """Key that at most one live record of this kind may hold, if any."""
        return None


class ConnectionRequest(RelationshipRecord):
    """A request from one member to connect with another."""

    kind: ClassVar[RelationshipKind] = RelationshipKind.CONNECTION
    participant_fields: ClassVar[dict[ActorRole, str]] = {
        ActorRole.REQUESTER: "requester_id",
        ActorRole.RECIPIENT: "recipient_id",
    }

    requester_id: ParticipantId = Field(..., description="Member asking to connect")
    recipient_id: ParticipantId = Field(..., description="Member being asked")
    status: ConnectionStatus = Field(default=ConnectionStatus.PENDING)

    def active_key(self) -> tuple[Any, ...] | None:
        # One open or accepted connection per pair, in either direction
        if self.status in (ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED):
            return tuple(sorted((self.requester_id, self.recipient_id)))
        return None


class IntroductionRequest(RelationshipRecord):
    """Three-party request: the requester asks the intermediary to introduce
    them to the target."""

    kind: ClassVar[RelationshipKind] = RelationshipKind.INTRODUCTION
    participant_fields: ClassVar[dict[ActorRole, str]] = {
        ActorRole.REQUESTER: "requester_id",
        ActorRole.INTERMEDIARY: "intermediary_id",
        ActorRole.TARGET: "target_id",
    }

    requester_id: ParticipantId
    intermediary_id: ParticipantId
    target_id: ParticipantId
    message: str = Field(default="", description="Note from the requester")
    status: IntroductionStatus = Field(default=IntroductionStatus.PENDING)


class MentorSession(RelationshipRecord):
    """A scheduled meeting between a mentor and a mentee."""

    kind: ClassVar[RelationshipKind] = RelationshipKind.MENTOR_SESSION
    participant_fields: ClassVar[dict[ActorRole, str]] = {
        ActorRole.MENTOR: "mentor_id",
        ActorRole.MENTEE: "mentee_id",
    }

    mentor_id: ParticipantId
    mentee_id: ParticipantId
    scheduled_at: datetime = Field(..., description="Session start")
    duration: int = Field(default=60, gt=0, description="Length in minutes")
    meeting_link: str | None = Field(default=None)
    topic: str = Field(default="")
    description: str | None = Field(default=None)
    status: MentorSessionStatus = Field(default=MentorSessionStatus.SCHEDULED)

    @field_validator("scheduled_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class EventRegistration(RelationshipRecord):
    """A user's registration for an event."""

    kind: ClassVar[RelationshipKind] = RelationshipKind.EVENT_REGISTRATION
    participant_fields: ClassVar[dict[ActorRole, str]] = {
        ActorRole.USER: "user_id",
    }

    event_id: str = Field(..., min_length=1, description="Event being registered for")
    user_id: ParticipantId
    role: RegistrationRole = Field(default=RegistrationRole.ATTENDEE)
    status: RegistrationStatus = Field(default=RegistrationStatus.REGISTERED)

    def active_key(self) -> tuple[Any, ...] | None:
        if self.status != RegistrationStatus.CANCELLED:
            return (self.event_id, self.user_id)
        return None


RECORD_TYPES: dict[RelationshipKind, type[RelationshipRecord]] = {
    RelationshipKind.CONNECTION: ConnectionRequest,
    RelationshipKind.INTRODUCTION: IntroductionRequest,
    RelationshipKind.MENTOR_SESSION: MentorSession,
    RelationshipKind.EVENT_REGISTRATION: EventRegistration,
}


def _describe_errors(error: pydantic.ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "record"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def build_record(kind: RelationshipKind, payload: Mapping[str, Any]) -> RelationshipRecord:
    """Validate ``payload`` into the record type for ``kind``.

    Raises:
        ValidationError: missing participants, non-distinct participants,
            unknown fields or a status outside the kind's enum
    """
    record_type = RECORD_TYPES[kind]
    try:
        return record_type.model_validate(dict(payload))
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Invalid {kind.value}: {_describe_errors(e)}", cause=e
        ) from e


def apply_patch(
    record: RelationshipRecord,
    patch: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> RelationshipRecord:
    """Return a revalidated copy of ``record`` with ``patch`` applied.

    The copy carries a bumped version and a fresh ``updated_at``; the
    original is left untouched.
    """
    forbidden = SYSTEM_FIELDS.intersection(patch)
    if forbidden:
        raise ValidationError(f"Cannot patch store-managed fields: {sorted(forbidden)}")

    data = record.model_dump()
    data.update(patch)
    data["version"] = record.version + 1
    data["updated_at"] = now or utc_now()
    return build_record(record.kind, data)


class RelationshipFilter(BaseModel):
    """Criteria for listing relationship records."""

    participant_id: ParticipantId | None = Field(
        default=None, description="Match records where this user takes part"
    )
    role: ActorRole | None = Field(
        default=None, description="Restrict participant match to this role"
    )
    counterpart_id: ParticipantId | None = Field(
        default=None, description="Match records where this user also takes part"
    )
    status: str | None = Field(default=None, description="Exact status value")
    event_id: str | None = Field(default=None, description="Event registrations only")
    registration_role: RegistrationRole | None = Field(default=None)
    limit: int = Field(
        default=100, gt=0, description="Maximum records returned; the rest are not reported"
    )

    def matches(self, record: RelationshipRecord) -> bool:
        if self.status is not None and record.status.value != self.status:
            return False
        if self.participant_id is not None:
            if self.role is not None:
                if self.participant_id not in {
                    pid for role, pid in record.participants().items() if role == self.role
                }:
                    return False
            elif not record.involves(self.participant_id):
                return False
        if self.counterpart_id is not None and not record.involves(self.counterpart_id):
            return False
        if self.event_id is not None and getattr(record, "event_id", None) != self.event_id:
            return False
        if (
            self.registration_role is not None
            and getattr(record, "role", None) != self.registration_role
        ):
            return False
        return True
