"""Domain models: relationship records, statuses, roles and profiles."""

from rapport.domain.enums import (
    STATUS_TYPES,
    ActorRole,
    ConnectionStatus,
    IntroductionStatus,
    MentorSessionStatus,
    RegistrationRole,
    RegistrationStatus,
    RelationshipKind,
)
from rapport.domain.models import (
    RECORD_TYPES,
    ConnectionRequest,
    EventRegistration,
    IntroductionRequest,
    MentorSession,
    RelationshipFilter,
    RelationshipRecord,
    apply_patch,
    build_record,
    utc_now,
)
from rapport.domain.profile import DisplayProfile, RelationshipView

__all__ = [
    "STATUS_TYPES",
    "RECORD_TYPES",
    "ActorRole",
    "ConnectionStatus",
    "IntroductionStatus",
    "MentorSessionStatus",
    "RegistrationRole",
    "RegistrationStatus",
    "RelationshipKind",
    "ConnectionRequest",
    "EventRegistration",
    "IntroductionRequest",
    "MentorSession",
    "RelationshipFilter",
    "RelationshipRecord",
    "DisplayProfile",
    "RelationshipView",
    "apply_patch",
    "build_record",
    "utc_now",
]
