"""Closed enumerations for relationship kinds, statuses and roles."""

from enum import Enum


class RelationshipKind(str, Enum):
    """The four status-bearing relationship record types."""

    CONNECTION = "connection"
    INTRODUCTION = "introduction"
    MENTOR_SESSION = "mentor_session"
    EVENT_REGISTRATION = "event_registration"


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class IntroductionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class MentorSessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RegistrationStatus(str, Enum):
    """Event registration status.

    PENDING is the initial sub-state of role-gated registrations that
    wait for organizer approval.
    """

    PENDING = "pending"
    REGISTERED = "registered"
    ATTENDED = "attended"
    CANCELLED = "cancelled"


class RegistrationRole(str, Enum):
    ATTENDEE = "attendee"
    SPEAKER = "speaker"
    ORGANIZER = "organizer"


class ActorRole(str, Enum):
    """Roles an actor can hold with respect to one record.

    Participant roles are derived from the record itself. ORGANIZER may be
    derived (an active organizer registration for the event) or claimed.
    SYSTEM and ADMIN are only ever claimed by the calling application.
    """

    REQUESTER = "requester"
    RECIPIENT = "recipient"
    INTERMEDIARY = "intermediary"
    TARGET = "target"
    MENTOR = "mentor"
    MENTEE = "mentee"
    USER = "user"
    ORGANIZER = "organizer"
    SYSTEM = "system"
    ADMIN = "admin"


STATUS_TYPES: dict[RelationshipKind, type[Enum]] = {
    RelationshipKind.CONNECTION: ConnectionStatus,
    RelationshipKind.INTRODUCTION: IntroductionStatus,
    RelationshipKind.MENTOR_SESSION: MentorSessionStatus,
    RelationshipKind.EVENT_REGISTRATION: RegistrationStatus,
}
