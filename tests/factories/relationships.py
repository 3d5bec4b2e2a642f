"""Test factories for relationship records and profiles."""

from datetime import datetime, timedelta
from typing import Any

from rapport.domain import (
    ConnectionRequest,
    ConnectionStatus,
    DisplayProfile,
    EventRegistration,
    IntroductionRequest,
    IntroductionStatus,
    MentorSession,
    MentorSessionStatus,
    RegistrationRole,
    RegistrationStatus,
    RelationshipKind,
    utc_now,
)


class ProfileFactory:
    """Factory for creating DisplayProfile instances for testing."""

    @staticmethod
    def create(
        *,
        user_id: str = "alice",
        first_name: str = "Alice",
        last_name: str = "Example",
        email: str | None = None,
        company: str | None = "Acme",
        photo_url: str | None = None,
    ) -> DisplayProfile:
        return DisplayProfile(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=email or f"{user_id}@example.com",
            company=company,
            photo_url=photo_url,
        )


class RelationshipPayloadFactory:
    """Factory for create() payloads, keyed by relationship kind."""

    @staticmethod
    def connection(
        *,
        requester_id: str = "alice",
        recipient_id: str = "bob",
        **overrides: Any,
    ) -> dict[str, Any]:
        return {"requester_id": requester_id, "recipient_id": recipient_id, **overrides}

    @staticmethod
    def introduction(
        *,
        requester_id: str = "alice",
        intermediary_id: str = "bob",
        target_id: str = "carol",
        message: str = "Would love an intro",
        **overrides: Any,
    ) -> dict[str, Any]:
        return {
            "requester_id": requester_id,
            "intermediary_id": intermediary_id,
            "target_id": target_id,
            "message": message,
            **overrides,
        }

    @staticmethod
    def mentor_session(
        *,
        mentor_id: str = "dave",
        mentee_id: str = "alice",
        scheduled_at: datetime | None = None,
        duration: int = 45,
        **overrides: Any,
    ) -> dict[str, Any]:
        return {
            "mentor_id": mentor_id,
            "mentee_id": mentee_id,
            "scheduled_at": scheduled_at or utc_now() + timedelta(days=1),
            "duration": duration,
            **overrides,
        }

    @staticmethod
    def event_registration(
        *,
        event_id: str = "event-1",
        user_id: str = "alice",
        role: RegistrationRole = RegistrationRole.ATTENDEE,
        **overrides: Any,
    ) -> dict[str, Any]:
        return {"event_id": event_id, "user_id": user_id, "role": role, **overrides}

    @classmethod
    def for_kind(cls, kind: RelationshipKind, **overrides: Any) -> dict[str, Any]:
        builders = {
            RelationshipKind.CONNECTION: cls.connection,
            RelationshipKind.INTRODUCTION: cls.introduction,
            RelationshipKind.MENTOR_SESSION: cls.mentor_session,
            RelationshipKind.EVENT_REGISTRATION: cls.event_registration,
        }
        return builders[kind](**overrides)


class RecordFactory:
    """Factory for fully built relationship records."""

    @staticmethod
    def connection(
        status: ConnectionStatus = ConnectionStatus.PENDING, **overrides: Any
    ) -> ConnectionRequest:
        return ConnectionRequest(
            **RelationshipPayloadFactory.connection(**overrides), status=status
        )

    @staticmethod
    def introduction(
        status: IntroductionStatus = IntroductionStatus.PENDING, **overrides: Any
    ) -> IntroductionRequest:
        return IntroductionRequest(
            **RelationshipPayloadFactory.introduction(**overrides), status=status
        )

    @staticmethod
    def mentor_session(
        status: MentorSessionStatus = MentorSessionStatus.SCHEDULED, **overrides: Any
    ) -> MentorSession:
        return MentorSession(
            **RelationshipPayloadFactory.mentor_session(**overrides), status=status
        )

    @staticmethod
    def event_registration(
        status: RegistrationStatus = RegistrationStatus.REGISTERED, **overrides: Any
    ) -> EventRegistration:
        return EventRegistration(
            **RelationshipPayloadFactory.event_registration(**overrides), status=status
        )
