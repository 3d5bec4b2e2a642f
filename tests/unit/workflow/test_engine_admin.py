"""Workflow engine tests for administrative overrides."""

import asyncio

import pytest
from prometheus_client import REGISTRY

from rapport.counters import ATTENDEES_COUNT
from rapport.db.errors import ConflictError, NotFoundError, ValidationError
from rapport.domain import (
    ActorRole,
    ConnectionStatus,
    IntroductionStatus,
    RegistrationRole,
    RegistrationStatus,
    RelationshipKind,
)
from rapport.relationships import InMemoryRelationshipStore
from rapport.selection import IntermediarySelector
from rapport.workflow import Actor, ForbiddenError, InvalidTransitionError, WorkflowEngine

ADMIN = Actor.admin("root")


def _overrides(kind: str, operation: str) -> float:
    labels = {"kind": kind, "operation": operation}
    return REGISTRY.get_sample_value("rapport_admin_overrides_total", labels) or 0.0


class TestForceTransition:
    """Tests for forced transitions."""

    async def test_skips_edge_set(self, engine) -> None:
        pending = await engine.register_for_event("E1", "bob", RegistrationRole.SPEAKER)
        before = _overrides("event_registration", "force_transition")

        result = await engine.force_transition(
            RelationshipKind.EVENT_REGISTRATION,
            pending.record.id,
            ADMIN,
            "attended",
            reason="checked in at the door",
        )

        assert result.record.status == RegistrationStatus.ATTENDED
        assert result.counter_value == 1
        assert _overrides("event_registration", "force_transition") == before + 1

    async def test_cannot_leave_terminal(self, engine) -> None:
        created = await engine.create_connection("alice", "bob")
        await engine.transition(
            RelationshipKind.CONNECTION, created.record.id, Actor.member("bob"), "rejected"
        )

        with pytest.raises(InvalidTransitionError, match="terminal"):
            await engine.force_transition(
                RelationshipKind.CONNECTION, created.record.id, ADMIN, "accepted"
            )

    async def test_requires_admin(self, engine) -> None:
        created = await engine.create_connection("alice", "bob")

        with pytest.raises(ForbiddenError):
            await engine.force_transition(
                RelationshipKind.CONNECTION,
                created.record.id,
                Actor(user_id="staff", claims=frozenset({ActorRole.ORGANIZER})),
                "accepted",
            )

    async def test_same_status_not_reapplied(self, engine) -> None:
        created = await engine.create_connection("alice", "bob")

        result = await engine.force_transition(
            RelationshipKind.CONNECTION, created.record.id, ADMIN, ConnectionStatus.PENDING
        )

        assert result.applied is False
        assert result.record.version == 1


class TestReassign:
    """Tests for participant reassignment."""

    async def test_reassign_intermediary(self, engine) -> None:
        intro = await engine.create_introduction("alice", "bob", "carol")

        updated = await engine.reassign(
            RelationshipKind.INTRODUCTION,
            intro.record.id,
            ADMIN,
            {ActorRole.INTERMEDIARY: "dave"},
        )

        assert updated.intermediary_id == "dave"
        assert updated.version == 2
        # The new intermediary now holds the accepting role
        result = await engine.transition(
            RelationshipKind.INTRODUCTION, intro.record.id, Actor.member("dave"), "accepted"
        )
        assert result.record.status == IntroductionStatus.ACCEPTED

    async def test_reassign_revalidates(self, engine) -> None:
        intro = await engine.create_introduction("alice", "bob", "carol")

        with pytest.raises(ValidationError):
            await engine.reassign(
                RelationshipKind.INTRODUCTION,
                intro.record.id,
                ADMIN,
                {ActorRole.TARGET: "alice"},
            )

    async def test_unknown_role_rejected(self, engine) -> None:
        created = await engine.create_connection("alice", "bob")

        with pytest.raises(ValidationError):
            await engine.reassign(
                RelationshipKind.CONNECTION,
                created.record.id,
                ADMIN,
                {ActorRole.MENTOR: "dave"},
            )

    async def test_requires_admin(self, engine) -> None:
        created = await engine.create_connection("alice", "bob")

        with pytest.raises(ForbiddenError):
            await engine.reassign(
                RelationshipKind.CONNECTION,
                created.record.id,
                Actor.member("alice"),
                {ActorRole.RECIPIENT: "carol"},
            )


class TestDelete:
    """Tests for administrative deletion."""

    async def test_delete_releases_attendee_slot(self, engine) -> None:
        registration = await engine.register_for_event("E1", "alice")
        await engine.register_for_event("E1", "bob")

        assert await engine.delete(
            RelationshipKind.EVENT_REGISTRATION, registration.record.id, ADMIN
        )

        assert await engine.get_counter("E1", ATTENDEES_COUNT) == 1
        with pytest.raises(NotFoundError):
            await engine.get(RelationshipKind.EVENT_REGISTRATION, registration.record.id)

    async def test_delete_cancelled_leaves_count(self, engine) -> None:
        registration = await engine.register_for_event("E1", "alice")
        await engine.transition(
            RelationshipKind.EVENT_REGISTRATION,
            registration.record.id,
            Actor.member("alice"),
            "cancelled",
        )

        await engine.delete(RelationshipKind.EVENT_REGISTRATION, registration.record.id, ADMIN)

        assert await engine.get_counter("E1", ATTENDEES_COUNT) == 0

    async def test_requires_admin(self, engine) -> None:
        created = await engine.create_connection("alice", "bob")

        with pytest.raises(ForbiddenError):
            await engine.delete(
                RelationshipKind.CONNECTION, created.record.id, Actor.member("alice")
            )


class SlowDeleteStore(InMemoryRelationshipStore):
    """Relationship store whose deletes sit on the event loop for a while."""

    async def delete(self, kind, record_id, expected_version=None):
        for _ in range(20):
            await asyncio.sleep(0)
        return await super().delete(kind, record_id, expected_version)


class TestDeleteRace:
    """Deletion racing a transition on the same record."""

    @pytest.fixture
    def slow_engine(self, counter_store, profile_store, workflow_config) -> WorkflowEngine:
        relationships = SlowDeleteStore()
        return WorkflowEngine(
            relationships=relationships,
            counters=counter_store,
            profiles=profile_store,
            selector=IntermediarySelector(profile_store, relationships),
            config=workflow_config,
        )

    async def test_delete_and_cancel_count_once(self, slow_engine, counter_store) -> None:
        await counter_store.set("E1", ATTENDEES_COUNT, 5)
        registration = await slow_engine.register_for_event("E1", "alice")
        assert await slow_engine.get_counter("E1", ATTENDEES_COUNT) == 6
        kind = RelationshipKind.EVENT_REGISTRATION

        results = await asyncio.gather(
            slow_engine.delete(kind, registration.record.id, ADMIN),
            slow_engine.transition(
                kind, registration.record.id, Actor.member("alice"), "cancelled"
            ),
            return_exceptions=True,
        )

        assert isinstance(results[0], ConflictError)
        assert results[1].applied is True
        assert await slow_engine.get_counter("E1", ATTENDEES_COUNT) == 5
        stored = await slow_engine.get(kind, registration.record.id)
        assert stored.status == RegistrationStatus.CANCELLED

    async def test_stale_expected_version_rejected(self, engine) -> None:
        registration = await engine.register_for_event("E1", "alice")

        with pytest.raises(ConflictError):
            await engine.delete(
                RelationshipKind.EVENT_REGISTRATION,
                registration.record.id,
                ADMIN,
                expected_version=registration.record.version + 1,
            )

        assert await engine.get_counter("E1", ATTENDEES_COUNT) == 1
