"""Workflow engine tests for connection requests."""

import asyncio
from uuid import uuid4

import pytest

from rapport.db.errors import ConflictError, NotFoundError, ValidationError
from rapport.domain import ConnectionStatus, RelationshipKind
from rapport.workflow import Actor, ForbiddenError, InvalidTransitionError

CONNECTION = RelationshipKind.CONNECTION


@pytest.fixture
async def pending(engine):
    result = await engine.create_connection("alice", "bob")
    return result.record


class TestCreateConnection:
    """Tests for creating connection requests."""

    async def test_starts_pending(self, engine) -> None:
        result = await engine.create_connection("alice", "bob")

        assert result.applied is True
        assert result.record.status == ConnectionStatus.PENDING
        assert result.counter_value is None

    async def test_only_requester_may_create(self, engine) -> None:
        with pytest.raises(ForbiddenError):
            await engine.create(
                CONNECTION,
                {"requester_id": "alice", "recipient_id": "bob"},
                Actor.member("carol"),
            )

    async def test_duplicate_open_request_rejected(self, engine, pending) -> None:
        with pytest.raises(ValidationError):
            await engine.create_connection("bob", "alice")

    async def test_duplicate_found_behind_many_newer_connections(
        self, engine, pending
    ) -> None:
        for i in range(120):
            await engine.create_connection("alice", f"member-{i}")

        with pytest.raises(ValidationError):
            await engine.create_connection("alice", "bob")

    async def test_concurrent_duplicates_one_wins(self, engine) -> None:
        results = await asyncio.gather(
            engine.create_connection("alice", "bob"),
            engine.create_connection("bob", "alice"),
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], ValidationError)

    async def test_new_request_after_rejection(self, engine, pending) -> None:
        await engine.transition(CONNECTION, pending.id, Actor.member("bob"), "rejected")

        result = await engine.create_connection("alice", "bob")

        assert result.record.id != pending.id

    async def test_cannot_create_into_terminal_status(self, engine) -> None:
        with pytest.raises(ValidationError):
            await engine.create(
                CONNECTION,
                {"requester_id": "alice", "recipient_id": "bob", "status": "accepted"},
                Actor.member("alice"),
            )

    async def test_admin_may_create_into_any_status(self, engine) -> None:
        result = await engine.create(
            CONNECTION,
            {"requester_id": "alice", "recipient_id": "bob", "status": "accepted"},
            Actor.admin("root"),
        )
        assert result.record.status == ConnectionStatus.ACCEPTED

    async def test_self_connection_rejected(self, engine) -> None:
        with pytest.raises(ValidationError):
            await engine.create_connection("alice", "alice")


class TestConnectionTransitions:
    """Scenario: request, accept, then a late reject."""

    async def test_accept_then_reject_is_invalid(self, engine, pending) -> None:
        bob = Actor.member("bob")

        accepted = await engine.transition(CONNECTION, pending.id, bob, "accepted")
        assert accepted.record.status == ConnectionStatus.ACCEPTED
        assert accepted.record.version == 2

        with pytest.raises(InvalidTransitionError):
            await engine.transition(CONNECTION, pending.id, bob, "rejected")

    async def test_requester_cannot_accept_own_request(self, engine, pending) -> None:
        with pytest.raises(ForbiddenError):
            await engine.transition(
                CONNECTION, pending.id, Actor.member("alice"), ConnectionStatus.ACCEPTED
            )

    async def test_outsider_cannot_reject(self, engine, pending) -> None:
        with pytest.raises(ForbiddenError):
            await engine.transition(CONNECTION, pending.id, Actor.member("carol"), "rejected")

    async def test_unknown_status_is_validation_error(self, engine, pending) -> None:
        with pytest.raises(ValidationError):
            await engine.transition(CONNECTION, pending.id, Actor.member("bob"), "acepted")

    async def test_missing_record(self, engine) -> None:
        with pytest.raises(NotFoundError):
            await engine.transition(CONNECTION, uuid4(), Actor.member("bob"), "accepted")

    async def test_stale_expected_version(self, engine, pending) -> None:
        with pytest.raises(ConflictError):
            await engine.transition(
                CONNECTION, pending.id, Actor.member("bob"), "accepted", expected_version=2
            )

    async def test_matching_expected_version(self, engine, pending) -> None:
        result = await engine.transition(
            CONNECTION, pending.id, Actor.member("bob"), "accepted", expected_version=1
        )
        assert result.applied

    async def test_concurrent_accept_and_reject(self, engine, pending) -> None:
        bob = Actor.member("bob")

        results = await asyncio.gather(
            engine.transition(CONNECTION, pending.id, bob, "accepted"),
            engine.transition(CONNECTION, pending.id, bob, "rejected"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConflictError) for r in results) == 1
        winner = next(r for r in results if not isinstance(r, Exception))
        stored = await engine.get(CONNECTION, pending.id)
        assert stored.status == winner.record.status
