"""Workflow engine: validated status changes for relationship records.

Every status change follows the same path: load the record, check the
caller's concurrency token, authorize the actor against the edges leading
into the requested status, find the edge out of the current status, check
its guard, write once conditionally on the version that was read, and only
then apply any counter side effect.

The engine holds no in-process locks. Two racing transitions on the same
record are serialized by the store's conditional update: one commits, the
other surfaces a ConflictError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from rapport.config.models.workflow import WorkflowConfig
from rapport.counters.models import VIEW_COUNT
from rapport.counters.store import CounterStore
from rapport.db.errors import ConflictError, StoreUnavailableError, ValidationError
from rapport.domain import (
    ActorRole,
    DisplayProfile,
    RegistrationRole,
    RegistrationStatus,
    RelationshipFilter,
    RelationshipKind,
    RelationshipRecord,
    RelationshipView,
    build_record,
    utc_now,
)
from rapport.observability.logging import get_logger
from rapport.observability.metrics import (
    ADMIN_OVERRIDES,
    COUNTER_OPERATIONS,
    COUNTER_SIDE_EFFECT_FAILURES,
    RELATIONSHIPS_CREATED,
    TRANSITION_LATENCY,
    TRANSITIONS,
)
from rapport.profiles.resolver import ProfileResolver
from rapport.relationships.store import RelationshipStore
from rapport.selection.intermediary import IntermediarySelector
from rapport.workflow.errors import (
    ForbiddenError,
    InvalidTransitionError,
    TransitionCommittedCounterFailedError,
    WorkflowError,
)
from rapport.workflow.machines import StateMachine, machine_for
from rapport.workflow.models import Actor, TransitionResult

logger = get_logger(__name__)

ORGANIZER_SCAN_LIMIT = 500


class WorkflowEngine:
    """Operation surface exposed to the calling application."""

    def __init__(
        self,
        relationships: RelationshipStore,
        counters: CounterStore,
        profiles: ProfileResolver,
        selector: IntermediarySelector | None = None,
        config: WorkflowConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._relationships = relationships
        self._counters = counters
        self._profiles = profiles
        self._selector = selector
        self._config = config or WorkflowConfig()
        self._clock = clock

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(
        self,
        kind: RelationshipKind,
        payload: Mapping[str, Any],
        actor: Actor,
    ) -> TransitionResult:
        """Create a relationship record on behalf of ``actor``.

        The record starts in the kind's initial status unless ``payload``
        names one. Only administrators may create straight into a status
        that is not initial.

        Raises:
            ValidationError: invalid payload, non-initial status, or a
                duplicate open connection between the same members
            ForbiddenError: the actor is not the requesting participant
            ConflictError: a concurrent create claimed the same slot
        """
        machine = machine_for(kind)
        data = dict(payload)
        if "status" in data:
            data["status"] = machine.parse_status(data["status"])
        else:
            data["status"] = self._initial_status(kind, data)

        candidate = build_record(kind, data)
        if candidate.status not in machine.initial and not actor.is_admin:
            raise ValidationError(
                f"A {kind.value} cannot be created as {candidate.status.value}"
            )
        self._authorize_creator(machine, candidate, actor)

        existing = await self._find_live_duplicate(candidate)
        if existing is not None:
            if kind == RelationshipKind.EVENT_REGISTRATION:
                logger.info(
                    "registration_already_exists",
                    record_id=str(existing.id),
                    event_id=existing.event_id,
                    user_id=existing.user_id,
                )
                return TransitionResult(record=existing, applied=False)
            raise ValidationError(
                f"An open {kind.value} already links these members ({existing.id})"
            )

        try:
            record = await self._relationships.create(kind, data)
        except ConflictError as e:
            if kind == RelationshipKind.CONNECTION:
                raise ValidationError(
                    f"An open {kind.value} already links these members", cause=e
                ) from e
            if kind != RelationshipKind.EVENT_REGISTRATION:
                raise
            # Lost a race with a concurrent registration for the same user
            existing = await self._find_live_duplicate(candidate)
            if existing is None:
                raise
            return TransitionResult(record=existing, applied=False)

        RELATIONSHIPS_CREATED.labels(kind=kind.value, status=record.status.value).inc()
        logger.info(
            "relationship_created",
            kind=kind.value,
            record_id=str(record.id),
            status=record.status.value,
            actor_id=actor.user_id,
        )

        counter_value = await self._apply_side_effect(machine, record, None, record.status)
        return TransitionResult(record=record, applied=True, counter_value=counter_value)

    async def create_connection(self, requester_id: str, recipient_id: str) -> TransitionResult:
        return await self.create(
            RelationshipKind.CONNECTION,
            {"requester_id": requester_id, "recipient_id": recipient_id},
            Actor.member(requester_id),
        )

    async def create_introduction(
        self,
        requester_id: str,
        intermediary_id: str,
        target_id: str,
        message: str = "",
    ) -> TransitionResult:
        return await self.create(
            RelationshipKind.INTRODUCTION,
            {
                "requester_id": requester_id,
                "intermediary_id": intermediary_id,
                "target_id": target_id,
                "message": message,
            },
            Actor.member(requester_id),
        )

    async def schedule_session(
        self,
        mentor_id: str,
        mentee_id: str,
        scheduled_at: datetime,
        duration: int = 60,
        *,
        meeting_link: str | None = None,
        topic: str = "",
        description: str | None = None,
        actor: Actor | None = None,
    ) -> TransitionResult:
        """Book a mentor session. Booked by the mentee unless ``actor`` says otherwise."""
        return await self.create(
            RelationshipKind.MENTOR_SESSION,
            {
                "mentor_id": mentor_id,
                "mentee_id": mentee_id,
                "scheduled_at": scheduled_at,
                "duration": duration,
                "meeting_link": meeting_link,
                "topic": topic,
                "description": description,
            },
            actor or Actor.member(mentee_id),
        )

    async def register_for_event(
        self,
        event_id: str,
        user_id: str,
        role: RegistrationRole = RegistrationRole.ATTENDEE,
        *,
        actor: Actor | None = None,
    ) -> TransitionResult:
        """Register ``user_id`` for ``event_id``.

        Registering twice returns the live registration with
        ``applied=False`` and leaves ``attendees_count`` alone.
        """
        return await self.create(
            RelationshipKind.EVENT_REGISTRATION,
            {"event_id": event_id, "user_id": user_id, "role": role},
            actor or Actor.member(user_id),
        )

    def _initial_status(self, kind: RelationshipKind, data: Mapping[str, Any]) -> Enum:
        if kind == RelationshipKind.EVENT_REGISTRATION:
            try:
                role = RegistrationRole(data.get("role", RegistrationRole.ATTENDEE))
            except ValueError:
                raise ValidationError(
                    f"Unknown registration role {data.get('role')!r}"
                ) from None
            if role in self._config.gated_registration_roles:
                return RegistrationStatus.PENDING
            return RegistrationStatus.REGISTERED
        return next(iter(machine_for(kind).initial))

    def _authorize_creator(
        self, machine: StateMachine, record: RelationshipRecord, actor: Actor
    ) -> None:
        if actor.claims & {ActorRole.ADMIN, ActorRole.SYSTEM}:
            return
        if actor.user_id and record.roles_of(actor.user_id) & machine.creator_roles:
            return
        raise ForbiddenError(
            f"Only the requesting participant may create a {machine.kind.value}",
            actor_id=actor.user_id,
        )

    async def _find_live_duplicate(
        self, candidate: RelationshipRecord
    ) -> RelationshipRecord | None:
        key = candidate.active_key()
        if key is None:
            return None
        if candidate.kind == RelationshipKind.EVENT_REGISTRATION:
            filter = RelationshipFilter(
                event_id=candidate.event_id,
                participant_id=candidate.user_id,
                role=ActorRole.USER,
            )
        else:
            filter = RelationshipFilter(participant_id=key[0], counterpart_id=key[1])
        for record in await self._relationships.list(candidate.kind, filter):
            if record.active_key() == key:
                return record
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        actor: Actor,
        target_status: str | Enum,
        *,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Move a record to ``target_status`` along an allowed edge.

        Repeating a call whose target the record already holds returns the
        record untouched with ``applied=False``.

        Raises:
            NotFoundError: no such record
            ValidationError: ``target_status`` is not a status of ``kind``
            ForbiddenError: the actor may not move records into this status
            InvalidTransitionError: no edge from the current status, or its
                guard fails (always the case from a terminal status)
            ConflictError: ``expected_version`` is stale, or another
                transition committed first
            TransitionCommittedCounterFailedError: committed, but the
                counter side effect could not be applied
        """
        machine = machine_for(kind)
        target = machine.parse_status(target_status)

        with TRANSITION_LATENCY.labels(kind=kind.value).time():
            try:
                result = await self._transition(
                    machine, record_id, actor, target, expected_version
                )
            except (WorkflowError, ConflictError) as e:
                TRANSITIONS.labels(
                    kind=kind.value, target_status=target.value, outcome=type(e).__name__
                ).inc()
                raise

        outcome = "applied" if result.applied else "already_applied"
        TRANSITIONS.labels(kind=kind.value, target_status=target.value, outcome=outcome).inc()
        return result

    async def _transition(
        self,
        machine: StateMachine,
        record_id: UUID,
        actor: Actor,
        target: Enum,
        expected_version: int | None,
    ) -> TransitionResult:
        kind = machine.kind
        record = await self._relationships.get(kind, record_id)
        self._check_version(record, expected_version)

        incoming = machine.edges_into(target)
        roles = await self._roles_for(record, actor)
        if incoming and not self._authorized(roles, incoming):
            raise ForbiddenError(
                f"Actor may not move {kind.value} {record_id} to {target.value}",
                actor_id=actor.user_id,
            )

        current = record.status
        if current == target:
            logger.debug(
                "transition_already_applied",
                kind=kind.value,
                record_id=str(record_id),
                status=current.value,
            )
            return TransitionResult(record=record, applied=False)

        edge = machine.edge(current, target)
        if edge is None:
            raise InvalidTransitionError(kind, record_id, current.value, target.value)
        if not self._authorized(roles, [edge]):
            raise ForbiddenError(
                f"Actor may not {edge.action} {kind.value} {record_id}",
                actor_id=actor.user_id,
            )
        if edge.guard is not None:
            reason = edge.guard(record, self._clock())
            if reason:
                raise InvalidTransitionError(
                    kind, record_id, current.value, target.value, reason=reason
                )

        updated = await self._relationships.update(
            kind, record_id, {"status": target}, expected_version=record.version
        )
        logger.info(
            "relationship_transitioned",
            kind=kind.value,
            record_id=str(record_id),
            action=edge.action,
            from_status=current.value,
            to_status=target.value,
            actor_id=actor.user_id,
            version=updated.version,
        )

        counter_value = await self._apply_side_effect(machine, updated, current, target)
        return TransitionResult(record=updated, applied=True, counter_value=counter_value)

    async def force_transition(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        actor: Actor,
        target_status: str | Enum,
        *,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> TransitionResult:
        """Administrative override that ignores the edge set.

        A record in a terminal status stays there; un-terminating one
        means creating a new record.

        Raises:
            ForbiddenError: the actor is not an administrator
            InvalidTransitionError: the record is in a terminal status
        """
        machine = machine_for(kind)
        target = machine.parse_status(target_status)
        if not actor.is_admin:
            raise ForbiddenError("Forced transitions require an administrator", actor.user_id)

        record = await self._relationships.get(kind, record_id)
        self._check_version(record, expected_version)
        current = record.status
        if current == target:
            return TransitionResult(record=record, applied=False)
        if machine.is_terminal(current):
            raise InvalidTransitionError(
                kind, record_id, current.value, target.value, reason="status is terminal"
            )

        updated = await self._relationships.update(
            kind, record_id, {"status": target}, expected_version=record.version
        )
        ADMIN_OVERRIDES.labels(kind=kind.value, operation="force_transition").inc()
        logger.warning(
            "admin_override",
            operation="force_transition",
            kind=kind.value,
            record_id=str(record_id),
            from_status=current.value,
            to_status=target.value,
            actor_id=actor.user_id,
            reason=reason,
        )

        counter_value = await self._apply_side_effect(machine, updated, current, target)
        return TransitionResult(record=updated, applied=True, counter_value=counter_value)

    def _check_version(self, record: RelationshipRecord, expected_version: int | None) -> None:
        if expected_version is not None and record.version != expected_version:
            raise ConflictError(
                f"{record.kind.value} {record.id} changed since it was read",
                expected_version=expected_version,
                actual_version=record.version,
            )

    @staticmethod
    def _authorized(roles: set[ActorRole], edges: list) -> bool:
        if ActorRole.ADMIN in roles:
            return True
        return any(edge.roles & roles for edge in edges)

    async def _roles_for(self, record: RelationshipRecord, actor: Actor) -> set[ActorRole]:
        roles = set(actor.claims)
        if actor.user_id is None:
            return roles
        roles |= record.roles_of(actor.user_id)
        if record.kind == RelationshipKind.EVENT_REGISTRATION and ActorRole.ORGANIZER not in roles:
            if await self._is_organizer(record.event_id, actor.user_id):
                roles.add(ActorRole.ORGANIZER)
        return roles

    async def _is_organizer(self, event_id: str, user_id: str) -> bool:
        """True when ``user_id`` holds a live organizer registration for the event."""
        registrations = await self._relationships.list(
            RelationshipKind.EVENT_REGISTRATION,
            RelationshipFilter(
                event_id=event_id,
                participant_id=user_id,
                role=ActorRole.USER,
                registration_role=RegistrationRole.ORGANIZER,
                limit=ORGANIZER_SCAN_LIMIT,
            ),
        )
        return any(
            r.status in (RegistrationStatus.REGISTERED, RegistrationStatus.ATTENDED)
            for r in registrations
        )

    # ------------------------------------------------------------------
    # Administrative overrides
    # ------------------------------------------------------------------

    async def reassign(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        actor: Actor,
        participants: Mapping[ActorRole, str],
        *,
        expected_version: int | None = None,
    ) -> RelationshipRecord:
        """Rebind participant roles to other members.

        The patched record is revalidated, so an introduction still needs
        three distinct participants afterwards.
        """
        if not actor.is_admin:
            raise ForbiddenError("Reassigning participants requires an administrator", actor.user_id)

        record = await self._relationships.get(kind, record_id)
        self._check_version(record, expected_version)

        patch: dict[str, str] = {}
        for role, user_id in participants.items():
            field = record.participant_fields.get(ActorRole(role))
            if field is None:
                raise ValidationError(f"{kind.value} has no {ActorRole(role).value} participant")
            patch[field] = user_id

        updated = await self._relationships.update(
            kind, record_id, patch, expected_version=record.version
        )
        ADMIN_OVERRIDES.labels(kind=kind.value, operation="reassign").inc()
        logger.warning(
            "admin_override",
            operation="reassign",
            kind=kind.value,
            record_id=str(record_id),
            fields=sorted(patch),
            actor_id=actor.user_id,
        )
        return updated

    async def delete(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        actor: Actor,
        *,
        expected_version: int | None = None,
    ) -> bool:
        """Physically remove a record, releasing any counter it held.

        The delete is conditional on the version read here, and the counter
        adjustment follows the status of the row actually removed.

        Raises:
            ForbiddenError: the actor is not an administrator
            NotFoundError: no such record
            ConflictError: the record changed since it was read
        """
        if not actor.is_admin:
            raise ForbiddenError("Deleting relationships requires an administrator", actor.user_id)

        record = await self._relationships.get(kind, record_id)
        self._check_version(record, expected_version)
        removed = await self._relationships.delete(
            kind, record_id, expected_version=record.version
        )
        if removed is None:
            return False

        ADMIN_OVERRIDES.labels(kind=kind.value, operation="delete").inc()
        logger.warning(
            "admin_override",
            operation="delete",
            kind=kind.value,
            record_id=str(record_id),
            status=removed.status.value,
            actor_id=actor.user_id,
        )
        await self._apply_side_effect(machine_for(kind), removed, removed.status, None)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, kind: RelationshipKind, record_id: UUID) -> RelationshipRecord:
        return await self._relationships.get(kind, record_id)

    async def list(
        self,
        kind: RelationshipKind,
        filter: RelationshipFilter | None = None,
    ) -> list[RelationshipRecord]:
        """Records matching ``filter``, newest first (mentor sessions soonest first).

        At most ``filter.limit`` records come back (100 by default) and
        nothing signals that more exist. Pass a larger limit to see them.
        """
        if filter is not None and filter.status is not None:
            # Reject typos instead of silently matching nothing
            machine_for(kind).parse_status(filter.status)
        return await self._relationships.list(kind, filter)

    async def describe(self, kind: RelationshipKind, record_id: UUID) -> RelationshipView:
        """A record with its participants' display profiles."""
        record = await self._relationships.get(kind, record_id)
        return (await self._enrich([record]))[0]

    async def describe_many(
        self,
        kind: RelationshipKind,
        filter: RelationshipFilter | None = None,
    ) -> list[RelationshipView]:
        """Like ``list``, capped the same way, with participant profiles."""
        records = await self.list(kind, filter)
        return await self._enrich(records)

    async def _enrich(self, records: list[RelationshipRecord]) -> list[RelationshipView]:
        user_ids = {uid for record in records for uid in record.participants().values()}
        profiles = await self._profiles.resolve_many(user_ids)
        missing = user_ids - profiles.keys()
        if missing:
            logger.info("profiles_missing", count=len(missing))

        views = []
        for record in records:
            participants: dict[ActorRole, DisplayProfile] = {
                role: profiles.get(uid) or DisplayProfile.placeholder(uid)
                for role, uid in record.participants().items()
            }
            views.append(RelationshipView(record=record, participants=participants))
        return views

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    async def increment(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        value = await self._counters.increment(
            entity_id, counter_name, by, request_id=request_id
        )
        COUNTER_OPERATIONS.labels(counter_name=counter_name, direction="increment").inc()
        logger.debug(
            "counter_incremented", entity_id=entity_id, counter_name=counter_name, value=value
        )
        return value

    async def decrement(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        value = await self._counters.decrement(
            entity_id, counter_name, by, request_id=request_id
        )
        COUNTER_OPERATIONS.labels(counter_name=counter_name, direction="decrement").inc()
        logger.debug(
            "counter_decremented", entity_id=entity_id, counter_name=counter_name, value=value
        )
        return value

    async def get_counter(self, entity_id: str, counter_name: str) -> int:
        return await self._counters.get(entity_id, counter_name)

    async def record_view(self, recording_id: str, *, request_id: str | None = None) -> int:
        """Count one view of a recording."""
        return await self.increment(recording_id, VIEW_COUNT, request_id=request_id)

    async def _apply_side_effect(
        self,
        machine: StateMachine,
        record: RelationshipRecord,
        before: Enum | None,
        after: Enum | None,
    ) -> int | None:
        """Apply the counter adjustment for a committed status change.

        Transient store failures are retried with exponential backoff. The
        operation carries a request id derived from the record version, so
        a retry after an ambiguous failure cannot double count.
        """
        if machine.counter is None:
            return None
        operation = machine.counter.operation(record, before, after)
        if operation is None:
            return None

        delay = self._config.counter_retry_backoff_seconds
        attempts = self._config.counter_retry_attempts
        last_error: StoreUnavailableError | None = None
        for attempt in range(1, attempts + 1):
            try:
                value = await self._counters.apply(operation)
            except StoreUnavailableError as e:
                last_error = e
                logger.warning(
                    "counter_side_effect_retry",
                    kind=record.kind.value,
                    record_id=str(record.id),
                    counter_name=operation.counter_name,
                    attempt=attempt,
                    error=str(e),
                )
                if attempt < attempts:
                    await asyncio.sleep(delay)
                    delay *= 2
                continue

            COUNTER_OPERATIONS.labels(
                counter_name=operation.counter_name, direction=operation.direction.value
            ).inc()
            logger.info(
                "counter_side_effect_applied",
                kind=record.kind.value,
                record_id=str(record.id),
                entity_id=operation.entity_id,
                counter_name=operation.counter_name,
                direction=operation.direction.value,
                value=value,
            )
            return value

        COUNTER_SIDE_EFFECT_FAILURES.labels(
            kind=record.kind.value, counter_name=operation.counter_name
        ).inc()
        logger.error(
            "counter_side_effect_failed",
            kind=record.kind.value,
            record_id=str(record.id),
            entity_id=operation.entity_id,
            counter_name=operation.counter_name,
            request_id=operation.request_id,
        )
        raise TransitionCommittedCounterFailedError(record, operation, cause=last_error)

    # ------------------------------------------------------------------
    # Introductions
    # ------------------------------------------------------------------

    async def suggest_intermediaries(
        self, requester_id: str, target_id: str, limit: int | None = None
    ) -> list[str]:
        if self._selector is None:
            raise WorkflowError("No intermediary selector configured")
        if limit is None:
            limit = self._config.default_suggestion_limit
        return await self._selector.suggest(requester_id, target_id, limit)


__all__ = ["WorkflowEngine"]
