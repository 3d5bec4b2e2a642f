"""State machines for the four relationship kinds.

Each machine lists its statuses, the statuses a record may be created in,
its terminal statuses, and the directed edges between statuses together
with the roles allowed to walk them. Counter bindings say which statuses
count toward a counter on another entity (a registration in ``registered``
or ``attended`` counts toward its event's ``attendees_count``).
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from rapport.counters.models import ATTENDEES_COUNT, CounterDirection, CounterOperation
from rapport.db.errors import ValidationError
from rapport.domain import (
    STATUS_TYPES,
    ActorRole,
    ConnectionStatus,
    IntroductionStatus,
    MentorSessionStatus,
    RegistrationStatus,
    RelationshipKind,
    RelationshipRecord,
)

# Returns a reason when the edge may not be taken right now
Guard = Callable[[RelationshipRecord, datetime], str | None]


def session_has_started(record: RelationshipRecord, now: datetime) -> str | None:
    if now < record.scheduled_at:
        return f"session is scheduled for {record.scheduled_at.isoformat()}"
    return None


@dataclass(frozen=True)
class Edge:
    source: Enum
    target: Enum
    roles: frozenset[ActorRole]
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class CounterBinding:
    counter_name: str
    entity_field: str
    counted: frozenset[Enum]

    def operation(
        self,
        record: RelationshipRecord,
        before: Enum | None,
        after: Enum | None,
    ) -> CounterOperation | None:
        """The adjustment caused by moving from ``before`` to ``after``.

        ``None`` stands for "no record": creation starts from it and
        deletion ends in it.
        """
        was_counted = before in self.counted
        is_counted = after in self.counted
        if was_counted == is_counted:
            return None
        direction = CounterDirection.INCREMENT if is_counted else CounterDirection.DECREMENT
        step = f"v{record.version}" if after is not None else "deleted"
        return CounterOperation(
            entity_id=getattr(record, self.entity_field),
            counter_name=self.counter_name,
            direction=direction,
            request_id=f"{record.kind.value}:{record.id}:{step}:{direction.value}",
        )


@dataclass(frozen=True)
class StateMachine:
    kind: RelationshipKind
    initial: frozenset[Enum]
    terminal: frozenset[Enum]
    edges: tuple[Edge, ...]
    creator_roles: frozenset[ActorRole]
    counter: CounterBinding | None = None
    _index: dict[tuple[Enum, Enum], Edge] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_index", {(edge.source, edge.target): edge for edge in self.edges}
        )

    @property
    def status_type(self) -> type[Enum]:
        return STATUS_TYPES[self.kind]

    def parse_status(self, value: str | Enum) -> Enum:
        """Coerce ``value`` into this kind's status enum.

        Raises:
            ValidationError: the value is not one of the kind's statuses
        """
        try:
            return self.status_type(value.value if isinstance(value, Enum) else value)
        except ValueError:
            allowed = ", ".join(s.value for s in self.status_type)
            raise ValidationError(
                f"Unknown {self.kind.value} status {value!r}; expected one of {allowed}"
            ) from None

    def edge(self, source: Enum, target: Enum) -> Edge | None:
        return self._index.get((source, target))

    def edges_into(self, target: Enum) -> list[Edge]:
        return [edge for edge in self.edges if edge.target == target]

    def is_terminal(self, status: Enum) -> bool:
        return status in self.terminal


CONNECTION_MACHINE = StateMachine(
    kind=RelationshipKind.CONNECTION,
    initial=frozenset({ConnectionStatus.PENDING}),
    terminal=frozenset({ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED}),
    creator_roles=frozenset({ActorRole.REQUESTER}),
    edges=(
        Edge(
            ConnectionStatus.PENDING,
            ConnectionStatus.ACCEPTED,
            frozenset({ActorRole.RECIPIENT}),
            "accept",
        ),
        Edge(
            ConnectionStatus.PENDING,
            ConnectionStatus.REJECTED,
            frozenset({ActorRole.RECIPIENT}),
            "reject",
        ),
    ),
)

INTRODUCTION_MACHINE = StateMachine(
    kind=RelationshipKind.INTRODUCTION,
    initial=frozenset({IntroductionStatus.PENDING}),
    terminal=frozenset({IntroductionStatus.REJECTED, IntroductionStatus.COMPLETED}),
    creator_roles=frozenset({ActorRole.REQUESTER}),
    edges=(
        Edge(
            IntroductionStatus.PENDING,
            IntroductionStatus.ACCEPTED,
            frozenset({ActorRole.INTERMEDIARY}),
            "accept",
        ),
        Edge(
            IntroductionStatus.PENDING,
            IntroductionStatus.REJECTED,
            frozenset({ActorRole.INTERMEDIARY, ActorRole.ADMIN}),
            "reject",
        ),
        Edge(
            IntroductionStatus.ACCEPTED,
            IntroductionStatus.COMPLETED,
            frozenset({ActorRole.INTERMEDIARY, ActorRole.TARGET}),
            "complete",
        ),
        Edge(
            IntroductionStatus.ACCEPTED,
            IntroductionStatus.REJECTED,
            frozenset({ActorRole.ADMIN}),
            "reject",
        ),
    ),
)

MENTOR_SESSION_MACHINE = StateMachine(
    kind=RelationshipKind.MENTOR_SESSION,
    initial=frozenset({MentorSessionStatus.SCHEDULED}),
    terminal=frozenset({MentorSessionStatus.COMPLETED, MentorSessionStatus.CANCELLED}),
    creator_roles=frozenset({ActorRole.MENTEE, ActorRole.MENTOR}),
    edges=(
        Edge(
            MentorSessionStatus.SCHEDULED,
            MentorSessionStatus.CANCELLED,
            frozenset({ActorRole.MENTOR, ActorRole.MENTEE}),
            "cancel",
        ),
        Edge(
            MentorSessionStatus.SCHEDULED,
            MentorSessionStatus.COMPLETED,
            frozenset({ActorRole.SYSTEM, ActorRole.MENTOR}),
            "complete",
            guard=session_has_started,
        ),
    ),
)

EVENT_REGISTRATION_MACHINE = StateMachine(
    kind=RelationshipKind.EVENT_REGISTRATION,
    initial=frozenset({RegistrationStatus.PENDING, RegistrationStatus.REGISTERED}),
    terminal=frozenset({RegistrationStatus.ATTENDED, RegistrationStatus.CANCELLED}),
    creator_roles=frozenset({ActorRole.USER}),
    edges=(
        Edge(
            RegistrationStatus.PENDING,
            RegistrationStatus.REGISTERED,
            frozenset({ActorRole.ORGANIZER}),
            "approve",
        ),
        Edge(
            RegistrationStatus.PENDING,
            RegistrationStatus.CANCELLED,
            frozenset({ActorRole.USER}),
            "withdraw",
        ),
        Edge(
            RegistrationStatus.REGISTERED,
            RegistrationStatus.CANCELLED,
            frozenset({ActorRole.USER}),
            "cancel",
        ),
        Edge(
            RegistrationStatus.REGISTERED,
            RegistrationStatus.ATTENDED,
            frozenset({ActorRole.ORGANIZER}),
            "mark_attended",
        ),
    ),
    counter=CounterBinding(
        counter_name=ATTENDEES_COUNT,
        entity_field="event_id",
        counted=frozenset({RegistrationStatus.REGISTERED, RegistrationStatus.ATTENDED}),
    ),
)

MACHINES: dict[RelationshipKind, StateMachine] = {
    machine.kind: machine
    for machine in (
        CONNECTION_MACHINE,
        INTRODUCTION_MACHINE,
        MENTOR_SESSION_MACHINE,
        EVENT_REGISTRATION_MACHINE,
    )
}


def machine_for(kind: RelationshipKind) -> StateMachine:
    return MACHINES[kind]
