"""Workflow error hierarchy.

Store-level failures (NotFoundError, ConflictError, ValidationError,
StoreUnavailableError) come from ``rapport.db.errors`` and propagate
through the engine unchanged. The errors here describe outcomes only the
workflow layer can decide.
"""

from uuid import UUID

from rapport.counters.models import CounterOperation
from rapport.domain import RelationshipKind, RelationshipRecord


class WorkflowError(Exception):
    """Base exception for workflow rule violations."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidTransitionError(WorkflowError):
    """No edge leads from the record's current status to the requested one,
    or the edge's guard does not hold. User-facing; never retried."""

    def __init__(
        self,
        kind: RelationshipKind,
        record_id: UUID,
        current: str,
        target: str,
        reason: str | None = None,
    ) -> None:
        message = f"Cannot move {kind.value} {record_id} from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.kind = kind
        self.record_id = record_id
        self.current = current
        self.target = target


class ForbiddenError(WorkflowError):
    """The actor holds no role authorized for the requested operation."""

    def __init__(self, message: str, actor_id: str | None = None) -> None:
        super().__init__(message)
        self.actor_id = actor_id


class TransitionCommittedCounterFailedError(WorkflowError):
    """The status change committed but its counter side effect did not.

    ``operation`` carries a request id, so replaying it through
    ``CounterStore.apply`` cannot double count.
    """

    def __init__(
        self,
        record: RelationshipRecord,
        operation: CounterOperation,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            f"{record.kind.value} {record.id} committed as {record.status.value} "
            f"but {operation.direction.value} of {operation.counter_name} failed"
        )
        self.record = record
        self.operation = operation
        self.cause = cause
