"""Relationship workflow: state machines, authorization and side effects."""

from rapport.db.errors import (
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from rapport.workflow.engine import WorkflowEngine
from rapport.workflow.errors import (
    ForbiddenError,
    InvalidTransitionError,
    TransitionCommittedCounterFailedError,
    WorkflowError,
)
from rapport.workflow.machines import MACHINES, Edge, StateMachine, machine_for
from rapport.workflow.models import Actor, TransitionResult

__all__ = [
    "WorkflowEngine",
    "Actor",
    "TransitionResult",
    "StateMachine",
    "Edge",
    "MACHINES",
    "machine_for",
    "WorkflowError",
    "InvalidTransitionError",
    "ForbiddenError",
    "TransitionCommittedCounterFailedError",
    "ConflictError",
    "NotFoundError",
    "StoreUnavailableError",
    "ValidationError",
]
