"""Counter models and well-known counter names."""

from enum import Enum

from pydantic import BaseModel, Field

ATTENDEES_COUNT = "attendees_count"
VIEW_COUNT = "view_count"


class CounterDirection(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"


class CounterOperation(BaseModel):
    """A single counter adjustment.

    Carried by TransitionCommittedCounterFailedError so the caller can
    replay exactly the adjustment that did not land.
    """

    entity_id: str = Field(..., min_length=1, description="Owner of the counter")
    counter_name: str = Field(..., min_length=1)
    direction: CounterDirection
    by: int = Field(default=1, gt=0)
    request_id: str | None = Field(
        default=None, description="Deduplication key for at-most-once replay"
    )
