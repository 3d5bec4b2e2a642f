"""CounterStore abstract interface."""

from abc import ABC, abstractmethod

from rapport.counters.models import CounterDirection, CounterOperation
from rapport.db.errors import ValidationError


class CounterStore(ABC):
    """Named non-negative integers attached to an entity.

    Implementations must perform each adjustment as one atomic
    read-modify-write at the storage layer. Reading the value, adding in
    application memory and writing it back loses updates under concurrent
    callers and is not an acceptable implementation.

    ``request_id`` turns an adjustment into an at-most-once operation:
    a repeated id returns the current value without applying again.
    """

    @abstractmethod
    async def increment(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        """Add ``by`` to the counter, creating it at zero if absent."""

    @abstractmethod
    async def decrement(
        self,
        entity_id: str,
        counter_name: str,
        by: int = 1,
        *,
        request_id: str | None = None,
    ) -> int:
        """Subtract ``by``, flooring at zero. Never an error."""

    @abstractmethod
    async def get(self, entity_id: str, counter_name: str) -> int:
        """Current value.

        Raises:
            NotFoundError: the counter has never been written
        """

    @abstractmethod
    async def set(self, entity_id: str, counter_name: str, value: int) -> int:
        """Overwrite the value. Seeding and administrative repair only."""

    async def apply(self, operation: CounterOperation) -> int:
        """Replay a CounterOperation."""
        if operation.direction == CounterDirection.INCREMENT:
            return await self.increment(
                operation.entity_id,
                operation.counter_name,
                operation.by,
                request_id=operation.request_id,
            )
        return await self.decrement(
            operation.entity_id,
            operation.counter_name,
            operation.by,
            request_id=operation.request_id,
        )


def check_amount(by: int) -> None:
    if isinstance(by, bool) or not isinstance(by, int) or by <= 0:
        raise ValidationError(f"Counter adjustment must be a positive integer, got {by!r}")


def check_value(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Counter value must be a non-negative integer, got {value!r}")
