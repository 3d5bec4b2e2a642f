"""Store error hierarchy.

Every store backend wraps its driver exceptions in one of these so that
callers see the same taxonomy regardless of where the data lives.
"""


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class StoreUnavailableError(StoreError):
    """Transient failure reaching the persistence boundary.

    Reads and deduplicated counter operations are safe to retry with
    backoff. Transitions must re-read current state before a retry.
    """


class NotFoundError(StoreError):
    """A referenced relationship record or counter does not exist."""


class ConflictError(StoreError):
    """Optimistic concurrency token mismatch.

    The record changed between the caller's read and its write. Re-read
    and decide whether to retry.
    """

    def __init__(
        self,
        message: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.expected_version = expected_version
        self.actual_version = actual_version


class ValidationError(StoreError):
    """Malformed or missing required fields; not retryable."""
