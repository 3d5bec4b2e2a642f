"""Structured logging configuration using structlog.

JSON output for production, console output for development. Participant
display data (emails, names resolved from profiles) flows through log
events, so a redaction processor strips it before rendering.
"""

import re
import sys
from collections.abc import Iterable, Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "email",
    "emails",
    "password",
    "secret",
    "token",
    "api_key",
    "authorization",
    "meeting_link",
    "photo_url",
    "dsn",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
DSN_PASSWORD_PATTERN = re.compile(r"(postgres(?:ql)?|redis)://([^:/@]+):([^@]+)@")

LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class PIIRedactor:
    """Processor that redacts PII from log events.

    Known sensitive keys, plus any ``extra_keys``, are replaced outright;
    string values are scanned for email addresses and credentials embedded
    in connection URLs.
    """

    def __init__(self, extra_keys: Iterable[str] = ()) -> None:
        self._keys = SENSITIVE_KEYS | {key.lower() for key in extra_keys}

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact(event_dict))

    def _redact(self, value: Any, key: str | None = None) -> Any:
        if key is not None and key.lower() in self._keys:
            return "[REDACTED]"
        if isinstance(value, Mapping):
            return {k: self._redact(v, k) for k, v in value.items()}
        if isinstance(value, list | tuple):
            return [self._redact(item) for item in value]
        if isinstance(value, str):
            value = DSN_PASSWORD_PATTERN.sub(r"\1://\2:[REDACTED]@", value)
            return EMAIL_PATTERN.sub("[EMAIL]", value)
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
    extra_redacted_keys: Iterable[str] = (),
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for production, "console" for development
        redact_pii: Whether to run the PII redactor before rendering
        extra_redacted_keys: Event keys to mask besides SENSITIVE_KEYS
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_pii:
        processors.append(PIIRedactor(extra_redacted_keys))

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            LEVELS.get(level.upper(), 20)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to ``name`` (typically ``__name__``)."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
