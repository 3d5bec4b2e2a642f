"""Logging settings for the engine's structlog output."""

from typing import Literal

from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["json", "console"]


class LoggingConfig(BaseModel):
    """How engine events are rendered and scrubbed."""

    level: LogLevel = Field(default="INFO")
    format: LogFormat = Field(
        default="json", description="json in deployed environments, console locally"
    )
    redact_pii: bool = Field(
        default=True,
        description="Mask participant emails, meeting links and DSN passwords",
    )
    extra_redacted_keys: list[str] = Field(
        default_factory=list,
        description="Event keys masked in addition to the built-in sensitive set",
    )


class ObservabilityConfig(BaseModel):
    """Observability section. Prometheus metrics are always registered."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
