"""Workflow engine configuration models."""

from pydantic import BaseModel, Field

from rapport.domain.enums import RegistrationRole


class WorkflowConfig(BaseModel):
    """Tunables for transitions and their counter side effects."""

    counter_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts at a counter side effect before reporting failure",
    )
    counter_retry_backoff_seconds: float = Field(
        default=0.05,
        ge=0.0,
        description="Base delay between counter retries (doubles each attempt)",
    )
    gated_registration_roles: list[RegistrationRole] = Field(
        default_factory=lambda: [RegistrationRole.SPEAKER, RegistrationRole.ORGANIZER],
        description="Registration roles that start pending organizer approval",
    )
    default_suggestion_limit: int = Field(
        default=3,
        ge=0,
        description="Intermediary candidates returned when no limit is given",
    )
