"""Configuration model exports.

    from rapport.config.models import StorageConfig, WorkflowConfig
"""

from rapport.config.models.observability import (
    LoggingConfig,
    ObservabilityConfig,
)
from rapport.config.models.storage import PostgresConfig, RedisConfig, StorageConfig
from rapport.config.models.workflow import WorkflowConfig

__all__ = [
    "LoggingConfig",
    "ObservabilityConfig",
    "PostgresConfig",
    "RedisConfig",
    "StorageConfig",
    "WorkflowConfig",
]
