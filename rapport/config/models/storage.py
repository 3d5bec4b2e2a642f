"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

RelationalBackend = Literal["inmemory", "postgres"]
CounterBackend = Literal["inmemory", "postgres", "redis"]


class PostgresConfig(BaseModel):
    """PostgreSQL connection pool configuration.

    The DSN itself comes from RAPPORT_DATABASE_URL / DATABASE_URL so that
    credentials never live in config files.
    """

    min_pool_size: int = Field(
        default=5,
        gt=0,
        description="Minimum connections to keep open",
    )
    max_pool_size: int = Field(
        default=20,
        gt=0,
        description="Maximum connections in pool",
    )
    max_inactive_connection_lifetime: float = Field(
        default=300.0,
        gt=0,
        description="Close connections idle longer than this (seconds)",
    )
    command_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Default timeout for queries (seconds)",
    )


class RedisConfig(BaseModel):
    """Redis counter backend configuration."""

    url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    key_prefix: str = Field(
        default="counter",
        description="Redis key prefix for counter keys",
    )
    dedup_ttl_seconds: int = Field(
        default=86400,
        gt=0,
        description="How long a counter request id is remembered",
    )


class StorageConfig(BaseModel):
    """Configuration for all storage backends."""

    relationships: RelationalBackend = Field(
        default="inmemory",
        description="RelationshipStore backend",
    )
    counters: CounterBackend = Field(
        default="inmemory",
        description="CounterStore backend",
    )
    profiles: RelationalBackend = Field(
        default="inmemory",
        description="ProfileResolver and UserDirectory backend",
    )
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
