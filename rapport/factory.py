"""Factories that build stores and the workflow engine from settings.

Backends are chosen in TOML (``[storage]``). Connection secrets come from
the environment:
- RAPPORT_DATABASE_URL or DATABASE_URL: PostgreSQL DSN
- REDIS_URL: overrides ``storage.redis.url``
"""

import os

import redis.asyncio as redis

from rapport.config import Settings, get_settings
from rapport.config.models.storage import StorageConfig
from rapport.counters import (
    CounterStore,
    InMemoryCounterStore,
    PostgresCounterStore,
    RedisCounterStore,
)
from rapport.db.pool import PostgresPool
from rapport.observability.logging import get_logger, setup_logging
from rapport.profiles import InMemoryProfileStore, PostgresProfileStore
from rapport.relationships import (
    InMemoryRelationshipStore,
    PostgresRelationshipStore,
    RelationshipStore,
)
from rapport.selection import IntermediarySelector
from rapport.workflow.engine import WorkflowEngine

logger = get_logger(__name__)


def create_relationship_store(
    config: StorageConfig, pool: PostgresPool | None = None
) -> RelationshipStore:
    logger.info("creating_relationship_store", backend=config.relationships)
    if config.relationships == "postgres":
        return PostgresRelationshipStore(pool or PostgresPool.from_config(config.postgres))
    return InMemoryRelationshipStore()


def create_counter_store(
    config: StorageConfig, pool: PostgresPool | None = None
) -> CounterStore:
    """Create the CounterStore named by ``config.counters``."""
    backend = config.counters
    if backend == "redis":
        url = os.environ.get("REDIS_URL", config.redis.url)
        # Log without credentials
        logger.info("creating_counter_store", backend="redis", url=url.split("@")[-1])
        client = redis.from_url(url, decode_responses=True)
        return RedisCounterStore(
            client,
            key_prefix=config.redis.key_prefix,
            dedup_ttl_seconds=config.redis.dedup_ttl_seconds,
        )

    logger.info("creating_counter_store", backend=backend)
    if backend == "postgres":
        return PostgresCounterStore(pool or PostgresPool.from_config(config.postgres))
    return InMemoryCounterStore()


def create_profile_store(
    config: StorageConfig, pool: PostgresPool | None = None
) -> InMemoryProfileStore | PostgresProfileStore:
    logger.info("creating_profile_store", backend=config.profiles)
    if config.profiles == "postgres":
        return PostgresProfileStore(pool or PostgresPool.from_config(config.postgres))
    return InMemoryProfileStore()


def create_engine(settings: Settings | None = None) -> WorkflowEngine:
    """Build a fully wired WorkflowEngine.

    All PostgreSQL-backed stores share a single pool, which connects
    lazily on first use.

    Args:
        settings: Settings to build from; defaults to ``get_settings()``

    Returns:
        WorkflowEngine over the configured backends
    """
    settings = settings or get_settings()
    logging_config = settings.observability.logging
    setup_logging(
        level=logging_config.level,
        format=logging_config.format,
        redact_pii=logging_config.redact_pii,
        extra_redacted_keys=logging_config.extra_redacted_keys,
    )

    storage = settings.storage
    pool = None
    if "postgres" in (storage.relationships, storage.counters, storage.profiles):
        pool = PostgresPool.from_config(storage.postgres)

    relationships = create_relationship_store(storage, pool)
    profiles = create_profile_store(storage, pool)
    engine = WorkflowEngine(
        relationships=relationships,
        counters=create_counter_store(storage, pool),
        profiles=profiles,
        selector=IntermediarySelector(profiles, relationships),
        config=settings.workflow,
    )
    logger.info("workflow_engine_created", app_name=settings.app_name)
    return engine
