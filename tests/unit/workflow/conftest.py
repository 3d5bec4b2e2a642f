"""Fixtures for workflow engine tests."""

from datetime import datetime, timedelta

import pytest

from rapport.config.models import WorkflowConfig
from rapport.domain import utc_now
from rapport.selection import IntermediarySelector
from rapport.workflow import WorkflowEngine


class FakeClock:
    """Settable clock handed to the engine for time-guarded edges."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(utc_now())


@pytest.fixture
def workflow_config() -> WorkflowConfig:
    return WorkflowConfig(counter_retry_attempts=3, counter_retry_backoff_seconds=0.0)


@pytest.fixture
def engine(
    relationship_store, counter_store, profile_store, workflow_config, clock
) -> WorkflowEngine:
    return WorkflowEngine(
        relationships=relationship_store,
        counters=counter_store,
        profiles=profile_store,
        selector=IntermediarySelector(profile_store, relationship_store),
        config=workflow_config,
        clock=clock,
    )
