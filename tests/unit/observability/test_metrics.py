"""Tests for Prometheus metric definitions."""

from prometheus_client import REGISTRY

from rapport.observability.metrics import (
    ADMIN_OVERRIDES,
    COUNTER_OPERATIONS,
    TRANSITIONS,
)


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetrics:
    """Metrics are registered and labelled as documented."""

    def test_transition_counter_labels(self) -> None:
        labels = {"kind": "connection", "target_status": "accepted", "outcome": "applied"}
        before = _sample("rapport_transitions_total", labels)

        TRANSITIONS.labels(**labels).inc()

        assert _sample("rapport_transitions_total", labels) == before + 1

    def test_counter_operations_labels(self) -> None:
        labels = {"counter_name": "view_count", "direction": "increment"}
        before = _sample("rapport_counter_operations_total", labels)

        COUNTER_OPERATIONS.labels(**labels).inc()

        assert _sample("rapport_counter_operations_total", labels) == before + 1

    def test_admin_override_labels(self) -> None:
        labels = {"kind": "introduction", "operation": "reassign"}
        before = _sample("rapport_admin_overrides_total", labels)

        ADMIN_OVERRIDES.labels(**labels).inc()

        assert _sample("rapport_admin_overrides_total", labels) == before + 1
