"""Prometheus metrics for Rapport."""

from prometheus_client import Counter, Histogram

TRANSITIONS = Counter(
    "rapport_transitions_total",
    "Relationship status transitions attempted",
    labelnames=["kind", "target_status", "outcome"],
)

TRANSITION_LATENCY = Histogram(
    "rapport_transition_latency_seconds",
    "Latency of transition calls including counter side effects",
    labelnames=["kind"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

RELATIONSHIPS_CREATED = Counter(
    "rapport_relationships_created_total",
    "Relationship records created",
    labelnames=["kind", "status"],
)

COUNTER_OPERATIONS = Counter(
    "rapport_counter_operations_total",
    "Counter increments and decrements applied",
    labelnames=["counter_name", "direction"],
)

COUNTER_SIDE_EFFECT_FAILURES = Counter(
    "rapport_counter_side_effect_failures_total",
    "Counter side effects that failed after the owning write committed",
    labelnames=["kind", "counter_name"],
)

ADMIN_OVERRIDES = Counter(
    "rapport_admin_overrides_total",
    "Administrative overrides (forced transitions, reassignments, deletes)",
    labelnames=["kind", "operation"],
)
