from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


db_operations_total = Counter(
    "shared_db_operations_total",
    "Total data-access operations by outcome",
    ["entity", "operation", "outcome"],
)

db_operation_duration_seconds = Histogram(
    "shared_db_operation_duration_seconds",
    "Data-access operation duration in seconds",
    ["entity", "operation"],
)

find_or_create_conflicts_total = Counter(
    "shared_db_find_or_create_conflicts_total",
    "Concurrent inserts resolved by re-reading the existing row",
    ["entity"],
)

state_transition_rejections_total = Counter(
    "shared_db_state_transition_rejections_total",
    "Rejected lifecycle transitions",
    ["entity", "current", "target"],
)


def observe_db_operation(entity: str, operation: str, outcome: str, duration: float) -> None:
    db_operations_total.labels(entity=entity, operation=operation, outcome=outcome).inc()
    db_operation_duration_seconds.labels(entity=entity, operation=operation).observe(duration)


def observe_find_or_create_conflict(entity: str) -> None:
    find_or_create_conflicts_total.labels(entity=entity).inc()


def observe_transition_rejected(entity: str, current: str, target: str) -> None:
    state_transition_rejections_total.labels(entity=entity, current=current, target=target).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
