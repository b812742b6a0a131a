"""
Prometheus metrics for the achievement engine.

- Awards: achievements granted, by category
- Evaluation: pass duration and failures, by triggering event
- Storage: query errors, by operation

Metrics live in the default registry; the embedding application exposes them.
"""

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Iterator

from prometheus_client import Counter, Histogram

from achievement_engine.config import ENABLE_METRICS

logger = logging.getLogger(__name__)

# =============================================================================
# Award Metrics
# =============================================================================

achievements_awarded_total = Counter(
    "achievements_awarded_total",
    "Total achievements awarded",
    ["category"],
)

achievement_notifications_total = Counter(
    "achievement_notifications_total",
    "Total achievement notifications created",
    ["type"],  # type: earned/progress/milestone
)

# =============================================================================
# Evaluation Metrics
# =============================================================================

achievement_evaluation_duration_seconds = Histogram(
    "achievement_evaluation_duration_seconds",
    "Time spent in one achievement evaluation pass",
    ["event_type"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
)

achievement_evaluation_errors_total = Counter(
    "achievement_evaluation_errors_total",
    "Evaluation passes aborted by an error",
    ["event_type"],
)

# =============================================================================
# Storage Metrics
# =============================================================================

achievement_storage_errors_total = Counter(
    "achievement_storage_errors_total",
    "Storage operations that raised",
    ["operation"],
)


def record_award(category: str) -> None:
    if ENABLE_METRICS:
        achievements_awarded_total.labels(category=category).inc()
        achievement_notifications_total.labels(type="earned").inc()


def record_evaluation_error(event_type: str) -> None:
    if ENABLE_METRICS:
        achievement_evaluation_errors_total.labels(event_type=event_type).inc()


def record_storage_error(operation: str) -> None:
    if ENABLE_METRICS:
        achievement_storage_errors_total.labels(operation=operation).inc()


@contextmanager
def track_evaluation(event_type: str) -> Iterator[None]:
    """Observe the duration of an evaluation pass"""
    start = perf_counter()
    try:
        yield
    finally:
        if ENABLE_METRICS:
            achievement_evaluation_duration_seconds.labels(event_type=event_type).observe(
                perf_counter() - start
            )
