"""Prometheus metrics for the TaskSync API.

DATA FLOW:
    This file                  api/metrics.py              Prometheus
    ─────────                  ──────────────              ──────────
    Define & record metrics ─► /metrics endpoint ───────► scrape every 15s

METRIC TYPES:
    - Counter: value only goes up (total requests, use case runs)
    - Histogram: distribution, for P95 latency panels
    - Gauge: value that goes up and down (queue depth)
"""

from typing import Optional

import structlog
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = structlog.get_logger()


# =============================================================================
# METRICS DEFINITIONS
# =============================================================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status_code"],
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)

USE_CASE_EXECUTIONS = Counter(
    "use_case_executions_total",
    "Use case executions by outcome",
    ["use_case", "result"],  # result: success | error | exception
)

USE_CASE_DURATION = Histogram(
    "use_case_duration_seconds",
    "Use case execution time in seconds",
    ["use_case"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2],
)

BUSINESS_EVENTS = Counter(
    "business_events_total",
    "Business-level events (logins, refreshes, uploads)",
    ["action", "resource", "status"],
)

EMAIL_JOBS = Counter(
    "email_jobs_total",
    "Email queue jobs by outcome",
    ["result"],  # sent | retried | failed | dead_lettered
)

QUEUE_SIZE = Gauge(
    "queue_size_current",
    "Jobs waiting in a queue, ready or scheduled for retry",
    ["queue"],
)

DATABASE_OPERATIONS = Counter(
    "database_operations_total",
    "Repository operations by outcome",
    ["operation", "table", "status"],  # status: success | error
)

DB_QUERY_DURATION = Histogram(
    "db_query_duration_seconds",
    "Repository operation latency in seconds",
    ["operation", "table"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1],
)


# =============================================================================
# HELPERS
# =============================================================================
def record_business_event(
    action: str,
    resource: str,
    status: str = "success",
    user_id: Optional[str] = None,
) -> None:
    """Count a business event and log it alongside the counter."""
    BUSINESS_EVENTS.labels(action=action, resource=resource, status=status).inc()
    logger.info(
        "business.event",
        action=action,
        resource=resource,
        status=status,
        user_id=user_id,
    )


def observe_request(method: str, route: str, status_code: int, duration: float) -> None:
    """Record one HTTP request. Called by middleware/http_metrics.py."""
    HTTP_REQUESTS_TOTAL.labels(
        method=method, route=route, status_code=str(status_code)
    ).inc()
    HTTP_REQUEST_DURATION.labels(method=method, route=route).observe(duration)


def get_metrics_content() -> tuple[bytes, str]:
    """Return the current metrics in Prometheus text format."""
    return generate_latest(), CONTENT_TYPE_LATEST
