from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "moodsync_requests_total",
    "Total HTTP requests processed by MoodSync",
    ("method", "path", "status"),
)

REQUEST_LATENCY = Histogram(
    "moodsync_request_latency_seconds",
    "HTTP request latency in seconds",
    ("method", "path"),
)

REQUEST_ERRORS = Counter(
    "moodsync_request_errors_total",
    "HTTP requests resulting in server errors",
    ("method", "path", "status"),
)

API_COUNTER = Counter(
    "moodsync_api_hits_total",
    "API hits per endpoint",
    ("endpoint",),
)

REMINDERS = Counter(
    "moodsync_reminders_total",
    "Reminder deliveries by kind and outcome",
    ("kind", "result"),
)

REPLAYED_ITEMS = Counter(
    "moodsync_offline_replayed_total",
    "Offline queue items replayed against the API",
    ("collection", "result"),
)

__all__ = [
    "API_COUNTER",
    "REMINDERS",
    "REPLAYED_ITEMS",
    "REQUEST_COUNT",
    "REQUEST_ERRORS",
    "REQUEST_LATENCY",
]
