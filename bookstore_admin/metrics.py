"""
Prometheus metrics for the bookstore admin client.

Tracks gateway requests, API errors, session expirations, status poller
ticks and notification feed activity.
"""

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Gateway request metrics
gateway_requests_total = Counter(
    "bookstore_gateway_requests_total",
    "Total requests issued to the API gateway",
    ["method", "endpoint", "status"],
)

gateway_request_duration_seconds = Histogram(
    "bookstore_gateway_request_duration_seconds",
    "Gateway request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

gateway_errors_total = Counter(
    "bookstore_gateway_errors_total",
    "Total failed gateway requests",
    ["endpoint", "error_type"],
)

session_expirations_total = Counter(
    "bookstore_session_expirations_total",
    "Sessions cleared after the gateway rejected the token",
)

# Status poller metrics
status_poll_ticks_total = Counter(
    "bookstore_status_poll_ticks_total",
    "Status poller ticks",
    ["outcome"],
)

service_health = Gauge(
    "bookstore_service_health",
    "Last committed health per service (1 healthy, 0 unhealthy, -1 unknown)",
    ["service"],
)

# Notification metrics
notifications_received_total = Counter(
    "bookstore_notifications_received_total",
    "Notifications added to the feed",
    ["type"],
)

notification_feed_size = Gauge(
    "bookstore_notification_feed_size",
    "Number of notifications currently held by the feed",
)

_HEALTH_VALUES = {"healthy": 1, "unhealthy": 0, "unknown": -1}


def track_gateway_request(method: str, endpoint: str, status_code: int, duration: float):
    """Track gateway request metrics."""
    gateway_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
    gateway_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration
    )


def track_gateway_error(endpoint: str, error_type: str):
    """Track gateway errors."""
    gateway_errors_total.labels(endpoint=endpoint, error_type=error_type).inc()


def track_session_expired():
    """Track a session cleared by the expiry policy."""
    session_expirations_total.inc()


def track_status_tick(outcome: str):
    """Track a status poller tick outcome (committed, skipped, discarded)."""
    status_poll_ticks_total.labels(outcome=outcome).inc()


def update_service_health(service: str, status: str):
    """Update service health gauge."""
    service_health.labels(service=service).set(_HEALTH_VALUES.get(status, -1))


def track_notification(notification_type: str, feed_size: int):
    """Track a notification entering the feed."""
    notifications_received_total.labels(type=notification_type).inc()
    notification_feed_size.set(feed_size)


def update_feed_size(feed_size: int):
    """Update feed size gauge."""
    notification_feed_size.set(feed_size)


def start_metrics_server(port: int) -> None:
    """
    Serve the default registry in the Prometheus text format.

    Args:
        port: TCP port for the metrics endpoint
    """
    start_http_server(port)
