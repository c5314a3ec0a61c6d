"""
Terminal status monitor.

Runs the status poller and the notification feed against the configured
gateway and logs every update until interrupted.
"""

import asyncio

from .api import BookstoreApi
from .config import settings
from .http_client import GatewayClient, SessionExpiryPolicy
from .logging_config import get_logger, setup_logging
from .metrics import start_metrics_server
from .models import StatusSnapshot
from .notifications import NotificationFeed
from .session import SessionStore
from .shutdown_handler import setup_graceful_shutdown
from .status_poller import StatusPoller

logger = get_logger(__name__)


def _log_snapshot(snapshot: StatusSnapshot) -> None:
    for service in snapshot.services:
        logger.info(
            f"{service.name:<14} {service.status.value:<10} port {service.port}"
        )


def _session_expired() -> None:
    logger.warning("Session expired, log in again to continue")


async def run_monitor() -> None:
    setup_logging(
        log_level=settings.LOG_LEVEL,
        service_name="bookstore-admin",
        use_json=settings.LOG_JSON,
    )

    session = SessionStore()
    client = GatewayClient(
        session,
        expiry_policy=SessionExpiryPolicy(session, on_expired=_session_expired),
    )
    api = BookstoreApi(client)
    poller = StatusPoller(api)
    feed = NotificationFeed()

    poller.subscribe(_log_snapshot)

    if settings.METRICS_PORT:
        start_metrics_server(settings.METRICS_PORT)
        logger.info(f"Serving metrics on port {settings.METRICS_PORT}")

    handler = setup_graceful_shutdown(
        "bookstore-admin",
        [client.close, feed.stop, poller.stop],
    )

    logger.info(
        "Starting status monitor",
        extra={
            "extra_fields": {
                "gateway_url": client.base_url,
                "poll_interval": poller.interval,
                "authenticated": session.is_authenticated,
            }
        },
    )

    await poller.start()
    await feed.start()
    await handler.wait_for_shutdown()


def main() -> None:
    asyncio.run(run_monitor())
