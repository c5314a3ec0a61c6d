"""
Bookstore Admin Tests - Status Monitor Tests.
"""

from contextlib import ExitStack
from typing import Dict
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bookstore_admin import monitor


def run_monitor_with(metrics_port: int, stack: ExitStack) -> Dict[str, MagicMock]:
    """Patch the monitor's collaborators and return the mocks."""
    poller = MagicMock()
    poller.start = AsyncMock()
    feed = MagicMock()
    feed.start = AsyncMock()
    handler = MagicMock()
    handler.wait_for_shutdown = AsyncMock()

    stack.enter_context(patch.object(monitor.settings, "METRICS_PORT", metrics_port))
    stack.enter_context(patch.object(monitor, "setup_logging"))
    stack.enter_context(patch.object(monitor, "SessionStore"))
    stack.enter_context(patch.object(monitor, "StatusPoller", return_value=poller))
    stack.enter_context(patch.object(monitor, "NotificationFeed", return_value=feed))
    stack.enter_context(
        patch.object(monitor, "setup_graceful_shutdown", return_value=handler)
    )
    metrics_server = stack.enter_context(patch.object(monitor, "start_metrics_server"))

    return {
        "poller": poller,
        "feed": feed,
        "handler": handler,
        "metrics_server": metrics_server,
    }


@pytest.mark.asyncio
async def test_monitor_serves_metrics_when_port_configured() -> None:
    with ExitStack() as stack:
        mocks = run_monitor_with(9108, stack)
        await monitor.run_monitor()

    mocks["metrics_server"].assert_called_once_with(9108)
    mocks["poller"].start.assert_awaited_once()
    mocks["feed"].start.assert_awaited_once()
    mocks["handler"].wait_for_shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_monitor_without_metrics_port() -> None:
    with ExitStack() as stack:
        mocks = run_monitor_with(0, stack)
        await monitor.run_monitor()

    mocks["metrics_server"].assert_not_called()
