"""
Bookstore Admin Tests - Status Poller Tests.

Tests for tick evaluation, atomic snapshot commits, overlap protection
and timer lifecycle of StatusPoller.
"""

import asyncio
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from bookstore_admin.api import BookstoreApi
from bookstore_admin.logging_config import current_request_id
from bookstore_admin.models import HealthState, StatusSnapshot
from bookstore_admin.status_poller import MonitoredService, StatusPoller, default_services

from .fake_gateway import FakeGateway

SERVICES = [
    MonitoredService("API Gateway", "http://gateway.test", 8080, is_gateway=True, health_path="/health"),
    MonitoredService("Book Service", "http://books.test", 8000),
    MonitoredService("Order Service", "http://orders.test", 8001),
    MonitoredService("User Service", "http://users.test", 8002),
]


class BlockingApi:
    """Health checks that wait until released."""

    def __init__(self, healthy: bool = True) -> None:
        self.release = asyncio.Event()
        self.healthy = healthy
        self.calls = 0

    async def check_health(self, path: str = "/health") -> bool:
        self.calls += 1
        await self.release.wait()
        return self.healthy


def mock_api(healthy: bool = True) -> MagicMock:
    api = MagicMock()
    api.check_health = AsyncMock(return_value=healthy)
    return api


def statuses(snapshot: StatusSnapshot) -> List[HealthState]:
    return [service.status for service in snapshot.services]


async def wait_for(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


def test_initial_snapshot_is_unknown() -> None:
    poller = StatusPoller(mock_api(), services=SERVICES)

    snapshot = poller.snapshot
    assert snapshot.version == 0
    assert [s.name for s in snapshot.services] == [s.name for s in SERVICES]
    assert set(statuses(snapshot)) == {HealthState.UNKNOWN}
    assert snapshot.checked_at is None


@pytest.mark.asyncio
async def test_tick_healthy_gateway(api: BookstoreApi, gateway: FakeGateway) -> None:
    """
    Test that a live gateway marks every service healthy with one probe.
    """
    poller = StatusPoller(api, services=SERVICES)

    snapshot = await poller.tick()

    assert snapshot is not None
    assert snapshot.version == 1
    assert set(statuses(snapshot)) == {HealthState.HEALTHY}
    assert [r.url.path for r in gateway.requests] == ["/health"]
    assert snapshot.get("Book Service").port == 8000


@pytest.mark.asyncio
async def test_tick_unhealthy_gateway(api: BookstoreApi, gateway: FakeGateway) -> None:
    gateway.healthy = False
    poller = StatusPoller(api, services=SERVICES)

    snapshot = await poller.tick()

    assert set(statuses(snapshot)) == {HealthState.UNHEALTHY}


@pytest.mark.asyncio
async def test_tick_gateway_unreachable(api: BookstoreApi, gateway: FakeGateway) -> None:
    gateway.down = True
    poller = StatusPoller(api, services=SERVICES)

    snapshot = await poller.tick()

    assert snapshot.get("API Gateway").status == HealthState.UNHEALTHY
    assert snapshot.get("User Service").status == HealthState.UNHEALTHY


@pytest.mark.asyncio
async def test_service_with_own_health_path() -> None:
    api = MagicMock()
    api.check_health = AsyncMock(side_effect=lambda path: path == "/health")
    services = SERVICES + [
        MonitoredService("Notification Service", "http://notify.test", 8003, health_path="/notifications/health")
    ]
    poller = StatusPoller(api, services=services)

    snapshot = await poller.tick()

    assert snapshot.get("Book Service").status == HealthState.HEALTHY
    assert snapshot.get("Notification Service").status == HealthState.UNHEALTHY
    assert api.check_health.await_count == 2


@pytest.mark.asyncio
async def test_failing_health_check_marks_unhealthy() -> None:
    api = MagicMock()
    api.check_health = AsyncMock(side_effect=RuntimeError("boom"))
    poller = StatusPoller(api, services=SERVICES)

    snapshot = await poller.tick()

    assert set(statuses(snapshot)) == {HealthState.UNHEALTHY}


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped_and_commit_is_atomic() -> None:
    """
    Test that a tick in flight blocks a second one and that no partial
    state is visible until the tick commits.
    """
    api = BlockingApi()
    poller = StatusPoller(api, services=SERVICES)

    first = asyncio.create_task(poller.tick())
    await wait_for(lambda: poller.tick_in_flight)

    assert await poller.tick() is None
    assert poller.snapshot.version == 0
    assert set(statuses(poller.snapshot)) == {HealthState.UNKNOWN}

    api.release.set()
    snapshot = await first

    assert snapshot.version == 1
    assert set(statuses(snapshot)) == {HealthState.HEALTHY}
    assert not poller.tick_in_flight


@pytest.mark.asyncio
async def test_snapshots_never_interleave(api: BookstoreApi, gateway: FakeGateway) -> None:
    """
    Test that every published snapshot is uniform and versions advance by one.
    """
    published: List[StatusSnapshot] = []
    poller = StatusPoller(api, services=SERVICES)
    poller.subscribe(published.append)

    for healthy in (True, False, True, False):
        gateway.healthy = healthy
        await poller.tick()

    assert [s.version for s in published] == [1, 2, 3, 4]
    for snapshot in published:
        assert len(set(statuses(snapshot))) == 1
    assert [statuses(s)[0] for s in published] == [
        HealthState.HEALTHY,
        HealthState.UNHEALTHY,
        HealthState.HEALTHY,
        HealthState.UNHEALTHY,
    ]


@pytest.mark.asyncio
async def test_unsubscribe_and_failing_listener() -> None:
    received: List[int] = []
    poller = StatusPoller(mock_api(), services=SERVICES)

    def broken(snapshot: StatusSnapshot) -> None:
        raise ValueError("listener bug")

    poller.subscribe(broken)
    unsubscribe = poller.subscribe(lambda s: received.append(s.version))

    await poller.tick()
    unsubscribe()
    await poller.tick()

    assert received == [1]
    assert poller.snapshot.version == 2


@pytest.mark.asyncio
async def test_start_ticks_immediately() -> None:
    api = mock_api()
    poller = StatusPoller(api, services=SERVICES, interval=3600)

    await poller.start()
    try:
        await wait_for(lambda: poller.snapshot.version == 1)
        assert poller.running
    finally:
        await poller.stop()

    assert not poller.running
    assert poller.task is None


@pytest.mark.asyncio
async def test_start_ticks_on_interval_until_stopped() -> None:
    poller = StatusPoller(mock_api(), services=SERVICES, interval=0.01)

    await poller.start()
    await wait_for(lambda: poller.snapshot.version >= 3)
    await poller.stop()

    version = poller.snapshot.version
    await asyncio.sleep(0.05)
    assert poller.snapshot.version == version


@pytest.mark.asyncio
async def test_start_twice_keeps_single_timer() -> None:
    poller = StatusPoller(mock_api(), services=SERVICES, interval=3600)

    await poller.start()
    task = poller.task
    await poller.start()

    assert poller.task is task
    await poller.stop()


@pytest.mark.asyncio
async def test_tick_finishing_after_stop_is_discarded() -> None:
    """
    Test that a stale tick result is not applied after teardown.
    """
    api = BlockingApi()
    poller = StatusPoller(api, services=SERVICES, interval=3600)
    published: List[StatusSnapshot] = []
    poller.subscribe(published.append)

    await poller.start()
    await wait_for(lambda: poller.tick_in_flight)
    await poller.stop()

    api.release.set()
    assert await poller._tick_task is None

    assert poller.snapshot.version == 0
    assert published == []


@pytest.mark.asyncio
async def test_restart_runs_immediate_tick_while_old_tick_runs() -> None:
    """
    Test that a tick left running by stop() does not block the first tick
    of the next start().
    """
    api = BlockingApi()
    poller = StatusPoller(api, services=SERVICES, interval=3600)

    await poller.start()
    await wait_for(lambda: poller.tick_in_flight)
    await poller.stop()
    assert not poller.tick_in_flight

    await poller.start()
    try:
        await wait_for(lambda: api.calls == 2)
        assert poller.tick_in_flight

        api.release.set()
        await wait_for(lambda: poller.snapshot.version == 1)
        assert set(statuses(poller.snapshot)) == {HealthState.HEALTHY}
    finally:
        await poller.stop()


@pytest.mark.asyncio
async def test_each_tick_shares_one_request_id() -> None:
    """
    Test that all health checks of a tick are logged under one request ID.
    """
    seen: List[Optional[str]] = []

    async def check_health(path: str = "/health") -> bool:
        seen.append(current_request_id())
        return True

    api = MagicMock()
    api.check_health = check_health
    services = SERVICES + [
        MonitoredService("Search Service", "http://search.test", 8003, health_path="/search/health"),
    ]
    poller = StatusPoller(api, services=services)

    await poller.tick()
    first_tick = list(seen)
    seen.clear()
    await poller.tick()

    assert len(first_tick) == 2
    assert first_tick[0] is not None
    assert first_tick[0] == first_tick[1]
    assert seen[0] != first_tick[0]
    assert current_request_id() is None


def test_default_services_from_settings() -> None:
    services = default_services()

    assert [s.name for s in services] == [
        "API Gateway",
        "Book Service",
        "Order Service",
        "User Service",
    ]
    assert [s.port for s in services] == [8080, 8000, 8001, 8002]
    assert services[0].is_gateway
    assert services[0].health_path == "/health"
    assert all(s.health_path is None for s in services[1:])
