"""
Service status poller.

Samples the gateway's liveness endpoint on a fixed interval and derives
the health of every monitored service from it. Services behind the
gateway cannot be probed from the client, so unless a service names its
own health path it inherits the gateway's result for the same tick.

A dead gateway therefore marks every service behind it unhealthy. The web
dashboard this mirrors kept showing those services healthy in that case;
here an unreachable gateway never reports healthy backends.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from .api import BookstoreApi
from .config import settings
from .logging_config import get_logger, request_context
from .metrics import track_status_tick, update_service_health
from .models import HealthState, ServiceStatus, StatusSnapshot

logger = get_logger(__name__)

StatusListener = Callable[[StatusSnapshot], None]


@dataclass(frozen=True)
class MonitoredService:
    """
    A dependency shown on the status board.

    Attributes:
        name: Display name
        url: Address of the service
        port: Port of the service
        is_gateway: Whether this entry is the gateway itself
        health_path: Gateway path probing this service; None inherits the gateway result
    """

    name: str
    url: str
    port: int
    is_gateway: bool = False
    health_path: Optional[str] = None


def _port_of(url: str) -> int:
    parsed = httpx.URL(url)
    if parsed.port is not None:
        return parsed.port
    return 443 if parsed.scheme == "https" else 80


def default_services() -> List[MonitoredService]:
    """Build the monitored service list from settings."""
    return [
        MonitoredService(
            name="API Gateway",
            url=settings.GATEWAY_URL,
            port=_port_of(settings.GATEWAY_URL),
            is_gateway=True,
            health_path="/health",
        ),
        MonitoredService(
            name="Book Service",
            url=settings.BOOK_SERVICE_URL,
            port=_port_of(settings.BOOK_SERVICE_URL),
        ),
        MonitoredService(
            name="Order Service",
            url=settings.ORDER_SERVICE_URL,
            port=_port_of(settings.ORDER_SERVICE_URL),
        ),
        MonitoredService(
            name="User Service",
            url=settings.USER_SERVICE_URL,
            port=_port_of(settings.USER_SERVICE_URL),
        ),
    ]


class StatusPoller:
    """
    Background worker publishing service status snapshots.

    Ticks fire immediately on start and then every ``interval`` seconds.
    Each tick evaluates all services concurrently and commits one new
    snapshot only after every evaluation has resolved. A tick that is
    still running when the timer fires again causes that firing to be
    skipped. Results of a tick that finishes after ``stop()`` are dropped.
    A tick left running by ``stop()`` does not block the immediate tick of
    a later ``start()``.

    Attributes:
        api: Facade providing the health checks
        services: Monitored services, in display order
        interval: Seconds between ticks
    """

    def __init__(
        self,
        api: BookstoreApi,
        services: Optional[Sequence[MonitoredService]] = None,
        interval: Optional[float] = None,
    ) -> None:
        self.api = api
        self.services: Tuple[MonitoredService, ...] = tuple(
            services if services is not None else default_services()
        )
        self.interval = interval or settings.STATUS_POLL_INTERVAL

        gateways = [service for service in self.services if service.is_gateway]
        self._gateway_path = (gateways[0].health_path if gateways else None) or "/health"

        self._snapshot = StatusSnapshot(
            version=0,
            services=tuple(
                ServiceStatus(name=s.name, status=HealthState.UNKNOWN, url=s.url, port=s.port)
                for s in self.services
            ),
        )
        self._listeners: List[StatusListener] = []
        self._generation = 0
        self._in_flight_generation: Optional[int] = None
        self._tick_task: Optional[asyncio.Task] = None

        self.running = False
        self.task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> StatusSnapshot:
        """Last committed snapshot."""
        return self._snapshot

    @property
    def tick_in_flight(self) -> bool:
        """Whether a tick of the current generation is running."""
        return self._in_flight_generation == self._generation

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a callback for committed snapshots.

        Returns:
            Function removing the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Start the polling timer."""
        if self.running:
            logger.warning("Status poller already running")
            return

        self.running = True
        self._generation += 1
        self.task = asyncio.create_task(self._run_scheduler())
        logger.info(
            "Status poller started",
            extra={"extra_fields": {"interval": self.interval, "services": len(self.services)}},
        )

    async def stop(self) -> None:
        """Stop the polling timer. An in-flight tick is left to finish and discarded."""
        self.running = False
        self._generation += 1
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Status poller stopped")

    async def _run_scheduler(self) -> None:
        """Fire a tick now and then on every interval."""
        while self.running:
            self._fire()
            await asyncio.sleep(self.interval)

    def _fire(self) -> None:
        if self.tick_in_flight:
            logger.debug("Previous status tick still running, skipping")
            track_status_tick("skipped")
            return
        self._tick_task = asyncio.create_task(self.tick())

    async def tick(self) -> Optional[StatusSnapshot]:
        """
        Run one poll cycle.

        Returns:
            The committed snapshot, or None if the tick was skipped
            because another one is in flight or discarded after a stop
        """
        if self.tick_in_flight:
            track_status_tick("skipped")
            return None

        generation = self._generation
        self._in_flight_generation = generation
        try:
            with request_context():
                statuses = await self._evaluate()
        finally:
            # A restart may already have a newer tick in flight
            if self._in_flight_generation == generation:
                self._in_flight_generation = None

        if generation != self._generation:
            logger.debug("Discarding status tick finished after stop")
            track_status_tick("discarded")
            return None

        return self._commit(statuses)

    async def _evaluate(self) -> Tuple[ServiceStatus, ...]:
        probes: Dict[str, asyncio.Future] = {}

        def probe(path: str) -> asyncio.Future:
            if path not in probes:
                probes[path] = asyncio.ensure_future(self.api.check_health(path))
            return probes[path]

        async def evaluate(service: MonitoredService) -> ServiceStatus:
            path = service.health_path or self._gateway_path
            try:
                healthy = await probe(path)
            except Exception as error:
                logger.warning(
                    "Health check raised",
                    extra={
                        "extra_fields": {
                            "service": service.name,
                            "error_type": type(error).__name__,
                        }
                    },
                )
                healthy = False

            return ServiceStatus(
                name=service.name,
                status=HealthState.HEALTHY if healthy else HealthState.UNHEALTHY,
                url=service.url,
                port=service.port,
            )

        results = await asyncio.gather(*(evaluate(service) for service in self.services))
        return tuple(results)

    def _commit(self, statuses: Iterable[ServiceStatus]) -> StatusSnapshot:
        snapshot = StatusSnapshot(
            version=self._snapshot.version + 1,
            services=tuple(statuses),
            checked_at=datetime.now(timezone.utc),
        )
        self._snapshot = snapshot
        track_status_tick("committed")

        for service in snapshot.services:
            update_service_health(service.name, service.status.value)

        logger.info(
            "Service status updated",
            extra={
                "extra_fields": {
                    "version": snapshot.version,
                    "statuses": {s.name: s.status.value for s in snapshot.services},
                }
            },
        )

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Status listener failed")

        return snapshot
