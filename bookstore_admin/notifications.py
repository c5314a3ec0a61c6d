"""
Notification feed.

The feed consumes any NotificationSource: an async iterator yielding a lazy,
unbounded, time-ordered stream of notifications. The bundled source is a
simulator that synthesizes order notifications at random; a real push
channel can replace it without changing the feed or its consumers.
"""

import asyncio
import random
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional, Protocol, Sequence, Tuple
from uuid import uuid4

from .config import settings
from .logging_config import get_logger
from .metrics import track_notification, update_feed_size
from .models import Notification, NotificationType

logger = get_logger(__name__)

SAMPLE_BOOK_TITLES: Tuple[str, ...] = (
    "The Great Gatsby",
    "1984",
    "To Kill a Mockingbird",
    "Pride and Prejudice",
)

FeedListener = Callable[[Tuple[Notification, ...]], None]


class NotificationSource(Protocol):
    """Producer of notification events."""

    def __aiter__(self) -> AsyncIterator[Notification]:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RandomNotificationSource:
    """
    Simulated notification channel.

    Every ``interval`` seconds draws a random number; with ``probability``
    it produces an order notification for one of ``titles``.

    Attributes:
        interval: Seconds between draws
        probability: Chance that a draw produces a notification
        rng: Random generator, injectable for deterministic tests
        titles: Book titles used in synthesized messages
    """

    def __init__(
        self,
        interval: Optional[float] = None,
        probability: Optional[float] = None,
        rng: Optional[random.Random] = None,
        titles: Sequence[str] = SAMPLE_BOOK_TITLES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.interval = interval or settings.NOTIFICATION_INTERVAL
        self.probability = (
            settings.NOTIFICATION_PROBABILITY if probability is None else probability
        )
        self.rng = rng or random.Random()
        self.titles = tuple(titles)
        self.clock = clock

    def draw(self) -> Optional[Notification]:
        """
        Run one draw.

        Returns:
            A new notification, or None if this draw produced nothing
        """
        if self.rng.random() >= self.probability:
            return None

        title = self.rng.choice(self.titles)
        return Notification(
            id=uuid4().hex,
            message=f"New order placed for book: {title}",
            timestamp=self.clock(),
            type=NotificationType.ORDER,
        )

    async def events(self) -> AsyncIterator[Notification]:
        while True:
            await asyncio.sleep(self.interval)
            notification = self.draw()
            if notification is not None:
                yield notification

    def __aiter__(self) -> AsyncIterator[Notification]:
        return self.events()


class NotificationFeed:
    """
    Bounded, newest-first list of notifications with an unread counter.

    Attributes:
        source: Where notifications come from while the feed runs
        limit: Maximum number of notifications kept
    """

    def __init__(
        self,
        source: Optional[NotificationSource] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.source: NotificationSource = source or RandomNotificationSource()
        self.limit = limit or settings.NOTIFICATION_FEED_LIMIT

        self._notifications: Tuple[Notification, ...] = ()
        self._unread_count = 0
        self._listeners: List[FeedListener] = []

        self.running = False
        self.task: Optional[asyncio.Task] = None

    @property
    def notifications(self) -> Tuple[Notification, ...]:
        return self._notifications

    @property
    def unread_count(self) -> int:
        return self._unread_count

    def __len__(self) -> int:
        return len(self._notifications)

    def subscribe(self, listener: FeedListener) -> Callable[[], None]:
        """
        Register a callback receiving the feed after every change.

        Returns:
            Function removing the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        update_feed_size(len(self._notifications))
        for listener in list(self._listeners):
            try:
                listener(self._notifications)
            except Exception:
                logger.exception("Notification listener failed")

    def push(self, notification: Notification) -> None:
        """Prepend a notification, evicting the oldest beyond the limit."""
        self._notifications = ((notification,) + self._notifications)[: self.limit]
        self._unread_count += 1
        track_notification(notification.type.value, len(self._notifications))

        logger.info(
            "Notification received",
            extra={
                "extra_fields": {
                    "notification_id": notification.id,
                    "type": notification.type.value,
                    "unread": self._unread_count,
                }
            },
        )
        self._publish()

    def open(self) -> Tuple[Notification, ...]:
        """Mark everything as read and return the current feed."""
        self._unread_count = 0
        return self._notifications

    def remove(self, notification_id: str) -> bool:
        """
        Remove one notification.

        Returns:
            True if a notification with that id was present
        """
        remaining = tuple(n for n in self._notifications if n.id != notification_id)
        if len(remaining) == len(self._notifications):
            return False
        self._notifications = remaining
        self._publish()
        return True

    def clear(self) -> None:
        self._notifications = ()
        self._publish()

    async def start(self) -> None:
        """Start consuming the source."""
        if self.running:
            logger.warning("Notification feed already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._consume())
        logger.info("Notification feed started")

    async def stop(self) -> None:
        """Stop consuming the source."""
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Notification feed stopped")

    async def _consume(self) -> None:
        try:
            async for notification in self.source:
                if not self.running:
                    break
                self.push(notification)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Notification source failed",
                extra={"extra_fields": {"error": str(e)}},
                exc_info=True,
            )
            self.running = False
