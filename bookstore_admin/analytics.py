"""
Analytics data loader.

Gathers what the analytics screen shows: catalog statistics, orders and
users. Admins see every order and the user list; other users see their
own orders only.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .api import BookstoreApi
from .logging_config import get_logger
from .models import BookStats, OrderHistory, User

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderStats:
    total_orders: int
    completed_orders: int
    recent_orders: int


@dataclass(frozen=True)
class TopBook:
    book_id: str
    title: str
    author: str
    count: int


@dataclass(frozen=True)
class AnalyticsData:
    current_user: User
    book_stats: BookStats
    orders: List[OrderHistory] = field(default_factory=list)
    users: List[User] = field(default_factory=list)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def _no_users() -> List[User]:
    return []


async def load_analytics(api: BookstoreApi) -> AnalyticsData:
    """
    Load the analytics data set.

    The profile is fetched first to pick the order endpoint; the remaining
    calls run concurrently. Any failure propagates.

    Args:
        api: Facade to load from

    Returns:
        AnalyticsData for the current user
    """
    user = await api.get_user_profile()

    orders_call = api.get_all_orders() if user.is_admin else api.get_order_history()
    users_call = api.get_all_users() if user.is_admin else _no_users()

    book_stats, orders, users = await asyncio.gather(
        api.get_book_stats(), orders_call, users_call
    )

    logger.debug(
        "Analytics loaded",
        extra={
            "extra_fields": {
                "username": user.username,
                "orders": len(orders),
                "users": len(users),
            }
        },
    )
    return AnalyticsData(current_user=user, book_stats=book_stats, orders=orders, users=users)


def order_stats(
    orders: List[OrderHistory],
    now: Optional[datetime] = None,
    recent_days: int = 7,
) -> OrderStats:
    """Count all, completed and recent orders."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=recent_days)

    return OrderStats(
        total_orders=len(orders),
        completed_orders=sum(1 for order in orders if order.status == "completed"),
        recent_orders=sum(1 for order in orders if _as_utc(order.order_date) >= cutoff),
    )


def top_books(orders: List[OrderHistory], limit: int = 5) -> List[TopBook]:
    """Most ordered books, highest count first."""
    counts = Counter(order.book_id for order in orders)
    first_seen = {}
    for order in orders:
        first_seen.setdefault(order.book_id, order)

    return [
        TopBook(
            book_id=book_id,
            title=first_seen[book_id].book_title,
            author=first_seen[book_id].book_author,
            count=count,
        )
        for book_id, count in counts.most_common(limit)
    ]


def latest_orders(orders: List[OrderHistory], limit: int = 10) -> List[OrderHistory]:
    """Newest orders first, at most ``limit`` of them."""
    return sorted(orders, key=lambda order: _as_utc(order.order_date), reverse=True)[:limit]
