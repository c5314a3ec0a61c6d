"""
Data models for the bookstore admin client.

Pydantic models mirroring the gateway's JSON contract, plus the value
objects published by the status poller and the notification feed.
Every model is frozen: responses are snapshots that are replaced
wholesale on the next fetch, never patched in place.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SnapshotModel(BaseModel):
    """Base class for immutable snapshots returned by the gateway."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class UserRole(str, Enum):
    """Roles known to the user service."""

    ADMIN = "admin"
    USER = "user"


class HealthState(str, Enum):
    """Health of a monitored service."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class NotificationType(str, Enum):
    """Kinds of notifications shown in the feed."""

    ORDER = "order"
    SYSTEM = "system"


class Credentials(BaseModel):
    """Login credentials. Used once per login attempt and never persisted."""

    username: str
    password: str = Field(..., repr=False)


class User(SnapshotModel):
    """User profile as returned by the user service."""

    username: str
    email: str
    full_name: str
    role: UserRole
    created_at: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class LoginResponse(SnapshotModel):
    """Token issued by a successful login."""

    token: str
    user: Optional[User] = None


class UserProfileUpdate(BaseModel):
    """Editable profile fields."""

    email: str
    full_name: str


class Book(SnapshotModel):
    """Catalog entry."""

    id: str
    title: str
    author: str


class OrderRequest(BaseModel):
    """Order placement payload."""

    book_id: str


class OrderResponse(SnapshotModel):
    """Acknowledgement of a placed order."""

    message: str


class OrderHistory(SnapshotModel):
    """Past order with denormalized book details."""

    id: str
    book_id: str
    book_title: str
    book_author: str
    order_date: datetime
    status: str
    username: str


class AuthorCount(SnapshotModel):
    """Number of catalog entries for one author."""

    author: str
    count: int


class BookStats(SnapshotModel):
    """Catalog aggregate computed by the book service."""

    total_books: int
    top_authors: List[AuthorCount] = Field(default_factory=list)
    last_updated: datetime


class ServiceStatus(SnapshotModel):
    """Health of one monitored dependency."""

    name: str
    status: HealthState = HealthState.UNKNOWN
    url: str
    port: int


class StatusSnapshot(SnapshotModel):
    """
    One committed status poller tick.

    The version increases by one per committed tick; every entry in
    ``services`` was evaluated in that same tick.
    """

    version: int = 0
    services: Tuple[ServiceStatus, ...] = ()
    checked_at: Optional[datetime] = None

    def get(self, name: str) -> Optional[ServiceStatus]:
        """Return the status entry for ``name``, if monitored."""
        for service in self.services:
            if service.name == name:
                return service
        return None


class Notification(SnapshotModel):
    """Transient user-facing event."""

    id: str
    message: str
    timestamp: datetime
    type: NotificationType = NotificationType.ORDER
