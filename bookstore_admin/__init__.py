"""
Bookstore Admin Client Package.

Client-side integration layer of the bookstore administration dashboard:
the gateway HTTP client with its session handling, the typed domain API,
the service status poller and the notification feed.
"""

__version__ = "1.0.0"
__author__ = "Bookstore Team"
__description__ = "Client integration layer for the bookstore admin dashboard"

# Export main components
from .api import BookstoreApi
from .auth import AuthService
from .config import settings
from .http_client import GatewayClient, SessionExpiryPolicy
from .notifications import NotificationFeed, RandomNotificationSource
from .session import FileTokenStorage, MemoryTokenStorage, SessionStore
from .status_poller import MonitoredService, StatusPoller

__all__ = [
    "AuthService",
    "BookstoreApi",
    "FileTokenStorage",
    "GatewayClient",
    "MemoryTokenStorage",
    "MonitoredService",
    "NotificationFeed",
    "RandomNotificationSource",
    "SessionExpiryPolicy",
    "SessionStore",
    "StatusPoller",
    "settings",
    "__version__",
]
