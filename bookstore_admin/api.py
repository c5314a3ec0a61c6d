"""
Domain API facade for the bookstore gateway.

One coroutine per backend operation. Methods serialize their typed input,
call the gateway client and parse the typed response. They do not validate
input, enforce roles or cache results: the backend is the authority and
every call is a fresh round trip.
"""

import time
from typing import List
from urllib.parse import quote

from .http_client import GatewayClient
from .logging_config import get_logger
from .models import (
    Book,
    BookStats,
    Credentials,
    LoginResponse,
    OrderHistory,
    OrderRequest,
    OrderResponse,
    User,
    UserProfileUpdate,
)

logger = get_logger(__name__)


def new_book_id() -> str:
    """Generate an id for a new catalog entry from the current time in milliseconds."""
    return str(int(time.time() * 1000))


def _book_path(book_id: str) -> str:
    return f"/books/{quote(book_id, safe='')}"


class BookstoreApi:
    """
    Typed operations exposed by the bookstore gateway.

    Errors raised by the gateway client propagate unchanged; a 403 from an
    admin-only endpoint reaches the caller as AuthorizationError.

    Attributes:
        client: Gateway client every call goes through
    """

    def __init__(self, client: GatewayClient) -> None:
        self.client = client

    # Auth

    async def login(self, credentials: Credentials) -> LoginResponse:
        """
        Exchange credentials for a session token.

        Does not store the token; see AuthService for the login flow.

        Raises:
            AuthenticationError: If the gateway rejects the credentials
        """
        data = await self.client.post("/login", json=credentials.model_dump())
        return LoginResponse.model_validate(data)

    # Users

    async def get_user_profile(self) -> User:
        data = await self.client.get("/profile")
        return User.model_validate(data)

    async def update_user_profile(self, profile: UserProfileUpdate) -> User:
        data = await self.client.put("/profile", json=profile.model_dump())
        return User.model_validate(data)

    async def get_all_users(self) -> List[User]:
        """List every user. Admin only on the server side."""
        data = await self.client.get("/users")
        return [User.model_validate(item) for item in data or []]

    # Books

    async def get_books(self) -> List[Book]:
        data = await self.client.get("/books")
        return [Book.model_validate(item) for item in data or []]

    async def get_book(self, book_id: str) -> Book:
        data = await self.client.get(_book_path(book_id), endpoint="/books/{id}")
        return Book.model_validate(data)

    async def create_book(self, book: Book) -> Book:
        data = await self.client.post("/books", json=book.model_dump())
        return Book.model_validate(data)

    async def add_book(self, title: str, author: str) -> Book:
        """Create a catalog entry under a freshly generated id."""
        return await self.create_book(Book(id=new_book_id(), title=title, author=author))

    async def delete_book(self, book_id: str) -> None:
        """
        Remove a catalog entry.

        Not idempotent: deleting an id that is already gone raises
        NotFoundError.
        """
        await self.client.delete(_book_path(book_id), endpoint="/books/{id}")
        logger.info(
            "Book deleted",
            extra={"extra_fields": {"book_id": book_id}},
        )

    async def get_book_stats(self) -> BookStats:
        data = await self.client.get("/books/stats")
        return BookStats.model_validate(data)

    # Orders

    async def place_order(self, order: OrderRequest) -> OrderResponse:
        data = await self.client.post("/order", json=order.model_dump())
        return OrderResponse.model_validate(data)

    async def get_order_history(self) -> List[OrderHistory]:
        """Orders placed by the current user."""
        data = await self.client.get("/orders")
        return [OrderHistory.model_validate(item) for item in data or []]

    async def get_all_orders(self) -> List[OrderHistory]:
        """Orders of every user. Admin only on the server side."""
        data = await self.client.get("/orders/all")
        return [OrderHistory.model_validate(item) for item in data or []]

    # Health

    async def check_health(self, path: str = "/health") -> bool:
        """Return True iff the liveness endpoint at ``path`` answers 2xx."""
        return await self.client.probe(path)

    async def check_gateway_health(self) -> bool:
        return await self.check_health("/health")
