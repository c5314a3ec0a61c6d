"""
Bookstore Admin Tests - Test Configuration.

Provides an in-memory fake of the API gateway served through
httpx.MockTransport, plus fixtures wiring the session store, gateway
client and facade to it.
"""

from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio

from bookstore_admin.api import BookstoreApi
from bookstore_admin.http_client import GatewayClient
from bookstore_admin.session import MemoryTokenStorage, SessionStore

from .fake_gateway import GATEWAY_URL, FakeGateway


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def session() -> SessionStore:
    """Session store without durable backing."""
    return SessionStore(MemoryTokenStorage())


@pytest_asyncio.fixture
async def client(gateway: FakeGateway, session: SessionStore):
    """GatewayClient talking to the fake gateway."""
    gateway_client = GatewayClient(
        session,
        base_url=GATEWAY_URL,
        transport=httpx.MockTransport(gateway.handle),
    )
    yield gateway_client
    await gateway_client.close()


@pytest.fixture
def api(client: GatewayClient) -> BookstoreApi:
    return BookstoreApi(client)


@pytest.fixture
def admin_session(gateway: FakeGateway, session: SessionStore) -> Optional[str]:
    """Log the session in as admin without a round trip."""
    token = gateway.token_for("admin")
    session.set(token)
    return token


@pytest.fixture
def user_session(gateway: FakeGateway, session: SessionStore) -> Optional[str]:
    """Log the session in as a regular user without a round trip."""
    token = gateway.token_for("alice")
    session.set(token)
    return token


def pytest_configure(config: Any) -> None:
    """
    Configure pytest with custom markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line(
        "markers",
        "asyncio: mark test as async",
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test",
    )
