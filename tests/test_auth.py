"""
Bookstore Admin Tests - Login Flow Tests.
"""

import pytest

from bookstore_admin.api import BookstoreApi
from bookstore_admin.auth import AuthService
from bookstore_admin.exceptions import AuthenticationError
from bookstore_admin.models import Credentials
from bookstore_admin.session import SessionStore

from .fake_gateway import FakeGateway


@pytest.fixture
def auth(api: BookstoreApi, session: SessionStore) -> AuthService:
    return AuthService(api, session)


@pytest.mark.asyncio
async def test_login_stores_token(
    auth: AuthService, api: BookstoreApi, gateway: FakeGateway
) -> None:
    response = await auth.login(Credentials(username="admin", password="password"))

    assert auth.is_authenticated
    assert auth.token == response.token

    await api.get_books()
    assert gateway.last_request.headers["Authorization"] == f"Bearer {response.token}"


@pytest.mark.asyncio
async def test_failed_login_leaves_session_empty(auth: AuthService) -> None:
    with pytest.raises(AuthenticationError):
        await auth.login(Credentials(username="alice", password="wrong"))

    assert not auth.is_authenticated


@pytest.mark.asyncio
async def test_logout_clears_session(auth: AuthService, api: BookstoreApi) -> None:
    await auth.login(Credentials(username="alice", password="secret"))

    auth.logout()

    assert auth.token is None
    with pytest.raises(AuthenticationError):
        await api.get_books()


@pytest.mark.asyncio
async def test_revoked_session_is_logged_out(
    auth: AuthService, api: BookstoreApi, gateway: FakeGateway
) -> None:
    response = await auth.login(Credentials(username="alice", password="secret"))
    gateway.revoke(response.token)

    with pytest.raises(AuthenticationError):
        await api.get_order_history()

    assert not auth.is_authenticated


def test_credentials_repr_hides_password() -> None:
    assert "hunter2" not in repr(Credentials(username="bob", password="hunter2"))
