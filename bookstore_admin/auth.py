"""
Login flow for the bookstore admin client.

Couples the facade's login call with the session store: a successful
login stores the token, logout drops it.
"""

from typing import Optional

from .api import BookstoreApi
from .logging_config import get_logger
from .models import Credentials, LoginResponse
from .session import SessionStore

logger = get_logger(__name__)


class AuthService:
    """
    Owner of the explicit session transitions.

    Attributes:
        api: Facade used for the login call
        session: Session store written on login and logout
    """

    def __init__(self, api: BookstoreApi, session: SessionStore) -> None:
        self.api = api
        self.session = session

    async def login(self, credentials: Credentials) -> LoginResponse:
        """
        Log in and store the issued token.

        Args:
            credentials: Username and password, used for this attempt only

        Returns:
            The gateway's login response

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        try:
            response = await self.api.login(credentials)
        except Exception:
            logger.warning(
                "Login failed",
                extra={"extra_fields": {"username": credentials.username}},
            )
            raise

        self.session.set(response.token)
        logger.info(
            "Login successful",
            extra={"extra_fields": {"username": credentials.username}},
        )
        return response

    def logout(self) -> None:
        self.session.clear()
        logger.info("Logged out")

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    @property
    def token(self) -> Optional[str]:
        return self.session.get()
