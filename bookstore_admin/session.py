"""
Session store for the bookstore admin client.

Holds the bearer token of the current session and mirrors it to durable
storage so the session survives a restart. The store is an ordinary object
handed to the gateway client; nothing looks it up globally.
"""

import json
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


class TokenStorage(Protocol):
    """Durable backing for a session token."""

    def load(self) -> Optional[str]:
        ...

    def save(self, token: str) -> None:
        ...

    def delete(self) -> None:
        ...


class MemoryTokenStorage:
    """Token storage that lives only as long as the process."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def load(self) -> Optional[str]:
        return self._token

    def save(self, token: str) -> None:
        self._token = token

    def delete(self) -> None:
        self._token = None


class FileTokenStorage:
    """
    Token storage backed by a JSON file.

    The token is kept under a fixed key so the file can carry other
    client state without clobbering it.

    Attributes:
        path: Location of the JSON file
        key: Key the token is stored under
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        key: Optional[str] = None,
    ) -> None:
        self.path = Path(path or settings.SESSION_FILE)
        self.key = key or settings.SESSION_STORAGE_KEY

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            logger.warning(
                "Ignoring unreadable session file",
                extra={
                    "extra_fields": {
                        "path": str(self.path),
                        "error_type": type(error).__name__,
                    }
                },
            )
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Optional[str]:
        token = self._read().get(self.key)
        return token if isinstance(token, str) and token else None

    def save(self, token: str) -> None:
        data = self._read()
        data[self.key] = token
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def delete(self) -> None:
        data = self._read()
        if self.key not in data:
            return
        del data[self.key]
        if data:
            self.path.write_text(json.dumps(data), encoding="utf-8")
        else:
            self.path.unlink(missing_ok=True)


class SessionStore:
    """
    Owner of the current session token.

    Writers are the login flow and the gateway client's session-expiry
    policy; everything else only reads. Last write wins.
    """

    def __init__(self, storage: Optional[TokenStorage] = None) -> None:
        """
        Initialize the session store, restoring any persisted token.

        Args:
            storage: Durable token backing (defaults to the session file)
        """
        self._storage: TokenStorage = storage if storage is not None else FileTokenStorage()
        self._token: Optional[str] = self._storage.load()

        if self._token:
            logger.debug("Restored persisted session")

    def get(self) -> Optional[str]:
        """Return the current token, or None when logged out."""
        return self._token

    def set(self, token: str) -> None:
        """Replace the current token and persist it."""
        self._token = token
        self._storage.save(token)
        logger.info("Session established")

    def clear(self) -> None:
        """Drop the current token and remove it from durable storage."""
        had_token = self._token is not None
        self._token = None
        self._storage.delete()
        if had_token:
            logger.info("Session cleared")

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None
