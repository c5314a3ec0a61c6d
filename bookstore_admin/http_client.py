"""
HTTP client module for the bookstore API gateway.

Provides the single async transport every backend call goes through. It
signs requests with the current session token, converts error responses
into typed exceptions, and hands 401 responses to an explicit session
expiry policy before the error reaches the caller.
"""

import time
from typing import Any, Callable, Dict, Optional

import httpx

from .config import settings
from .exceptions import AuthenticationError, TransportError, error_for_status
from .logging_config import current_request_id, get_logger, request_context
from .metrics import track_gateway_error, track_gateway_request, track_session_expired
from .session import SessionStore

logger = get_logger(__name__)


class SessionExpiryPolicy:
    """
    Reaction to the gateway rejecting the session token.

    Clears the session store and then calls ``on_expired``, which is where
    an interactive consumer sends the user back to its login entry point.

    Attributes:
        session: Session store to clear
        on_expired: Optional callback invoked after the session is cleared
    """

    def __init__(
        self,
        session: SessionStore,
        on_expired: Optional[Callable[[], None]] = None,
    ) -> None:
        self.session = session
        self.on_expired = on_expired

    def handle(self, error: AuthenticationError) -> None:
        """
        Invalidate the session for a 401 response.

        Args:
            error: The authentication failure about to be raised
        """
        logger.warning(
            "Gateway rejected credentials, clearing session",
            extra={
                "extra_fields": {
                    "status_code": error.status_code,
                    "reason": error.message,
                }
            },
        )
        self.session.clear()
        track_session_expired()

        if self.on_expired is not None:
            self.on_expired()


class GatewayClient:
    """
    Client for the bookstore API gateway.

    All requests are independent; the only state read per call is the
    session token. Errors are never retried.

    Uses a persistent HTTP client with connection pooling.

    Attributes:
        base_url: Base URL of the gateway, fixed at construction
        timeout: Request timeout in seconds
        session: Session store read before every request
        expiry_policy: Policy invoked on 401 responses
        _client: Persistent httpx.AsyncClient with connection pooling
    """

    def __init__(
        self,
        session: SessionStore,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        expiry_policy: Optional[SessionExpiryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize gateway client.

        Args:
            session: Session store holding the bearer token
            base_url: Base URL of the gateway (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            expiry_policy: 401 policy (defaults to clearing ``session``)
            transport: Optional httpx transport, used to plug in test doubles
        """
        self.base_url = (base_url or settings.GATEWAY_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.session = session
        self.expiry_policy = expiry_policy or SessionExpiryPolicy(session)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"Initialized GatewayClient: base_url={self.base_url}, "
            f"timeout={self.timeout}s"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the persistent HTTP client with connection pooling.

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._client is None or self._client.is_closed:
            if self._transport is not None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self.timeout,
                    transport=self._transport,
                )
            else:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self.timeout,
                    limits=httpx.Limits(
                        max_keepalive_connections=20,
                        max_connections=100,
                        keepalive_expiry=30.0,
                    ),
                    http2=True,
                )
            logger.debug("Created new HTTP client with connection pooling")
        return self._client

    async def close(self) -> None:
        """
        Close the HTTP client and release connections.
        """
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed HTTP client")

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _get_request_headers(self) -> Dict[str, str]:
        """
        Build headers for one request from the current session.

        Returns:
            Dictionary of HTTP headers
        """
        headers = {
            "User-Agent": "Bookstore-Admin/1.0",
            "Accept": "application/json",
        }

        token = self.session.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        request_id = current_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        return headers

    @staticmethod
    def _error_message(response: httpx.Response, body: Any) -> str:
        if isinstance(body, dict):
            for key in ("error", "detail", "message"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        text = response.text.strip()
        if text:
            return text[:200]
        return response.reason_phrase or f"HTTP {response.status_code}"

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        endpoint: Optional[str] = None,
    ) -> Any:
        """
        Send a request to the gateway and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the gateway base URL
            json: Optional JSON-serializable request body
            endpoint: Path template used as metrics label (defaults to path)

        Returns:
            Decoded JSON body, or None for an empty response

        Raises:
            AuthenticationError: On 401, after the session has been cleared
            ApiError: On any other non-2xx response
            TransportError: When no response was received
        """
        with request_context():
            return await self._send(method, path, json, endpoint)

    async def _send(
        self, method: str, path: str, json: Any, endpoint: Optional[str]
    ) -> Any:
        endpoint = endpoint or path
        start_time = time.perf_counter()

        try:
            client = await self._get_client()
            response = await client.request(
                method,
                path,
                json=json,
                headers=self._get_request_headers(),
            )
        except (httpx.RequestError, TimeoutError) as error:
            duration_ms = (time.perf_counter() - start_time) * 1000
            track_gateway_error(endpoint, "transport")

            logger.error(
                "Gateway request failed without response",
                extra={
                    "extra_fields": {
                        "method": method,
                        "path": path,
                        "backend_url": self.base_url,
                        "duration_ms": duration_ms,
                        "error_type": type(error).__name__,
                        "error_message": str(error),
                    }
                },
            )
            raise TransportError(
                f"{self.base_url}{path}",
                reason=str(error) or type(error).__name__,
                details={"method": method, "error_type": type(error).__name__},
            ) from error

        duration = time.perf_counter() - start_time
        track_gateway_request(method, endpoint, response.status_code, duration)

        logger.debug(
            "Received response from gateway",
            extra={
                "extra_fields": {
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": duration * 1000,
                    "response_size": len(response.content),
                }
            },
        )

        body = self._decode_body(response)

        if response.is_success:
            return body

        error = error_for_status(
            response.status_code, self._error_message(response, body), body=body
        )
        track_gateway_error(endpoint, type(error).__name__)

        logger.warning(
            "Gateway returned error",
            extra={
                "extra_fields": {
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "response_body": response.text[:500],
                }
            },
        )

        if isinstance(error, AuthenticationError):
            self.expiry_policy.handle(error)

        raise error

    async def get(self, path: str, endpoint: Optional[str] = None) -> Any:
        return await self.request("GET", path, endpoint=endpoint)

    async def post(self, path: str, json: Any = None, endpoint: Optional[str] = None) -> Any:
        return await self.request("POST", path, json=json, endpoint=endpoint)

    async def put(self, path: str, json: Any = None, endpoint: Optional[str] = None) -> Any:
        return await self.request("PUT", path, json=json, endpoint=endpoint)

    async def delete(self, path: str, endpoint: Optional[str] = None) -> Any:
        return await self.request("DELETE", path, endpoint=endpoint)

    async def probe(self, path: str = "/health", timeout: Optional[float] = None) -> bool:
        """
        Check whether an endpoint answers with a 2xx status.

        Never raises and never touches the session, so liveness checks
        cannot log the user out.

        Args:
            path: Path to probe
            timeout: Probe timeout in seconds (defaults to settings)

        Returns:
            True if the endpoint responded with 2xx, False otherwise
        """
        with request_context() as request_id:
            return await self._probe(path, timeout, request_id)

    async def _probe(self, path: str, timeout: Optional[float], request_id: str) -> bool:
        headers = {
            "User-Agent": "Bookstore-Admin/1.0",
            "Accept": "application/json",
            "X-Request-ID": request_id,
        }
        try:
            client = await self._get_client()
            response = await client.get(
                path,
                headers=headers,
                timeout=timeout or settings.HEALTH_CHECK_TIMEOUT,
            )
            is_healthy = response.is_success

            if is_healthy:
                logger.debug(
                    "Gateway health check passed",
                    extra={
                        "extra_fields": {
                            "backend_url": self.base_url,
                            "status_code": response.status_code,
                        }
                    },
                )
            else:
                logger.warning(
                    "Gateway health check failed",
                    extra={
                        "extra_fields": {
                            "backend_url": self.base_url,
                            "status_code": response.status_code,
                            "response_body": response.text[:200],
                        }
                    },
                )

            return is_healthy

        except (httpx.RequestError, TimeoutError) as error:
            logger.warning(
                "Gateway health check failed with exception",
                extra={
                    "extra_fields": {
                        "backend_url": self.base_url,
                        "error_type": type(error).__name__,
                        "error_message": str(error),
                    }
                },
            )
            return False

