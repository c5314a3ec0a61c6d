"""
Custom exception classes for the bookstore admin client.

Every failure surfaced by the gateway client is one of these types, so
callers can tell an expired session from a missing permission, a missing
resource, a rejected payload or a dead network without inspecting raw
HTTP responses.
"""

from typing import Any, Dict, Optional, Type


class BookstoreClientError(Exception):
    """
    Base exception for all bookstore client errors.

    All custom exceptions inherit from this class
    for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize bookstore client error.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ApiError(BookstoreClientError):
    """
    Exception raised when the gateway answers with a non-2xx status.

    The status code, the server's message and the raw body are preserved
    unchanged so callers decide how to present the failure.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        body: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize API error.

        Args:
            status_code: HTTP status code returned by the gateway
            message: Error message extracted from the response
            body: Decoded JSON body, or raw text when the body is not JSON
            details: Additional context about the error
        """
        self.status_code = status_code
        self.body = body
        super().__init__(message, details)


class AuthenticationError(ApiError):
    """Raised on 401. The session has already been cleared when this propagates."""


class AuthorizationError(ApiError):
    """Raised on 403, the caller lacks the privilege for the operation."""


class NotFoundError(ApiError):
    """Raised on 404."""


class ValidationError(ApiError):
    """Raised on 400 and 422, the gateway rejected the request payload."""


class TransportError(BookstoreClientError):
    """
    Exception raised when no response was received from the gateway.

    Covers refused connections, DNS failures and timeouts.
    """

    def __init__(
        self,
        url: str,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize transport error.

        Args:
            url: The URL that could not be reached
            reason: Description of the underlying network failure
            details: Additional context about the error
        """
        self.url = url
        self.reason = reason
        message = f"Cannot connect to gateway at {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)


_STATUS_ERRORS: Dict[int, Type[ApiError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    422: ValidationError,
}


def error_for_status(status_code: int, message: str, body: Any = None) -> ApiError:
    """
    Build the exception matching an HTTP error status.

    Args:
        status_code: HTTP status code of the failed response
        message: Error message extracted from the response
        body: Decoded response body

    Returns:
        ApiError subclass instance for the status
    """
    error_cls = _STATUS_ERRORS.get(status_code, ApiError)
    return error_cls(status_code, message, body=body)
