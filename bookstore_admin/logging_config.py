"""
Logging setup for the bookstore admin client.

Log lines carry the request ID of the gateway call (or poller tick) they
belong to, and structured fields passed as ``extra={"extra_fields": {...}}``.
The same ID is forwarded to the gateway as ``X-Request-ID``.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional
from uuid import uuid4

LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per log line, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        request_id = _request_id.get()
        if request_id:
            entry["request_id"] = request_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(_extra_fields(record))
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Terminal formatter.

    Renders ``LEVEL [logger] [req:xxxxxxxx] message key=value ...`` with the
    level name colored.
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        parts = [f"{color}{record.levelname:8}{self.RESET}", f"[{record.name}]"]

        request_id = _request_id.get()
        if request_id:
            parts.append(f"[req:{request_id[:8]}]")

        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in _extra_fields(record).items())

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "bookstore-admin",
    use_json: bool = False,
) -> logging.Logger:
    """
    Install a single stdout handler on the root logger.

    Args:
        log_level: Logging level name
        service_name: Name of the returned top-level logger
        use_json: Emit JSON lines instead of the terminal format

    Returns:
        The service logger
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter_class = StructuredFormatter if use_json else HumanReadableFormatter
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter_class(datefmt=LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    service_logger = logging.getLogger(service_name)
    service_logger.setLevel(level)
    return service_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a module, usually called with ``__name__``."""
    return logging.getLogger(name or "bookstore-admin")


def current_request_id() -> Optional[str]:
    """Request ID bound to the running context, if any."""
    return _request_id.get()


@contextmanager
def request_context(request_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a request ID for the duration of the block.

    Without an explicit ID the enclosing one is kept, or a new UUID is
    generated when there is none. The previous value is restored on exit.

    Yields:
        The bound request ID
    """
    bound = request_id or _request_id.get() or str(uuid4())
    token = _request_id.set(bound)
    try:
        yield bound
    finally:
        _request_id.reset(token)
