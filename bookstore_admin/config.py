"""
Configuration module for the bookstore admin client.

This module provides centralized configuration management using Pydantic settings.
All configuration values can be overridden via environment variables or .env file.
Polling cadences and feed sizes live here instead of being hard-coded in the
components that use them.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings for the bookstore admin client.

    All settings can be configured via environment variables.
    Settings are validated on instantiation to ensure correct configuration.

    Attributes:
        GATEWAY_URL: Base URL of the API gateway fronting all backend services
        BOOK_SERVICE_URL: Address of the book service (display only)
        ORDER_SERVICE_URL: Address of the order service (display only)
        USER_SERVICE_URL: Address of the user service (display only)
        REQUEST_TIMEOUT: Default timeout for HTTP requests in seconds
        HEALTH_CHECK_TIMEOUT: Timeout for gateway liveness probes in seconds
        SESSION_FILE: File the session token is persisted to
        SESSION_STORAGE_KEY: Key the token is stored under in the session file
        STATUS_POLL_INTERVAL: Seconds between service status ticks
        NOTIFICATION_INTERVAL: Seconds between notification draws
        NOTIFICATION_PROBABILITY: Chance that a draw produces a notification
        NOTIFICATION_FEED_LIMIT: Maximum number of notifications kept
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_JSON: Emit JSON structured logs instead of human-readable lines
        METRICS_PORT: Port the monitor serves Prometheus metrics on, 0 disables it
    """

    # Gateway and backend service addresses
    GATEWAY_URL: str = Field(
        default="http://localhost:8080",
        description="Base URL of the API gateway",
    )
    BOOK_SERVICE_URL: str = Field(
        default="http://localhost:8000",
        description="Address of the book service behind the gateway",
    )
    ORDER_SERVICE_URL: str = Field(
        default="http://localhost:8001",
        description="Address of the order service behind the gateway",
    )
    USER_SERVICE_URL: str = Field(
        default="http://localhost:8002",
        description="Address of the user service behind the gateway",
    )

    # HTTP client configuration
    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        le=30.0,
        description="Default timeout for HTTP requests in seconds",
    )
    HEALTH_CHECK_TIMEOUT: float = Field(
        default=2.0,
        gt=0,
        le=30.0,
        description="Timeout for gateway liveness probes in seconds",
    )

    # Session persistence
    SESSION_FILE: str = Field(
        default=".bookstore_session.json",
        description="File the session token is persisted to",
    )
    SESSION_STORAGE_KEY: str = Field(
        default="token",
        min_length=1,
        description="Key the session token is stored under",
    )

    # Polling cadence
    STATUS_POLL_INTERVAL: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between service status ticks",
    )
    NOTIFICATION_INTERVAL: float = Field(
        default=10.0,
        gt=0,
        description="Seconds between notification draws",
    )
    NOTIFICATION_PROBABILITY: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Probability that a draw synthesizes a notification",
    )
    NOTIFICATION_FEED_LIMIT: int = Field(
        default=10,
        ge=1,
        description="Maximum number of notifications kept in the feed",
    )

    # Logging configuration
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit JSON structured logs",
    )

    # Metrics
    METRICS_PORT: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Port for the Prometheus metrics endpoint, 0 disables it",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator(
        "GATEWAY_URL", "BOOK_SERVICE_URL", "ORDER_SERVICE_URL", "USER_SERVICE_URL"
    )
    @classmethod
    def validate_url(cls, value: str) -> str:
        """
        Validate that service URLs are properly formatted.

        Args:
            value: The URL to validate

        Returns:
            The validated URL without trailing slash

        Raises:
            ValueError: If URL is invalid
        """
        if not value:
            raise ValueError("Service URL cannot be empty")

        value = value.rstrip("/")

        if not (value.startswith("http://") or value.startswith("https://")):
            raise ValueError(
                f"Service URL must start with http:// or https://, got: {value}"
            )

        return value


# Global settings instance
settings = Settings()
