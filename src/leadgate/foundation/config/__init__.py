"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    DEFAULT_BASE_URL,
    GatewaySettings,
    HttpSettings,
    LoggingSettings,
    RetrySettings,
    ServerSettings,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "GatewaySettings",
    "HttpSettings",
    "LoggingSettings",
    "RetrySettings",
    "ServerSettings",
]
