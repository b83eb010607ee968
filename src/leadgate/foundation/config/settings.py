"""Environment-based configuration using pydantic-settings.

Every knob is read from environment variables (or a .env file) with the
SMARTLEAD_ prefix. The CLI builds one GatewaySettings at startup and passes it
down explicitly; nothing here is cached globally.

Example:
    >>> settings = GatewaySettings()          # SMARTLEAD_API_KEY must be set
    >>> settings.retry.max_attempts
    3
    >>> settings.server.port
    8000

    # Or with environment variables:
    # SMARTLEAD_RETRY_MAX_ATTEMPTS=5
    # SMARTLEAD_LOG_FORMAT=json
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import (
    Field,
    NonNegativeFloat,
    PositiveFloat,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from leadgate.runtime.retry import RetryPolicy

DEFAULT_BASE_URL = "https://server.smartlead.ai/api/v1"


class RetrySettings(BaseSettings):
    """Retry configuration for upstream calls."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTLEAD_RETRY_",
        extra="ignore",
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    initial_delay: NonNegativeFloat = Field(default=1.0, description="Sleep after the first failed attempt")
    max_delay: NonNegativeFloat = Field(default=10.0, description="Upper bound on any single sleep")
    backoff_factor: Annotated[float, Field(ge=1.0)] = 2.0

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
        )


class HttpSettings(BaseSettings):
    """HTTP client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTLEAD_HTTP_",
        extra="ignore",
    )

    timeout: PositiveFloat = Field(default=30.0, description="Per-attempt socket timeout")
    total_timeout: PositiveFloat | None = Field(
        default=None,
        description="Ceiling on one invocation including retries; derived from the retry policy when unset",
    )
    user_agent: str = "leadgate/0.3.0"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTLEAD_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", "format", mode="before")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ServerSettings(BaseSettings):
    """SSE server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTLEAD_SERVER_",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: Annotated[int, Field(ge=1, le=65535)] = 8000
    keepalive_interval: PositiveFloat = Field(default=15.0, description="Seconds between keepalive comments")


class GatewaySettings(BaseSettings):
    """Root settings for the gateway.

    Loads configuration from environment variables with SMARTLEAD_ prefix.
    ``api_key`` has no default: constructing settings without it fails
    validation, which the CLI treats as a fatal startup error.

    Example environment variables:
        SMARTLEAD_API_KEY=sk-...
        SMARTLEAD_BASE_URL=https://server.smartlead.ai/api/v1
        SMARTLEAD_RETRY_MAX_ATTEMPTS=5
        SMARTLEAD_HTTP_TIMEOUT=60
        SMARTLEAD_SERVER_PORT=9000
    """

    model_config = SettingsConfigDict(
        env_prefix="SMARTLEAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    api_key: SecretStr = Field(description="Credential sent as the api_key query parameter")
    base_url: str = DEFAULT_BASE_URL

    # Nested settings (loaded with SMARTLEAD_RETRY_, SMARTLEAD_HTTP_, etc.)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    log: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @field_validator("api_key")
    @classmethod
    def _non_empty_key(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("SMARTLEAD_API_KEY must not be empty")
        return v

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @computed_field
    @property
    def total_timeout(self) -> float:
        """Ceiling on one invocation: every attempt timing out plus every backoff sleep."""
        if self.http.total_timeout is not None:
            return self.http.total_timeout
        policy = self.retry.to_policy()
        return policy.max_attempts * self.http.timeout + policy.total_delay()
