"""Tests for environment-based settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from leadgate.foundation.config import DEFAULT_BASE_URL, GatewaySettings


def test_api_key_required() -> None:
    with pytest.raises(ValidationError):
        GatewaySettings(_env_file=None)


def test_blank_api_key_rejected(monkeypatch) -> None:
    monkeypatch.setenv("SMARTLEAD_API_KEY", "   ")
    with pytest.raises(ValidationError):
        GatewaySettings(_env_file=None)


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SMARTLEAD_API_KEY", "secret")
    settings = GatewaySettings(_env_file=None)
    assert settings.api_key.get_secret_value() == "secret"
    assert "secret" not in repr(settings)
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.retry.max_attempts == 3
    assert settings.http.timeout == 30.0
    assert settings.log.level == "INFO"
    assert (settings.server.host, settings.server.port) == ("127.0.0.1", 8000)


def test_nested_prefixes(monkeypatch) -> None:
    monkeypatch.setenv("SMARTLEAD_API_KEY", "secret")
    monkeypatch.setenv("SMARTLEAD_BASE_URL", "https://proxy.test/api/v1/")
    monkeypatch.setenv("SMARTLEAD_RETRY_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("SMARTLEAD_HTTP_TOTAL_TIMEOUT", "12.5")
    monkeypatch.setenv("SMARTLEAD_LOG_LEVEL", "debug")
    monkeypatch.setenv("SMARTLEAD_SERVER_PORT", "9000")

    settings = GatewaySettings(_env_file=None)

    assert settings.base_url == "https://proxy.test/api/v1"
    assert settings.retry.to_policy().max_attempts == 5
    assert settings.total_timeout == 12.5
    assert settings.log.level == "DEBUG"
    assert settings.server.port == 9000


def test_out_of_range_retry_rejected(monkeypatch) -> None:
    monkeypatch.setenv("SMARTLEAD_API_KEY", "secret")
    monkeypatch.setenv("SMARTLEAD_RETRY_MAX_ATTEMPTS", "0")
    with pytest.raises(ValidationError):
        GatewaySettings(_env_file=None)
