"""Shared fixtures: settings without env lookups, a recording client stub, a fake sleep."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from leadgate.foundation.config import GatewaySettings, RetrySettings
from leadgate.foundation.registry import SchemaRegistry, default_registry
from leadgate.runtime.observability import configure_logging


@pytest.fixture(autouse=True)
def quiet_logs() -> None:
    configure_logging("none")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer SMARTLEAD_* variables from leaking into settings."""
    for key in list(os.environ):
        if key.startswith("SMARTLEAD_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(
        _env_file=None,
        api_key="test-key",
        base_url="https://api.test/v1",
        retry=RetrySettings(max_attempts=3, initial_delay=1.0, max_delay=10.0, backoff_factor=2.0),
    )


@pytest.fixture
def registry() -> SchemaRegistry:
    return default_registry()


# ─────────────────────────────────────────────────────────────────────────────
# Test Doubles
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class Call:
    method: str
    path: str
    query: dict[str, Any] | None = None
    body: Any = None
    binary: bool = False


@dataclass
class StubClient:
    """Stands in for BackendClient: records every invoke and answers from ``respond``."""

    respond: Callable[[Call], Any] = lambda call: {}
    calls: list[Call] = field(default_factory=list)

    async def invoke(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        body: Any = None,
        binary: bool = False,
    ) -> Any:
        call = Call(method, path, dict(query) if query is not None else None, body, binary)
        self.calls.append(call)
        return self.respond(call)


@dataclass
class FakeSleep:
    """Records requested delays instead of sleeping."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def stub() -> StubClient:
    return StubClient()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
