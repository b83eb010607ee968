"""Resilient REST client for the upstream marketing API.

One BackendClient owns one ``httpx.AsyncClient`` for the life of the process.
Every call:

- carries the credential as the ``api_key`` query parameter (never a header)
- is classified per attempt as success, retriable (transport error or 429) or
  terminal (any other >= 400, or a 2xx JSON object that reports an error)
- is retried under the shared RetryPolicy and bounded by a total deadline

Failures surface as UpstreamTransient / UpstreamTerminal; nothing is swallowed.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import quote

import httpx
import orjson

from leadgate.foundation.errors import (
    Err,
    ErrorCode,
    GatewayError,
    Ok,
    Result,
    UpstreamTransient,
    upstream_error,
)
from leadgate.runtime.observability import get_logger
from leadgate.runtime.retry import execute_with_retry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from leadgate.foundation.config import GatewaySettings

log = get_logger("leadgate.client")

_REDACTED: Final = "[REDACTED]"
_RETRIABLE_STATUS: Final = frozenset({429})


class _Empty:
    """Sentinel for an empty success (204 or zero-length body)."""

    __slots__ = ()
    _instance: _Empty | None = None

    def __new__(cls) -> _Empty:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EMPTY"

    def __bool__(self) -> bool:
        return False


EMPTY: Final = _Empty()

# JSON value, raw bytes (binary exports) or EMPTY
RawResult = Any


def segment(value: object) -> str:
    """Percent-encode one path segment so ids can never alter the route."""
    return quote(str(value), safe="")


def _carries_error(payload: object) -> bool:
    """A 2xx JSON object that still reports failure."""
    if not isinstance(payload, dict):
        return False
    ok = payload.get("ok")
    return ok is False or (bool(payload.get("error")) and ok is not True)


def _detail(payload: object) -> str | None:
    """Best human-readable failure reason from an upstream JSON body."""
    if isinstance(payload, dict):
        for key in ("message", "error", "msg"):
            if isinstance(value := payload.get(key), str) and value.strip():
                return value
    return None


def _decode(content: bytes) -> Any:
    try:
        return orjson.loads(content)
    except orjson.JSONDecodeError:
        return content.decode("utf-8", errors="replace")


class BackendClient:
    """Authenticated, retrying client for the upstream REST API.

    Example:
        >>> async with BackendClient(settings) as client:
        ...     campaigns = await client.invoke("GET", "/campaigns", query={"offset": 0, "limit": 100})
    """

    __slots__ = ("_settings", "_policy", "_http", "_sleep", "_deadline")

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._policy = settings.retry.to_policy()
        self._deadline = settings.total_timeout
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=httpx.Timeout(settings.http.timeout),
            headers={"User-Agent": settings.http.user_agent, "Accept": "application/json"},
            transport=transport,
        )

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    # ─────────────────────────────────────────────────────────────────
    # Invocation
    # ─────────────────────────────────────────────────────────────────

    async def invoke(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        binary: bool = False,
    ) -> RawResult:
        """Issue one logical call, retrying per policy.

        Args:
            method: HTTP verb
            path: Path below base_url, with path parameters already encoded
            query: Query parameters; None values are dropped
            body: JSON body (sent for any verb when not None)
            binary: Return the raw bytes instead of decoding

        Returns:
            Decoded JSON, text for non-JSON bodies, bytes when ``binary``, or EMPTY

        Raises:
            UpstreamTransient: Retries exhausted or the total deadline was hit
            UpstreamTerminal: Non-retriable HTTP status or an error-carrying body
        """
        method = method.upper()
        params = {k: v for k, v in (query or {}).items() if v is not None}
        label = f"{method} {path}"

        async def attempt(n: int) -> Result[RawResult, GatewayError]:
            log.debug("upstream request", method=method, path=path, attempt=n,
                      query={**params, "api_key": _REDACTED})
            return await self._attempt(method, path, params, body, binary)

        try:
            async with asyncio.timeout(self._deadline):
                result = await execute_with_retry(attempt, self._policy, label, sleep=self._sleep)
        except TimeoutError:
            log.warning("upstream deadline exceeded", method=method, path=path, deadline=self._deadline)
            raise UpstreamTransient.create("deadline exceeded", status_text=label) from None

        if result.is_err():
            error = result.unwrap_err()
            log.warning("upstream call failed", method=method, path=path, code=str(error.code),
                        status=error.status_code, attempts=error.attempts)
            raise upstream_error(error)
        return result.unwrap()

    async def _attempt(
        self,
        method: str,
        path: str,
        params: dict[str, Any],
        body: Any,
        binary: bool,
    ) -> Result[RawResult, GatewayError]:
        api_key = self._settings.api_key.get_secret_value()
        try:
            response = await self._http.request(
                method,
                path,
                params={**params, "api_key": api_key},
                json=body,
            )
        except httpx.TransportError as e:
            return Err(GatewayError(
                code=ErrorCode.UPSTREAM_TRANSIENT,
                message=f"{type(e).__name__}: {e}".rstrip(": "),
            ))

        status = response.status_code
        if status >= 400:
            payload = _decode(response.content) if response.content else None
            code = ErrorCode.UPSTREAM_TRANSIENT if status in _RETRIABLE_STATUS else ErrorCode.UPSTREAM_TERMINAL
            return Err(GatewayError(
                code=code,
                message=_detail(payload) or f"{method} {path} failed",
                status_code=status,
                status_text=response.reason_phrase,
                body=response.content or None,
            ))

        if status == 204 or not response.content:
            return Ok(EMPTY)
        if binary:
            return Ok(response.content)

        payload = _decode(response.content)
        if _carries_error(payload):
            return Err(GatewayError(
                code=ErrorCode.UPSTREAM_TERMINAL,
                message=_detail(payload) or f"{method} {path} reported an error",
                status_code=status,
                status_text=response.reason_phrase,
                body=response.content,
            ))
        return Ok(payload)
