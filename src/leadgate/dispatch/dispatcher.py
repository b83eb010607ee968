"""Tool Dispatcher: one ToolCallRequest in, exactly one ToolCallResult out.

Resolution is an explicit name -> ToolSpec map built once at construction.
Argument checking happens before any network call: first presence of every
required name, then validation into the tool's params model. Every failure,
expected or not, is rendered as an ``Error [<CODE>]`` content block; nothing
raises past ``call``.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from leadgate.foundation.core import ToolCallRequest, ToolCallResult
from leadgate.foundation.errors import (
    ErrorCode,
    GatewayError,
    GatewayException,
    InvalidArguments,
    UnknownTool,
    format_validation_error,
)
from leadgate.runtime.observability import get_logger
from leadgate.tools import ALL_SPECS, ToolSpec

from .content import render

if TYPE_CHECKING:
    from leadgate.client import BackendClient
    from leadgate.foundation.registry import SchemaRegistry

log = get_logger("leadgate.dispatch")


def missing_required(spec: ToolSpec, arguments: Mapping[str, Any]) -> list[str]:
    """Required names that are absent or null."""
    return [name for name in spec.required if arguments.get(name) is None]


class ToolDispatcher:
    """Routes tool calls to handlers and normalizes every outcome.

    Example:
        >>> dispatcher = ToolDispatcher(registry, client)
        >>> result = await dispatcher.call(ToolCallRequest(name="campaign_get", arguments={"campaignId": 42}))
        >>> result.is_error
        False
    """

    __slots__ = ("_client", "_specs")

    def __init__(
        self,
        registry: SchemaRegistry,
        client: BackendClient,
        specs: Iterable[ToolSpec] = ALL_SPECS,
    ) -> None:
        by_name = {spec.name: spec for spec in specs}
        if unbound := [d.name for d in registry if d.name not in by_name]:
            raise ValueError(f"No handler for registered tools: {unbound}")
        self._client = client
        self._specs: dict[str, ToolSpec] = {d.name: by_name[d.name] for d in registry}

    @property
    def tool_names(self) -> tuple[str, ...]:
        return tuple(self._specs)

    async def call(self, request: ToolCallRequest) -> ToolCallResult:
        name = request.tool_name
        start = time.perf_counter()
        try:
            text = render(await self._invoke(name, request.arguments))
        except GatewayException as e:
            error = e.error if e.error.tool_name else e.error.with_tool(name)
            log.warning("tool failed", tool=name, code=str(error.code), status=error.status_code,
                        duration_ms=_elapsed_ms(start))
            return ToolCallResult.text(error.render(), is_error=True)
        except Exception as e:
            log.exception("tool crashed", tool=name, error_type=type(e).__name__)
            error = GatewayError(code=ErrorCode.INTERNAL, message=e, tool_name=name)
            return ToolCallResult.text(error.render(), is_error=True)

        log.info("tool succeeded", tool=name, duration_ms=_elapsed_ms(start), size=len(text))
        return ToolCallResult.text(text)

    async def _invoke(self, name: str, arguments: Mapping[str, Any]) -> Any:
        if (spec := self._specs.get(name)) is None:
            raise UnknownTool.create(f"Unknown tool: {name}", tool_name=name)
        if missing := missing_required(spec, arguments):
            raise InvalidArguments.create(
                f"Missing required argument(s): {', '.join(missing)}", tool_name=name,
            )
        try:
            params = spec.params.model_validate(arguments)
        except ValidationError as e:
            raise InvalidArguments.create(format_validation_error(e), tool_name=name) from e
        return await spec.handler(self._client, params)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
