"""Session layer: one logical MCP conversation bound to one transport.

State machine::

    OPENING --initialize--> ACTIVE --disconnect/shutdown--> CLOSING --> CLOSED

OPENING answers only ``initialize`` and ``ping``. ACTIVE additionally answers
``tools/list`` and ``tools/call``. A shutdown request (``shutdown``) stops
reading and lets the call in flight answer before the transport is released.
A call in flight when the transport itself goes away (``close``) still
finishes; its result is logged and dropped. The transport is released exactly
once, whatever the exit path.
"""

from __future__ import annotations

import uuid
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Callable, Final

from leadgate import __version__
from leadgate.foundation.errors import ProtocolFault, RpcErrorCode
from leadgate.runtime.observability import get_logger, log_context

from .protocol import RpcRequest, encode, error_message, parse_message, parse_tool_call, result_message

if TYPE_CHECKING:
    from leadgate.dispatch import ToolDispatcher
    from leadgate.foundation.core import JsonDict
    from leadgate.foundation.registry import SchemaRegistry

    from .transports.base import Transport

log = get_logger("leadgate.session")

SERVER_NAME: Final = "leadgate"
SUPPORTED_PROTOCOL_VERSIONS: Final = ("2024-11-05", "2025-03-26", "2025-06-18")
LATEST_PROTOCOL_VERSION: Final = SUPPORTED_PROTOCOL_VERSIONS[-1]


class SessionState(StrEnum):
    OPENING = "opening"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


def negotiate_version(requested: object) -> str:
    """Echo the client's version when supported, otherwise offer the latest."""
    return requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION  # type: ignore[return-value]


class Session:
    """Receive -> handle -> deliver loop over one transport, in arrival order.

    Example:
        >>> session = Session(StdioTransport(reader, sys.stdout.buffer), dispatcher, registry)
        >>> await session.run()   # returns on EOF, close() or transport failure
    """

    __slots__ = ("id", "transport", "_dispatcher", "_registry", "_state", "_released", "_on_close", "_client_info")

    def __init__(
        self,
        transport: Transport,
        dispatcher: ToolDispatcher,
        registry: SchemaRegistry,
        *,
        session_id: str | None = None,
        on_close: Callable[[Session], None] | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.transport = transport
        self._dispatcher = dispatcher
        self._registry = registry
        self._state = SessionState.OPENING
        self._released = False
        self._on_close = on_close
        self._client_info: JsonDict = {}

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def accepting(self) -> bool:
        return self._state in (SessionState.OPENING, SessionState.ACTIVE)

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    async def run(self) -> None:
        """Serve until EOF or close. Transport errors propagate after the session is released."""
        with log_context(session_id=self.id):
            log.info("session opened")
            try:
                while self.accepting:
                    raw = await self.transport.receive()
                    if raw is None:
                        break
                    response = await self.handle(raw)
                    if response is not None:
                        await self._deliver(response)
            finally:
                await self.close()

    def shutdown(self) -> None:
        """Move to CLOSING and stop reading. The running loop answers the call in flight, then releases."""
        if not self.accepting:
            return
        log.info("session shutting down", session_id=self.id)
        self._state = SessionState.CLOSING
        self.transport.stop_receiving()

    async def close(self) -> None:
        """Release the transport. Idempotent."""
        if self._released:
            return
        self._released = True
        self._state = SessionState.CLOSING
        try:
            await self.transport.close()
        finally:
            self._state = SessionState.CLOSED
            log.info("session closed", session_id=self.id)
            if self._on_close is not None:
                self._on_close(self)

    async def _deliver(self, message: JsonDict) -> None:
        if not self.transport.is_open:
            log.warning("transport closed, discarding response", session_id=self.id, request_id=message.get("id"))
            return
        await self.transport.deliver(encode(message))

    # ─────────────────────────────────────────────────────────────────
    # Message Handling
    # ─────────────────────────────────────────────────────────────────

    async def handle(self, raw: str | bytes) -> JsonDict | None:
        """Turn one raw message into its response. None means no response is owed."""
        try:
            request = parse_message(raw)
        except ProtocolFault as fault:
            log.warning("malformed message", code=int(fault.rpc_code), reason=fault.error.message)
            return error_message(fault.request_id, fault.rpc_code, fault.error.message)
        if request is None:
            return None

        try:
            result = await self._dispatch(request)
        except ProtocolFault as fault:
            log.warning("request rejected", method=request.method, code=int(fault.rpc_code), reason=fault.error.message)
            return None if request.is_notification else error_message(request.id, fault.rpc_code, fault.error.message)
        except Exception:
            log.exception("request handler crashed", method=request.method)
            return None if request.is_notification else error_message(
                request.id, RpcErrorCode.INTERNAL_ERROR, "Internal error",
            )

        return None if request.is_notification else result_message(request.id, result)

    async def _dispatch(self, request: RpcRequest) -> Any:
        method = request.method
        log.debug("request", method=method, request_id=request.id)

        if method.startswith("notifications/"):
            if method == "notifications/cancelled":
                log.debug("cancellation ignored; calls run to completion", params=request.params)
            return None
        if method == "ping":
            return {}
        if method == "initialize":
            return self._initialize(request.params)
        if self._state is SessionState.OPENING:
            raise ProtocolFault("session not initialized", RpcErrorCode.INVALID_REQUEST, request.id)
        if self._state is not SessionState.ACTIVE:
            raise ProtocolFault("session is closing", RpcErrorCode.INVALID_REQUEST, request.id)
        if method == "tools/list":
            return {"tools": [d.to_wire() for d in self._registry.list_tools()]}
        if method == "tools/call":
            call = parse_tool_call(request.params, request.id)
            with log_context(request_id=request.id):
                return (await self._dispatcher.call(call)).to_wire()
        raise ProtocolFault(f"Method not found: {method}", RpcErrorCode.METHOD_NOT_FOUND, request.id)

    def _initialize(self, params: JsonDict) -> JsonDict:
        if self._state is SessionState.OPENING:
            self._state = SessionState.ACTIVE
        info = params.get("clientInfo")
        self._client_info = info if isinstance(info, dict) else {}
        version = negotiate_version(params.get("protocolVersion"))
        log.info("session initialized", protocol_version=version, client=self._client_info.get("name"))
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }
