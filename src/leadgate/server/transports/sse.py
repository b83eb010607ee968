"""Push-stream transport: Server-Sent Events down, HTTP POST up.

- ``GET /sse`` opens a session; the stream first names the endpoint to POST to
  (``event: endpoint``), then carries one ``event: message`` per response
- ``POST /messages?session_id=<id>`` queues a raw JSON-RPC message (202), or
  404 when the session is unknown or closed
- idle streams get a ``: keepalive`` comment every ``keepalive_interval`` seconds
- a dropped connection tears down exactly its own session

SSE format:
    event: <event_type>
    data: <payload>
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Final

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from leadgate import __version__
from leadgate.runtime.observability import get_logger

from ..session import SERVER_NAME, Session
from .base import Transport

if TYPE_CHECKING:
    from leadgate.client import BackendClient
    from leadgate.dispatch import ToolDispatcher
    from leadgate.foundation.registry import SchemaRegistry

log = get_logger("leadgate.sse")

KEEPALIVE: Final = ": keepalive\n\n"
MESSAGES_PATH: Final = "/messages"

# Sentinel waking receivers and the stream when a transport closes
_CLOSED: Final = None


def format_sse(event: str, data: str) -> str:
    lines = "\n".join(f"data: {line}" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n\n"


class SseTransport(Transport):
    """Queue pair bridging one SSE stream and its POST endpoint."""

    __slots__ = ("session_id", "_inbound", "_outbound", "_stopped", "_closed")

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._inbound: asyncio.Queue[str | bytes | None] = asyncio.Queue()
        self._outbound: asyncio.Queue[str | None] = asyncio.Queue()
        self._stopped = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    def post(self, raw: str | bytes) -> bool:
        """Queue an inbound message. False once the transport stopped receiving."""
        if self._stopped:
            return False
        self._inbound.put_nowait(raw)
        return True

    async def receive(self) -> str | bytes | None:
        if self._stopped:
            return None
        return await self._inbound.get()

    async def deliver(self, message: str) -> None:
        if self._closed:
            return
        self._outbound.put_nowait(message)

    async def next_outbound(self, timeout: float) -> str | None:
        """Next message for the stream; raises TimeoutError when idle for ``timeout``."""
        return await asyncio.wait_for(self._outbound.get(), timeout)

    def stop_receiving(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._inbound.put_nowait(_CLOSED)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.stop_receiving()
        self._outbound.put_nowait(_CLOSED)


class SessionManager:
    """Owns every live SSE session. Sessions never see each other."""

    __slots__ = ("_dispatcher", "_registry", "_sessions", "_tasks")

    def __init__(self, dispatcher: ToolDispatcher, registry: SchemaRegistry) -> None:
        self._dispatcher = dispatcher
        self._registry = registry
        self._sessions: dict[str, Session] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def open(self) -> Session:
        """Create a session and start its receive loop. Requires a running event loop."""
        session_id = uuid.uuid4().hex
        session = Session(
            SseTransport(session_id), self._dispatcher, self._registry, session_id=session_id, on_close=self._forget,
        )
        self._sessions[session.id] = session
        self._tasks[session.id] = asyncio.create_task(self._serve(session), name=f"sse-session-{session.id}")
        log.info("sse session opened", session_id=session.id, sessions=len(self._sessions))
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def post(self, session_id: str, raw: str | bytes) -> bool:
        """Route an inbound message to its session. False for unknown or closed sessions."""
        session = self._sessions.get(session_id)
        transport = session.transport if session is not None else None
        return isinstance(transport, SseTransport) and transport.post(raw)

    async def release(self, session_id: str) -> None:
        if (session := self._sessions.get(session_id)) is not None:
            await session.close()

    async def close_all(self, grace: float = 5.0) -> None:
        """Stop every session reading, give in-flight calls ``grace`` seconds to answer, then cancel and release."""
        for session in list(self._sessions.values()):
            session.shutdown()
        if tasks := [t for t in self._tasks.values() if not t.done()]:
            _, pending = await asyncio.wait(tasks, timeout=grace)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        for session in list(self._sessions.values()):
            await session.close()
        self._tasks.clear()

    async def _serve(self, session: Session) -> None:
        try:
            await session.run()
        except Exception:
            log.exception("sse session failed", session_id=session.id)
        finally:
            self._tasks.pop(session.id, None)

    def _forget(self, session: Session) -> None:
        self._sessions.pop(session.id, None)
        log.info("sse session released", session_id=session.id, sessions=len(self._sessions))


async def event_stream(manager: SessionManager, keepalive_interval: float) -> AsyncIterator[str]:
    """Body of one ``GET /sse`` response.

    The session is opened on first iteration, so a client gone before the body
    starts leaves nothing behind. Once open, it is released however the stream ends.
    """
    session = manager.open()
    transport: SseTransport = session.transport  # type: ignore[assignment]
    try:
        yield format_sse("endpoint", f"{MESSAGES_PATH}?session_id={session.id}")
        while True:
            try:
                message = await transport.next_outbound(keepalive_interval)
            except TimeoutError:
                yield KEEPALIVE
                continue
            if message is _CLOSED:
                break
            yield format_sse("message", message)
    finally:
        await manager.release(session.id)


# ─────────────────────────────────────────────────────────────────────────────
# ASGI Application
# ─────────────────────────────────────────────────────────────────────────────


def create_app(
    manager: SessionManager,
    registry: SchemaRegistry,
    *,
    client: BackendClient | None = None,
    keepalive_interval: float = 15.0,
) -> Starlette:
    """Starlette app serving the SSE endpoints, health and server info."""

    async def sse(request: Request) -> Response:
        return StreamingResponse(
            event_stream(manager, keepalive_interval),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
        )

    async def messages(request: Request) -> Response:
        session_id = request.query_params.get("session_id")
        if not session_id:
            return JSONResponse({"error": "session_id query parameter is required"}, status_code=400)
        body = await request.body()
        if not manager.post(session_id, body):
            return JSONResponse({"error": f"Unknown or closed session: {session_id}"}, status_code=404)
        return Response("Accepted", status_code=202, media_type="text/plain")

    async def health(request: Request) -> Response:
        return JSONResponse({"status": "healthy", "service": SERVER_NAME, "sessions": len(manager)})

    async def info(request: Request) -> Response:
        return JSONResponse({
            "name": SERVER_NAME,
            "version": __version__,
            "tools": len(registry),
            "endpoints": {"sse": "/sse", "messages": MESSAGES_PATH, "health": "/health"},
        })

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        log.info("sse server started", tools=len(registry))
        try:
            yield
        finally:
            await manager.close_all()
            if client is not None:
                await client.aclose()
            log.info("sse server stopped")

    routes = [
        Route("/sse", sse, methods=["GET"]),
        Route(MESSAGES_PATH, messages, methods=["POST"]),
        Route("/health", health, methods=["GET"]),
        Route("/", info, methods=["GET"]),
    ]
    return Starlette(routes=routes, lifespan=lifespan)
