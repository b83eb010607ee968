"""Tests for the SSE transport, session manager and Starlette app."""

from __future__ import annotations

import asyncio
import contextlib

import httpx
import orjson
import pytest
import pytest_asyncio

from leadgate.dispatch import ToolDispatcher
from leadgate.server.transports import SessionManager, SseTransport, create_app, event_stream, format_sse
from leadgate.server.transports.sse import KEEPALIVE


class GatedClient:
    """Blocks calls for one campaign until ``gate`` is set; others answer at once."""

    def __init__(self, blocked_path: str) -> None:
        self.blocked_path = blocked_path
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def invoke(self, method, path, **_):
        if path == self.blocked_path:
            self.entered.set()
            await self.gate.wait()
        return {"path": path}


def rpc(method: str, id: int | None = None, **params) -> bytes:
    message = {"jsonrpc": "2.0", "method": method, "params": params}
    if id is not None:
        message["id"] = id
    return orjson.dumps(message)


INITIALIZE = rpc("initialize", 0, protocolVersion="2025-06-18")


async def next_message(transport: SseTransport) -> dict:
    return orjson.loads(await transport.next_outbound(2.0))


def opened(manager: SessionManager, endpoint_event: str):
    session = manager.get(endpoint_event.split("session_id=", 1)[1].strip())
    assert session is not None
    return session


@pytest.fixture
def manager(registry, stub) -> SessionManager:
    return SessionManager(ToolDispatcher(registry, stub), registry)


def test_format_sse_splits_lines() -> None:
    assert format_sse("message", '{"a":1}') == 'event: message\ndata: {"a":1}\n\n'
    assert format_sse("message", "a\nb") == "event: message\ndata: a\ndata: b\n\n"


# ═════════════════════════════════════════════════════════════════════════════
# Session Manager
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_closing_one_session_spares_another_in_flight(registry) -> None:
    client = GatedClient("/campaigns/2")
    manager = SessionManager(ToolDispatcher(registry, client), registry)
    a, b = manager.open(), manager.open()
    assert a.id != b.id and len(manager) == 2

    for session in (a, b):
        assert manager.post(session.id, INITIALIZE)
        assert (await next_message(session.transport))["id"] == 0

    manager.post(b.id, rpc("tools/call", 77, name="campaign_get", arguments={"campaignId": 2}))
    await asyncio.wait_for(client.entered.wait(), 2)

    await manager.release(a.id)
    assert a.id not in manager
    assert not a.transport.is_open
    assert not manager.post(a.id, rpc("ping", 1))

    client.gate.set()
    response = await next_message(b.transport)
    assert response["id"] == 77
    assert orjson.loads(response["result"]["content"][0]["text"]) == {"path": "/campaigns/2"}
    assert b.id in manager

    await manager.close_all(grace=1.0)
    assert len(manager) == 0


@pytest.mark.asyncio
async def test_responses_stay_in_their_session(manager) -> None:
    a, b = manager.open(), manager.open()
    manager.post(a.id, rpc("ping", 1))
    manager.post(b.id, rpc("ping", 2))
    assert (await next_message(a.transport))["id"] == 1
    assert (await next_message(b.transport))["id"] == 2
    await manager.close_all()


@pytest.mark.asyncio
async def test_close_all_lets_calls_in_flight_answer(registry) -> None:
    client = GatedClient("/campaigns/3")
    manager = SessionManager(ToolDispatcher(registry, client), registry)
    session = manager.open()
    manager.post(session.id, INITIALIZE)
    assert (await next_message(session.transport))["id"] == 0
    manager.post(session.id, rpc("tools/call", 8, name="campaign_get", arguments={"campaignId": 3}))
    await asyncio.wait_for(client.entered.wait(), 2)

    closing = asyncio.create_task(manager.close_all(grace=2.0))
    await asyncio.sleep(0.01)
    assert not manager.post(session.id, rpc("ping", 9))
    client.gate.set()
    await asyncio.wait_for(closing, 3)

    assert (await next_message(session.transport))["id"] == 8
    assert len(manager) == 0


@pytest.mark.asyncio
async def test_event_stream_endpoint_keepalive_and_release(manager) -> None:
    stream = event_stream(manager, keepalive_interval=0.01)
    assert len(manager) == 0

    first = await stream.__anext__()
    session = opened(manager, first)
    assert first == f"event: endpoint\ndata: /messages?session_id={session.id}\n\n"
    assert await stream.__anext__() == KEEPALIVE

    manager.post(session.id, rpc("ping", 5))
    chunk = await stream.__anext__()
    while chunk == KEEPALIVE:
        chunk = await stream.__anext__()
    assert chunk.startswith("event: message\ndata: ")
    assert orjson.loads(chunk.split("data: ", 1)[1]) == {"jsonrpc": "2.0", "id": 5, "result": {}}

    await stream.aclose()
    assert session.id not in manager
    assert not session.transport.is_open


@pytest.mark.asyncio
async def test_stream_ends_when_session_closes(manager) -> None:
    stream = event_stream(manager, keepalive_interval=5.0)
    session = opened(manager, await stream.__anext__())
    await manager.release(session.id)
    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(stream.__anext__(), 2)


# ═════════════════════════════════════════════════════════════════════════════
# HTTP Surface
# ═════════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def http(manager, registry):
    app = create_app(manager, registry, keepalive_interval=0.05)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://gateway.test") as client:
        yield client
    await manager.close_all()


@pytest.mark.asyncio
async def test_health(http) -> None:
    response = await http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "leadgate", "sessions": 0}


@pytest.mark.asyncio
async def test_info(http, registry) -> None:
    body = (await http.get("/")).json()
    assert body["name"] == "leadgate"
    assert body["tools"] == len(registry)
    assert body["endpoints"]["messages"] == "/messages"


@pytest.mark.asyncio
async def test_post_to_unknown_session_is_404(http) -> None:
    response = await http.post("/messages", params={"session_id": "missing"}, content=rpc("ping", 1))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_post_without_session_id_is_400(http) -> None:
    response = await http.post("/messages", content=rpc("ping", 1))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_post_is_accepted_and_answered_on_stream(http, manager) -> None:
    session = manager.open()
    response = await http.post("/messages", params={"session_id": session.id}, content=rpc("ping", 3))
    assert response.status_code == 202
    assert (await next_message(session.transport))["id"] == 3


@pytest.mark.asyncio
async def test_client_gone_before_first_chunk_leaves_no_session(manager, registry) -> None:
    app = create_app(manager, registry, keepalive_interval=0.05)
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/sse",
        "raw_path": b"/sse",
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "client": ("127.0.0.1", 50000),
        "server": ("gateway.test", 80),
    }

    async def receive() -> dict:
        return {"type": "http.disconnect"}

    async def send(message: dict) -> None:
        raise OSError("connection reset by peer")

    # The failed send surfaces differently across Starlette versions; only the session count matters
    with contextlib.suppress(Exception):
        await app(scope, receive, send)
    await asyncio.sleep(0.1)

    assert len(manager) == 0
