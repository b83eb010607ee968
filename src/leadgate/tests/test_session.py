"""Tests for the session state machine and JSON-RPC handling."""

from __future__ import annotations

import asyncio

import orjson
import pytest

from leadgate.dispatch import ToolDispatcher
from leadgate.server import LATEST_PROTOCOL_VERSION, Session, SessionState
from leadgate.server.protocol import parse_message
from leadgate.server.transports import Transport


class MemoryTransport(Transport):
    """In-memory transport: inbound queue, decoded outbound list, close counter."""

    def __init__(self, *messages: object) -> None:
        self.inbound: asyncio.Queue[bytes | None] = asyncio.Queue()
        self.sent: list[dict] = []
        self.closes = 0
        self.stopped = False
        self._open = True
        self.feed(*messages)

    def feed(self, *messages: object) -> None:
        for message in messages:
            self.inbound.put_nowait(message if isinstance(message, bytes) else orjson.dumps(message))

    def eof(self) -> None:
        self.inbound.put_nowait(None)

    @property
    def is_open(self) -> bool:
        return self._open

    async def receive(self) -> bytes | None:
        if self.stopped:
            return None
        return await self.inbound.get()

    async def deliver(self, message: str) -> None:
        self.sent.append(orjson.loads(message))

    def stop_receiving(self) -> None:
        if not self.stopped:
            self.stopped = True
            self.inbound.put_nowait(None)

    async def close(self) -> None:
        self.closes += 1
        self._open = False
        self.stop_receiving()


class GatedClient:
    """Client whose calls block until ``gate`` is set."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def invoke(self, method, path, **_):
        self.entered.set()
        await self.gate.wait()
        return {"path": path}


def rpc(method: str, id: int | None = None, **params) -> dict:
    message = {"jsonrpc": "2.0", "method": method, "params": params}
    if id is not None:
        message["id"] = id
    return message


INITIALIZE = rpc("initialize", 0, protocolVersion="2024-11-05", clientInfo={"name": "test"}, capabilities={})


async def serve(transport: MemoryTransport, registry, client) -> Session:
    session = Session(transport, ToolDispatcher(registry, client), registry)
    transport.eof()
    await asyncio.wait_for(session.run(), 2)
    return session


# ═════════════════════════════════════════════════════════════════════════════
# Protocol Handling
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_initialize_list_and_call(registry, stub) -> None:
    stub.respond = lambda c: {"id": 42, "name": "Q1"}
    transport = MemoryTransport(
        INITIALIZE,
        rpc("notifications/initialized"),
        rpc("tools/list", 1),
        rpc("tools/call", 2, name="campaign_get", arguments={"campaignId": 42}),
    )
    await serve(transport, registry, stub)

    init, listing, called = transport.sent
    assert init["id"] == 0
    assert init["result"]["protocolVersion"] == "2024-11-05"
    assert init["result"]["serverInfo"]["name"] == "leadgate"
    assert init["result"]["capabilities"] == {"tools": {"listChanged": False}}
    assert [t["name"] for t in listing["result"]["tools"]] == list(registry.names())
    assert called["id"] == 2
    assert called["result"]["isError"] is False
    assert orjson.loads(called["result"]["content"][0]["text"]) == {"id": 42, "name": "Q1"}


@pytest.mark.asyncio
async def test_unsupported_version_gets_latest(registry, stub) -> None:
    transport = MemoryTransport(rpc("initialize", 1, protocolVersion="1999-01-01"))
    await serve(transport, registry, stub)
    assert transport.sent[0]["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION


@pytest.mark.asyncio
async def test_rpc_error_codes(registry, stub) -> None:
    transport = MemoryTransport(
        rpc("tools/list", 1),
        b"{not json",
        INITIALIZE,
        rpc("resources/list", 2),
        {"jsonrpc": "1.0", "id": 3, "method": "ping"},
        rpc("tools/call", 4, arguments={}),
        [1, 2, 3],
    )
    await serve(transport, registry, stub)

    errors = [(m["id"], m["error"]["code"]) for m in transport.sent if "error" in m]
    assert errors == [(1, -32600), (None, -32700), (2, -32601), (3, -32600), (4, -32602), (None, -32600)]


@pytest.mark.asyncio
async def test_ping_works_before_initialize(registry, stub) -> None:
    transport = MemoryTransport(rpc("ping", 9))
    session = await serve(transport, registry, stub)
    assert transport.sent == [{"jsonrpc": "2.0", "id": 9, "result": {}}]
    assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_notifications_get_no_response(registry, stub) -> None:
    transport = MemoryTransport(
        INITIALIZE,
        rpc("notifications/initialized"),
        rpc("notifications/cancelled", requestId=5),
        rpc("tools/call", name="campaign_get", arguments={"campaignId": 1}),
        rpc("no/such/method"),
    )
    await serve(transport, registry, stub)
    assert [m["id"] for m in transport.sent] == [0]
    assert len(stub.calls) == 1


@pytest.mark.asyncio
async def test_tool_failure_is_a_result_not_an_rpc_error(registry, stub) -> None:
    transport = MemoryTransport(INITIALIZE, rpc("tools/call", 1, name="nope", arguments={}))
    await serve(transport, registry, stub)
    result = transport.sent[1]["result"]
    assert result["isError"] is True
    assert "Error [UNKNOWN_TOOL]" in result["content"][0]["text"]


@pytest.mark.asyncio
async def test_peer_responses_are_ignored(registry, stub) -> None:
    transport = MemoryTransport({"jsonrpc": "2.0", "id": 1, "result": {}})
    await serve(transport, registry, stub)
    assert transport.sent == []


def test_parse_rejects_bool_id() -> None:
    from leadgate.foundation.errors import ProtocolFault

    with pytest.raises(ProtocolFault):
        parse_message(b'{"jsonrpc": "2.0", "id": true, "method": "ping"}')


# ═════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_transport_released_exactly_once(registry, stub) -> None:
    closed: list[Session] = []
    transport = MemoryTransport(INITIALIZE)
    session = Session(transport, ToolDispatcher(registry, stub), registry, on_close=closed.append)
    transport.eof()

    await session.run()
    await session.close()
    await session.close()

    assert transport.closes == 1
    assert closed == [session]
    assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_result_discarded_when_transport_closes_mid_call(registry) -> None:
    client = GatedClient()
    transport = MemoryTransport(INITIALIZE, rpc("tools/call", 1, name="campaign_get", arguments={"campaignId": 7}))
    session = Session(transport, ToolDispatcher(registry, client), registry)
    task = asyncio.create_task(session.run())

    await asyncio.wait_for(client.entered.wait(), 2)
    await session.close()
    assert session.state is SessionState.CLOSED
    client.gate.set()
    await asyncio.wait_for(task, 2)

    assert [m["id"] for m in transport.sent] == [0]
    assert transport.closes == 1


@pytest.mark.asyncio
async def test_shutdown_lets_the_call_in_flight_answer(registry) -> None:
    client = GatedClient()
    transport = MemoryTransport(INITIALIZE, rpc("tools/call", 1, name="campaign_get", arguments={"campaignId": 7}))
    session = Session(transport, ToolDispatcher(registry, client), registry)
    task = asyncio.create_task(session.run())

    await asyncio.wait_for(client.entered.wait(), 2)
    session.shutdown()
    assert session.state is SessionState.CLOSING
    transport.feed(rpc("ping", 2))
    client.gate.set()
    await asyncio.wait_for(task, 2)

    assert [m["id"] for m in transport.sent] == [0, 1]
    assert orjson.loads(transport.sent[1]["result"]["content"][0]["text"]) == {"path": "/campaigns/7"}
    assert transport.closes == 1
    assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_shutdown_wakes_an_idle_session(registry, stub) -> None:
    transport = MemoryTransport(INITIALIZE)
    session = Session(transport, ToolDispatcher(registry, stub), registry)
    task = asyncio.create_task(session.run())
    await asyncio.sleep(0.01)

    session.shutdown()
    session.shutdown()
    await asyncio.wait_for(task, 2)

    assert [m["id"] for m in transport.sent] == [0]
    assert transport.closes == 1


@pytest.mark.asyncio
async def test_requests_after_close_are_not_served(registry, stub) -> None:
    transport = MemoryTransport(INITIALIZE)
    session = Session(transport, ToolDispatcher(registry, stub), registry)
    await session.close()
    transport.feed(rpc("tools/list", 1))
    await asyncio.wait_for(session.run(), 2)
    assert transport.sent == []
    assert transport.closes == 1
