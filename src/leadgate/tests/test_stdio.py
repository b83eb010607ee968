"""Tests for the newline-delimited stdio transport."""

from __future__ import annotations

import asyncio
import io

import orjson
import pytest

from leadgate.dispatch import ToolDispatcher
from leadgate.server import Session, SessionState
from leadgate.server.runner import shutdown_handler
from leadgate.server.transports import StdioTransport, TransportError, open_stdio


def reader_with(*lines: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line)
    reader.feed_eof()
    return reader


class BrokenPipe(io.BytesIO):
    def write(self, data) -> int:
        raise BrokenPipeError("stdout closed")


class GatedClient:
    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def invoke(self, method, path, **_):
        self.entered.set()
        await self.gate.wait()
        return {"path": path}


class ReadPipe:
    """Stands in for the read transport returned by connect_read_pipe."""

    def __init__(self) -> None:
        self.closes = 0

    def close(self) -> None:
        self.closes += 1


@pytest.mark.asyncio
async def test_answers_line_by_line_and_ends_on_eof(registry, stub) -> None:
    stub.respond = lambda c: {"id": 42, "name": "Q1"}
    out = io.BytesIO()
    reader = reader_with(
        b'{"jsonrpc":"2.0","id":1,"method":"initialize","params":{"protocolVersion":"2025-03-26"}}\n',
        b"\n",
        b'{"jsonrpc":"2.0","method":"notifications/initialized"}\n',
        b'{"jsonrpc":"2.0","id":2,"method":"tools/call","params":{"name":"campaign_get","arguments":{"campaignId":42}}}\n',
    )
    session = Session(StdioTransport(reader, out), ToolDispatcher(registry, stub), registry)

    await asyncio.wait_for(session.run(), 2)

    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    first, second = (orjson.loads(line) for line in lines)
    assert first["id"] == 1 and first["result"]["protocolVersion"] == "2025-03-26"
    assert second["id"] == 2
    assert orjson.loads(second["result"]["content"][0]["text"]) == {"id": 42, "name": "Q1"}
    assert not session.transport.is_open


@pytest.mark.asyncio
async def test_close_wakes_pending_receive() -> None:
    reader = asyncio.StreamReader()
    transport = StdioTransport(reader, io.BytesIO())
    pending = asyncio.create_task(transport.receive())
    await asyncio.sleep(0)
    await transport.close()
    assert await asyncio.wait_for(pending, 1) is None


@pytest.mark.asyncio
async def test_write_failure_is_fatal(registry, stub) -> None:
    reader = reader_with(b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
    transport = StdioTransport(reader, BrokenPipe())
    session = Session(transport, ToolDispatcher(registry, stub), registry)

    with pytest.raises(TransportError):
        await session.run()
    assert not transport.is_open


@pytest.mark.asyncio
async def test_shutdown_answers_the_call_in_flight(registry) -> None:
    client = GatedClient()
    out = io.BytesIO()
    reader = asyncio.StreamReader()
    reader.feed_data(b'{"jsonrpc":"2.0","id":1,"method":"initialize","params":{}}\n')
    reader.feed_data(
        b'{"jsonrpc":"2.0","id":2,"method":"tools/call","params":{"name":"campaign_get","arguments":{"campaignId":9}}}\n',
    )
    session = Session(StdioTransport(reader, out), ToolDispatcher(registry, client), registry)
    task = asyncio.create_task(session.run())

    await asyncio.wait_for(client.entered.wait(), 2)
    shutdown_handler(session)()
    reader.feed_data(b'{"jsonrpc":"2.0","id":3,"method":"ping"}\n')
    client.gate.set()
    await asyncio.wait_for(task, 2)

    assert [orjson.loads(line)["id"] for line in out.getvalue().splitlines()] == [1, 2]
    assert not session.transport.is_open


@pytest.mark.asyncio
async def test_shutdown_handler_spawns_no_task(registry, stub) -> None:
    transport = StdioTransport(asyncio.StreamReader(), io.BytesIO())
    session = Session(transport, ToolDispatcher(registry, stub), registry)
    before = asyncio.all_tasks()

    shutdown_handler(session)()

    assert asyncio.all_tasks() == before
    assert session.state is SessionState.CLOSING
    assert transport.is_open


@pytest.mark.asyncio
async def test_shutdown_wakes_pending_receive_and_keeps_writes() -> None:
    out = io.BytesIO()
    transport = StdioTransport(asyncio.StreamReader(), out)
    pending = asyncio.create_task(transport.receive())
    await asyncio.sleep(0)
    transport.stop_receiving()
    assert await asyncio.wait_for(pending, 1) is None
    assert transport.is_open
    await transport.deliver("{}")
    assert out.getvalue() == b"{}\n"


@pytest.mark.asyncio
async def test_close_releases_the_read_pipe_once() -> None:
    pipe = ReadPipe()
    transport = StdioTransport(reader_with(), io.BytesIO(), pipe=pipe)
    await transport.close()
    await transport.close()
    assert pipe.closes == 1


@pytest.mark.asyncio
async def test_deliver_after_close_raises() -> None:
    transport = StdioTransport(reader_with(), io.BytesIO())
    await transport.close()
    with pytest.raises(TransportError):
        await transport.deliver("{}")


@pytest.mark.asyncio
async def test_open_stdio_falls_back_for_regular_files() -> None:
    stdin = io.BytesIO(b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
    transport, pump = await open_stdio(stdin, io.BytesIO())
    assert pump is not None
    assert await asyncio.wait_for(transport.receive(), 2) == b'{"jsonrpc":"2.0","id":1,"method":"ping"}'
    assert await asyncio.wait_for(transport.receive(), 2) is None
    await pump
