"""Pipe transport: newline-delimited JSON over stdin/stdout.

One session per process. stdout carries only protocol messages; every log
line goes to stderr. A write failure on stdout is fatal (TransportError).
"""

from __future__ import annotations

import asyncio
import contextlib
import sys
from typing import BinaryIO, Final

from leadgate.runtime.observability import get_logger

from .base import Transport, TransportError

log = get_logger("leadgate.stdio")

# Largest accepted line (one JSON-RPC message)
LINE_LIMIT: Final = 16 * 1024 * 1024


class StdioTransport(Transport):
    """Line-framed transport over an asyncio StreamReader and a binary writer.

    ``pipe`` is the read transport from ``connect_read_pipe``, closed with this one.
    """

    __slots__ = ("_reader", "_writer", "_pipe", "_stopped", "_closed")

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: BinaryIO,
        *,
        pipe: asyncio.ReadTransport | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._pipe = pipe
        self._stopped = asyncio.Event()
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    async def receive(self) -> bytes | None:
        while not self._stopped.is_set():
            read = asyncio.ensure_future(self._reader.readline())
            stop = asyncio.ensure_future(self._stopped.wait())
            done, _ = await asyncio.wait({read, stop}, return_when=asyncio.FIRST_COMPLETED)
            if read not in done:
                read.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await read
                return None
            stop.cancel()
            try:
                line = read.result()
            except ValueError as e:
                raise TransportError(f"inbound line exceeds {LINE_LIMIT} bytes") from e
            except OSError as e:
                raise TransportError(f"stdin read failed: {e}") from e
            if not line:
                return None
            if line := line.strip():
                return line
        return None

    async def deliver(self, message: str) -> None:
        if self._closed:
            raise TransportError("stdio transport is closed")
        try:
            self._writer.write(message.encode("utf-8") + b"\n")
            self._writer.flush()
        except (OSError, ValueError) as e:
            raise TransportError(f"stdout write failed: {e}") from e

    def stop_receiving(self) -> None:
        self._stopped.set()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stopped.set()
        if self._pipe is not None:
            self._pipe.close()
        with contextlib.suppress(OSError, ValueError):
            self._writer.flush()


def _has_fileno(stream: BinaryIO) -> bool:
    try:
        stream.fileno()
    except (OSError, ValueError):
        return False
    return True


async def _pump(reader: asyncio.StreamReader, stream: BinaryIO) -> None:
    """Feed a StreamReader from a blocking file (stdin redirected from a regular file)."""
    try:
        while line := await asyncio.to_thread(stream.readline):
            reader.feed_data(line)
    finally:
        reader.feed_eof()


async def open_stdio(
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> tuple[StdioTransport, asyncio.Task[None] | None]:
    """Wire the process's stdin/stdout into a StdioTransport.

    Returns:
        The transport and, when stdin is not a pipe, the task pumping it
    """
    stdin = stdin or sys.stdin.buffer
    stdout = stdout or sys.stdout.buffer
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=LINE_LIMIT)
    if _has_fileno(stdin):
        try:
            pipe, _ = await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stdin)
            return StdioTransport(reader, stdout, pipe=pipe), None
        except (ValueError, OSError):
            pass
    log.debug("stdin is not a pipe, reading on a worker thread")
    pump = asyncio.create_task(_pump(reader, stdin))
    return StdioTransport(reader, stdout), pump
