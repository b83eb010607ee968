"""Process-level wiring: build the gateway from settings and serve a transport.

Both entry points construct the object graph explicitly (registry, client,
dispatcher) from one GatewaySettings instance; nothing is a module global.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from typing import TYPE_CHECKING, Callable

import uvicorn

from leadgate.client import BackendClient
from leadgate.dispatch import ToolDispatcher
from leadgate.foundation.registry import SchemaRegistry, default_registry
from leadgate.runtime.observability import get_logger

from .session import Session
from .transports.base import TransportError
from .transports.sse import SessionManager, create_app
from .transports.stdio import open_stdio

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from leadgate.foundation.config import GatewaySettings

log = get_logger("leadgate.server")

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def shutdown_handler(session: Session) -> Callable[[], None]:
    """Signal callback: stop reading and let the call in flight answer. Runs synchronously, no task."""

    def request_shutdown() -> None:
        log.info("shutdown requested", session_id=session.id)
        session.shutdown()

    return request_shutdown


async def serve_stdio(settings: GatewaySettings, *, registry: SchemaRegistry | None = None) -> int:
    """Serve one session over stdin/stdout until EOF or a shutdown signal.

    Returns:
        Process exit status: 0 on clean EOF or shutdown, 1 on transport failure
    """
    registry = registry or default_registry()
    async with BackendClient(settings) as client:
        dispatcher = ToolDispatcher(registry, client)
        transport, pump = await open_stdio()
        session = Session(transport, dispatcher, registry)
        loop = asyncio.get_running_loop()

        request_shutdown = shutdown_handler(session)
        for sig in _SHUTDOWN_SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, request_shutdown)

        log.info("serving on stdio", tools=len(registry), base_url=settings.base_url)
        try:
            await session.run()
        except TransportError as e:
            log.error("stdio transport failed", error=str(e))
            print(f"leadgate: fatal transport error: {e}", file=sys.stderr, flush=True)
            return 1
        finally:
            for sig in _SHUTDOWN_SIGNALS:
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)
            if pump is not None:
                pump.cancel()
    return 0


def build_sse_app(settings: GatewaySettings, *, registry: SchemaRegistry | None = None) -> Starlette:
    """Starlette app with its own BackendClient, closed on lifespan shutdown."""
    registry = registry or default_registry()
    client = BackendClient(settings)
    manager = SessionManager(ToolDispatcher(registry, client), registry)
    return create_app(manager, registry, client=client, keepalive_interval=settings.server.keepalive_interval)


async def serve_sse(settings: GatewaySettings, *, host: str | None = None, port: int | None = None) -> int:
    """Serve the SSE endpoints with uvicorn until shutdown."""
    app = build_sse_app(settings)
    config = uvicorn.Config(
        app,
        host=host or settings.server.host,
        port=port or settings.server.port,
        log_level=settings.log.level.lower(),
        lifespan="on",
    )
    log.info("serving on sse", host=config.host, port=config.port)
    await uvicorn.Server(config).serve()
    return 0
