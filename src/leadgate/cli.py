"""Command-line entry point.

    leadgate serve                      # stdio, one session per process
    leadgate serve --transport sse      # HTTP + Server-Sent Events
    leadgate tools                      # print the tool catalog, no credential needed
"""

from __future__ import annotations

import asyncio
import logging
import sys
from enum import StrEnum

import orjson
import typer
from pydantic import ValidationError

from leadgate import __version__
from leadgate.foundation.config import GatewaySettings
from leadgate.foundation.errors import format_validation_error
from leadgate.foundation.registry import default_registry
from leadgate.runtime.observability import configure_logging, get_logger

app = typer.Typer(add_completion=False, help="leadgate: SmartLead API as MCP tools over stdio or SSE.")
log = get_logger("leadgate.cli")


class TransportKind(StrEnum):
    STDIO = "stdio"
    SSE = "sse"


def _load_settings() -> GatewaySettings:
    try:
        return GatewaySettings()
    except ValidationError as e:
        log.error("invalid configuration", reason=format_validation_error(e))
        print(f"leadgate: configuration error: {format_validation_error(e)}", file=sys.stderr)
        print("leadgate: set SMARTLEAD_API_KEY in the environment or a .env file", file=sys.stderr)
        raise typer.Exit(code=1) from e


def _quiet_http_libraries() -> None:
    # httpx logs every request at INFO through stdlib logging, query string included
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


@app.command()
def serve(
    transport: TransportKind = typer.Option(TransportKind.STDIO, "--transport", "-t", help="stdio or sse."),
    host: str = typer.Option(None, "--host", help="Bind address for sse (default SMARTLEAD_SERVER_HOST)."),
    port: int = typer.Option(None, "--port", help="Bind port for sse (default SMARTLEAD_SERVER_PORT)."),
) -> None:
    """Run the gateway."""
    from leadgate.server import serve_sse, serve_stdio

    settings = _load_settings()
    configure_logging(settings.log.format, settings.log.level)
    _quiet_http_libraries()
    log.info("starting", version=__version__, transport=transport.value)

    if transport is TransportKind.SSE:
        code = asyncio.run(serve_sse(settings, host=host, port=port))
    else:
        code = asyncio.run(serve_stdio(settings))
    raise typer.Exit(code=code)


@app.command()
def tools(
    names_only: bool = typer.Option(False, "--names", help="Print one tool name per line."),
) -> None:
    """Print the tool catalog as JSON."""
    registry = default_registry()
    if names_only:
        typer.echo("\n".join(registry.names()))
        return
    catalog = [d.to_wire() for d in registry.list_tools()]
    typer.echo(orjson.dumps(catalog, option=orjson.OPT_INDENT_2).decode())


@app.command()
def version() -> None:
    """Print the version."""
    typer.echo(__version__)
