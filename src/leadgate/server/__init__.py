"""Protocol server: JSON-RPC sessions over stdio or SSE."""

from .runner import build_sse_app, serve_sse, serve_stdio
from .session import (
    LATEST_PROTOCOL_VERSION,
    SERVER_NAME,
    SUPPORTED_PROTOCOL_VERSIONS,
    Session,
    SessionState,
)

__all__ = [
    "LATEST_PROTOCOL_VERSION",
    "SERVER_NAME",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "Session",
    "SessionState",
    "build_sse_app",
    "serve_sse",
    "serve_stdio",
]
