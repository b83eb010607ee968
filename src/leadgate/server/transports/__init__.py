"""Transport bindings: stdio pipe and SSE push-stream."""

from .base import Transport, TransportError
from .sse import SessionManager, SseTransport, create_app, event_stream, format_sse
from .stdio import StdioTransport, open_stdio

__all__ = [
    "SessionManager",
    "SseTransport",
    "StdioTransport",
    "Transport",
    "TransportError",
    "create_app",
    "event_stream",
    "format_sse",
    "open_stdio",
]
