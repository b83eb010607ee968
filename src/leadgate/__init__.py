"""leadgate - tool-call gateway exposing the SmartLead REST API as MCP tools.

Layers, top to bottom: transports (stdio, SSE) -> session -> dispatcher ->
backend client -> upstream API.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
