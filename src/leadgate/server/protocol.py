"""JSON-RPC 2.0 envelope parsing and message builders.

Malformed input never gets past ``parse_message``: it raises ProtocolFault
carrying the JSON-RPC error code and whatever request id could be recovered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final

import orjson

from leadgate.foundation.core import JsonDict, ToolCallRequest
from leadgate.foundation.errors import ProtocolFault, RpcErrorCode

JSONRPC_VERSION: Final = "2.0"

RequestId = int | str | None


@dataclass(frozen=True, slots=True)
class RpcRequest:
    """One parsed inbound request or notification."""

    method: str
    id: RequestId = None
    params: JsonDict = field(default_factory=dict)
    is_notification: bool = False


def _request_id(payload: JsonDict) -> RequestId:
    rid = payload.get("id")
    # bool is an int subclass but never a valid id
    return rid if isinstance(rid, (int, str)) and not isinstance(rid, bool) else None


def parse_message(raw: str | bytes) -> RpcRequest | None:
    """Parse one inbound message.

    Returns:
        The request, or None for messages that need no handling (responses from the peer)

    Raises:
        ProtocolFault: -32700 for invalid JSON, -32600 for a malformed envelope
    """
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError:
        raise ProtocolFault("Parse error: message is not valid JSON", RpcErrorCode.PARSE_ERROR) from None

    if not isinstance(payload, dict):
        raise ProtocolFault("Invalid Request: expected a JSON object", RpcErrorCode.INVALID_REQUEST)

    request_id = _request_id(payload)
    if payload.get("jsonrpc") != JSONRPC_VERSION:
        raise ProtocolFault("Invalid Request: jsonrpc must be \"2.0\"", RpcErrorCode.INVALID_REQUEST, request_id)

    if "method" not in payload and ("result" in payload or "error" in payload):
        return None

    method = payload.get("method")
    if not isinstance(method, str) or not method:
        raise ProtocolFault("Invalid Request: missing method", RpcErrorCode.INVALID_REQUEST, request_id)

    params = payload.get("params")
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        raise ProtocolFault("Invalid Request: params must be an object", RpcErrorCode.INVALID_REQUEST, request_id)

    if "id" in payload and request_id is None and payload["id"] is not None:
        raise ProtocolFault("Invalid Request: id must be a string or integer", RpcErrorCode.INVALID_REQUEST)

    return RpcRequest(method=method, id=request_id, params=params, is_notification="id" not in payload)


def parse_tool_call(params: JsonDict, request_id: RequestId = None) -> ToolCallRequest:
    """Validate ``tools/call`` params. Shape errors are -32602."""
    name = params.get("name")
    if not isinstance(name, str) or not name:
        raise ProtocolFault("Invalid params: tools/call requires a string name", RpcErrorCode.INVALID_PARAMS, request_id)
    arguments = params.get("arguments")
    if arguments is not None and not isinstance(arguments, dict):
        raise ProtocolFault("Invalid params: arguments must be an object", RpcErrorCode.INVALID_PARAMS, request_id)
    return ToolCallRequest(name=name, arguments=arguments)


def result_message(request_id: RequestId, result: Any) -> JsonDict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_message(request_id: RequestId, code: int, message: str, data: Any = None) -> JsonDict:
    error: JsonDict = {"code": int(code), "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def encode(message: JsonDict) -> str:
    """Compact single-line JSON, safe for line framing."""
    return orjson.dumps(message).decode()
