"""Unified error handling for leadgate.

- ErrorCode / RpcErrorCode: tool-level and protocol-level failure codes
- GatewayError / GatewayException: structured errors and their raisable forms
- Result/Ok/Err: attempt outcomes used by the retry executor
"""

from .errors import (
    ErrorCode,
    GatewayError,
    GatewayException,
    InvalidArguments,
    ProtocolFault,
    RpcErrorCode,
    UnknownTool,
    UpstreamError,
    UpstreamTerminal,
    UpstreamTransient,
    format_validation_error,
    upstream_error,
)
from .result import Err, Ok, Result

__all__ = [
    # Codes
    "ErrorCode", "RpcErrorCode",
    # Errors and exceptions
    "GatewayError", "GatewayException", "UnknownTool", "InvalidArguments",
    "UpstreamError", "UpstreamTransient", "UpstreamTerminal", "ProtocolFault", "upstream_error", "format_validation_error",
    # Result
    "Result", "Ok", "Err",
]
