"""Standardized error taxonomy for the gateway.

Every failure the gateway can report maps to one ErrorCode. GatewayError is the
structured, serializable form; GatewayException carries it through ``raise``.
Only the dispatcher turns these into caller-visible text, and only the session
turns ProtocolFault into a JSON-RPC error.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator

# Upstream bodies are echoed for diagnosis; cap them so one bad page can't flood a result
_BODY_PREVIEW_LIMIT = 2000


class ErrorCode(StrEnum):
    """Machine-readable failure classes.

    Used for retry decisions and for the prefix of error content blocks.
    """
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    UPSTREAM_TRANSIENT = "UPSTREAM_TRANSIENT"
    UPSTREAM_TERMINAL = "UPSTREAM_TERMINAL"
    PROTOCOL_FAULT = "PROTOCOL_FAULT"
    INTERNAL = "INTERNAL"


class RpcErrorCode(IntEnum):
    """JSON-RPC 2.0 error codes used at the session layer."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({ErrorCode.UPSTREAM_TRANSIENT})


class GatewayError(BaseModel):
    """Structured failure report.

    Attributes:
        code: Failure class
        message: Human-readable summary
        tool_name: Tool being called, when there is one
        status_code: Upstream HTTP status, when the upstream answered
        status_text: Upstream reason phrase
        body: Raw upstream response body (truncated), for diagnosis
        attempts: Number of upstream attempts made before giving up
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
        json_schema_extra={
            "title": "Gateway Error",
            "examples": [{
                "code": "UPSTREAM_TERMINAL",
                "message": "Campaign not found",
                "tool_name": "campaign_get",
                "status_code": 404,
                "status_text": "Not Found",
            }],
        },
    )

    code: ErrorCode = ErrorCode.INTERNAL
    message: Annotated[str, Field(min_length=1)]
    tool_name: str | None = None
    status_code: int | None = None
    status_text: str | None = None
    body: str | None = Field(default=None, repr=False)
    attempts: int | None = None

    @field_validator("message", mode="before")
    @classmethod
    def _ensure_message(cls, v: str | Exception) -> str:
        """Accept Exception objects and fall back to the type name for empty messages."""
        if isinstance(v, Exception):
            return str(v) or type(v).__name__
        return v

    @field_validator("body", mode="before")
    @classmethod
    def _truncate_body(cls, v: str | bytes | None) -> str | None:
        if v is None:
            return None
        text = v.decode("utf-8", errors="replace") if isinstance(v, bytes) else v
        return text if len(text) <= _BODY_PREVIEW_LIMIT else f"{text[:_BODY_PREVIEW_LIMIT]}... [truncated]"

    @computed_field
    @property
    def retryable(self) -> bool:
        """Whether another attempt could plausibly succeed."""
        return self.code in _RETRYABLE_CODES

    def with_tool(self, tool_name: str) -> GatewayError:
        return self.model_copy(update={"tool_name": tool_name})

    def render(self) -> str:
        """Format for the caller. Always starts with ``Error [<CODE>]``."""
        where = f" {self.tool_name}" if self.tool_name else ""
        parts = [f"Error [{self.code}]{where}: {self.message}"]
        if self.status_code is not None:
            status = f"{self.status_code} {self.status_text}".rstrip()
            parts.append(f"\nUpstream status: {status}")
        if self.attempts and self.attempts > 1:
            parts.append(f"\nAttempts: {self.attempts}")
        if self.body:
            parts.append(f"\nUpstream body: {self.body}")
        return "".join(parts)

    __str__ = render


# ═══════════════════════════════════════════════════════════════════════════════
# Exceptions
# ═══════════════════════════════════════════════════════════════════════════════


class GatewayException(Exception):
    """Exception wrapping a GatewayError for raising."""

    __slots__ = ("error",)

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, error: GatewayError | str) -> None:
        if isinstance(error, str):
            error = GatewayError(code=self.code, message=error)
        self.error = error
        super().__init__(error.message)

    @classmethod
    def create(cls, message: str, *, tool_name: str | None = None, **fields: object) -> Self:
        return cls(GatewayError(code=cls.code, message=message, tool_name=tool_name, **fields))


class UnknownTool(GatewayException):
    """Requested tool is not in the registry. Client mistake, never retried."""

    code = ErrorCode.UNKNOWN_TOOL


class InvalidArguments(GatewayException):
    """A required argument is missing or unusable. Client mistake, never retried."""

    code = ErrorCode.INVALID_ARGUMENTS


class UpstreamError(GatewayException):
    """The upstream API failed. Carries status, reason and body when available."""

    code = ErrorCode.UPSTREAM_TERMINAL

    @property
    def status_code(self) -> int | None:
        return self.error.status_code


class UpstreamTransient(UpstreamError):
    """Network failure or rate limiting that outlived the retry policy."""

    code = ErrorCode.UPSTREAM_TRANSIENT


class UpstreamTerminal(UpstreamError):
    """Any other upstream failure. Never retried."""

    code = ErrorCode.UPSTREAM_TERMINAL


class ProtocolFault(GatewayException):
    """Malformed inbound request, rejected before it reaches the dispatcher."""

    __slots__ = ("rpc_code", "request_id")

    code = ErrorCode.PROTOCOL_FAULT

    def __init__(
        self,
        message: str,
        rpc_code: RpcErrorCode = RpcErrorCode.INVALID_REQUEST,
        request_id: int | str | None = None,
    ) -> None:
        super().__init__(GatewayError(code=ErrorCode.PROTOCOL_FAULT, message=message))
        self.rpc_code = rpc_code
        self.request_id = request_id


def upstream_error(error: GatewayError) -> UpstreamError:
    """Raise-ready exception matching the error's retry class."""
    return UpstreamTransient(error) if error.retryable else UpstreamTerminal(error)


def format_validation_error(exc: ValidationError) -> str:
    """Compact one-line summary of a pydantic ValidationError: ``'field': message; ...``."""
    parts = []
    for err in exc.errors(include_url=False):
        where = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"'{where}': {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or "invalid arguments"
