"""Core data model: tool descriptors, calls, and result envelopes."""

from .types import (
    ContentBlock,
    InputSchema,
    JsonDict,
    JsonPrimitive,
    JsonValue,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
)

__all__ = [
    "ContentBlock",
    "InputSchema",
    "JsonDict",
    "JsonPrimitive",
    "JsonValue",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDescriptor",
]
