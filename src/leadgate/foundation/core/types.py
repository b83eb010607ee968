"""Wire-level data model shared by every layer of the gateway.

- ToolDescriptor / InputSchema: what a tool is called and what it accepts
- ToolCallRequest: one incoming call, owned by the session handling it
- ContentBlock / ToolCallResult: the envelope every call resolves to

Descriptors are frozen and shared read-only across sessions. Results are built
per call and serialized with camelCase aliases (``inputSchema``, ``isError``).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Self, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# JSON aliases - Any in recursive slots keeps pydantic out of schema recursion
JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Tool Descriptors
# ═══════════════════════════════════════════════════════════════════════════════


class InputSchema(BaseModel):
    """JSON-Schema-like description of a tool's argument object.

    Attributes:
        type: Always "object"
        properties: Property name -> {type, description, enum?, items?, default?}
        required: Names that must be present (and non-null) on every call
    """

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")

    type: Literal["object"] = "object"
    properties: dict[str, JsonDict] = Field(default_factory=dict)
    required: tuple[str, ...] = ()

    @field_validator("required")
    @classmethod
    def _required_are_declared(cls, v: tuple[str, ...], info: ValidationInfo) -> tuple[str, ...]:
        props = info.data.get("properties", {})
        if undeclared := [name for name in v if name not in props]:
            raise ValueError(f"required names not declared as properties: {undeclared}")
        return v

    def to_wire(self) -> JsonDict:
        wire: JsonDict = {"type": self.type, "properties": self.properties}
        if self.required:
            wire["required"] = list(self.required)
        return wire


class ToolDescriptor(BaseModel):
    """Immutable catalog entry advertised to clients via ``tools/list``.

    Example:
        >>> ToolDescriptor(
        ...     name="campaign_get",
        ...     description="Get detailed information about a specific campaign",
        ...     input_schema=InputSchema(
        ...         properties={"campaignId": {"type": "number", "description": "The campaign ID"}},
        ...         required=("campaignId",),
        ...     ),
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True, revalidate_instances="never")

    name: Annotated[str, Field(pattern=r"^[a-z][a-z0-9_]*$")]
    description: Annotated[str, Field(min_length=10)]
    input_schema: InputSchema = Field(default_factory=InputSchema, alias="inputSchema")

    def to_wire(self) -> JsonDict:
        """Serialize for the ``tools/list`` response."""
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema.to_wire()}


# ═══════════════════════════════════════════════════════════════════════════════
# Calls and Results
# ═══════════════════════════════════════════════════════════════════════════════


class ToolCallRequest(BaseModel):
    """A single ``tools/call`` invocation. The wire name of ``tool_name`` is ``name``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tool_name: Annotated[str, Field(alias="name", min_length=1)]
    arguments: JsonDict = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _none_is_empty(cls, v: object) -> object:
        return {} if v is None else v


class ContentBlock(BaseModel):
    """Minimal unit of a tool result."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["text"] = "text"
    text: str


class ToolCallResult(BaseModel):
    """Outcome of exactly one tool call: success content or an error message, never both."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    content: tuple[ContentBlock, ...]
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str, *, is_error: bool = False) -> Self:
        return cls(content=(ContentBlock(text=text),), is_error=is_error)

    @property
    def first_text(self) -> str:
        return self.content[0].text if self.content else ""

    def to_wire(self) -> JsonDict:
        return {"content": [block.model_dump() for block in self.content], "isError": self.is_error}
