"""Building blocks for the tool catalog.

A tool is a ToolSpec: a name, a description, a pydantic params model and an
async handler that maps validated params onto Backend Client calls. The wire
descriptor is derived from the params model, so the advertised schema and the
validation rules cannot drift apart.

Example:
    >>> class GetParams(ToolParams):
    ...     campaign_id: Identifier = Field(alias="campaignId", description="The campaign ID")
    >>>
    >>> @tool("campaign_get", "Get detailed information about a specific campaign", GetParams)
    ... async def campaign_get(client: BackendClient, p: GetParams) -> RawResult:
    ...     return await client.invoke("GET", f"/campaigns/{segment(p.campaign_id)}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any, Callable, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, WithJsonSchema

from leadgate.client import EMPTY
from leadgate.foundation.core import InputSchema, JsonDict, ToolDescriptor

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from leadgate.client import BackendClient, RawResult


def _non_blank(v: int | str) -> int | str:
    if isinstance(v, str) and not v:
        raise ValueError("must not be blank")
    return v


# Upstream ids are numeric but clients send them as numbers or strings
Identifier = Annotated[int | str, AfterValidator(_non_blank), WithJsonSchema({"type": "number"})]
OptionalIdentifier = Annotated[int | str | None, WithJsonSchema({"type": "number"})]
OptionalText = Annotated[str | None, WithJsonSchema({"type": "string"})]
OptionalObject = Annotated[dict[str, Any] | None, WithJsonSchema({"type": "object"})]


# ═══════════════════════════════════════════════════════════════════════════════
# Params Models
# ═══════════════════════════════════════════════════════════════════════════════


class ToolParams(BaseModel):
    """Base for per-tool argument models. Wire names are camelCase aliases; unknown keys are ignored."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class PassthroughParams(ToolParams):
    """Params for tools that forward undeclared arguments verbatim to the upstream API."""

    model_config = ConfigDict(extra="allow")

    def extras(self) -> JsonDict:
        """Undeclared, non-null arguments. Declared fields never appear here under any spelling."""
        reserved = {name for name in type(self).model_fields}
        reserved |= {f.alias for f in type(self).model_fields.values() if f.alias}
        return {k: v for k, v in (self.model_extra or {}).items() if k not in reserved and v is not None}


class NoParams(ToolParams):
    """Tools that take no arguments."""


class PageParams(ToolParams):
    offset: Annotated[int, Field(ge=0, description="Number of records to skip")] = 0
    limit: Annotated[int, Field(ge=1, description="Number of records to return")] = 100


class CampaignParams(ToolParams):
    campaign_id: Identifier = Field(alias="campaignId", description="The campaign ID")


class CampaignPageParams(PageParams, CampaignParams):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Tool Specs
# ═══════════════════════════════════════════════════════════════════════════════


P = TypeVar("P", bound=ToolParams)

Handler = Callable[["BackendClient", P], "Awaitable[RawResult]"]


def schema_for(params: type[ToolParams]) -> InputSchema:
    """Derive the wire input schema from a params model (aliases, no titles)."""
    schema = params.model_json_schema(by_alias=True)
    properties = {
        name: {k: v for k, v in prop.items() if k != "title"}
        for name, prop in schema.get("properties", {}).items()
    }
    return InputSchema(properties=properties, required=tuple(schema.get("required", ())))


@dataclass(frozen=True, slots=True)
class ToolSpec(Generic[P]):
    """One catalog entry: descriptor + params model + handler."""

    name: str
    description: str
    params: type[P]
    handler: Handler[P] = field(repr=False)
    descriptor: ToolDescriptor = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptor", ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=schema_for(self.params),
        ))

    @property
    def required(self) -> tuple[str, ...]:
        return self.descriptor.input_schema.required


def tool(name: str, description: str, params: type[P]) -> Callable[[Handler[P]], ToolSpec[P]]:
    """Decorator turning an async handler into a ToolSpec."""
    def decorator(handler: Handler[P]) -> ToolSpec[P]:
        return ToolSpec(name=name, description=description, params=params, handler=handler)
    return decorator


def action(message: str, response: RawResult, **fields: Any) -> JsonDict:
    """Result shape for tools that report an action: message, extra fields, then the upstream response."""
    return {"message": message, **fields, "response": None if response is EMPTY else response}
