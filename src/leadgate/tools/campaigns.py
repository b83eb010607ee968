"""Campaign tools: listing, inspection, lifecycle and export."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import Field, field_validator

from leadgate.client import segment

from .base import (
    CampaignParams,
    OptionalIdentifier,
    PageParams,
    PassthroughParams,
    action,
    tool,
)

if TYPE_CHECKING:
    from leadgate.client import BackendClient, RawResult


class CreateParams(PassthroughParams):
    name: str = Field(min_length=1, description="Campaign name")
    client_id: OptionalIdentifier = Field(default=None, alias="clientId", description="Client ID to attach the campaign to")


class SettingsParams(CampaignParams, PassthroughParams):
    """Any extra argument becomes a settings field, e.g. track_settings, stop_lead_settings."""


_LEGACY_STATUS = {"PAUSE": "PAUSED", "STOP": "STOPPED", "RESUME": "START"}


class StatusParams(CampaignParams):
    status: Literal["START", "PAUSED", "STOPPED"] = Field(description="New status: START, PAUSED or STOPPED")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v: object) -> object:
        """Accept any case and the legacy verbs PAUSE, STOP and RESUME."""
        if not isinstance(v, str):
            return v
        v = v.strip().upper()
        return _LEGACY_STATUS.get(v, v)


class ExportParams(CampaignParams):
    as_csv: bool = Field(default=False, alias="asCsv", description="Return the raw CSV export, base64-encoded")


def _campaign(p: CampaignParams, *rest: str) -> str:
    return "/".join(("/campaigns", segment(p.campaign_id), *rest))


@tool("campaign_list", "List all campaigns with their current status and statistics", PageParams)
async def campaign_list(client: BackendClient, p: PageParams) -> RawResult:
    return await client.invoke("GET", "/campaigns", query={"offset": p.offset, "limit": p.limit})


@tool("campaign_get", "Get detailed information about a specific campaign", CampaignParams)
async def campaign_get(client: BackendClient, p: CampaignParams) -> RawResult:
    return await client.invoke("GET", _campaign(p))


@tool("campaign_create", "Create a new campaign. Extra fields are passed to the API unchanged", CreateParams)
async def campaign_create(client: BackendClient, p: CreateParams) -> RawResult:
    body = {"name": p.name, "client_id": p.client_id, **p.extras()}
    return await client.invoke("POST", "/campaigns/create", body=body)


@tool(
    "campaign_update_settings",
    "Update campaign settings. Every argument other than campaignId is sent as a settings field",
    SettingsParams,
)
async def campaign_update_settings(client: BackendClient, p: SettingsParams) -> RawResult:
    return await client.invoke("POST", _campaign(p, "settings"), body=p.extras())


@tool("campaign_status_update", "Update campaign status (START, PAUSED, STOPPED)", StatusParams)
async def campaign_status_update(client: BackendClient, p: StatusParams) -> RawResult:
    response = await client.invoke("POST", _campaign(p, "status"), body={"status": p.status})
    return action(f"Campaign {p.campaign_id} status updated to {p.status}", response)


@tool("campaign_delete", "Delete a campaign permanently", CampaignParams)
async def campaign_delete(client: BackendClient, p: CampaignParams) -> RawResult:
    return await client.invoke("DELETE", _campaign(p))


@tool("campaign_sequence_get", "Get the email sequence steps of a campaign", CampaignParams)
async def campaign_sequence_get(client: BackendClient, p: CampaignParams) -> RawResult:
    return await client.invoke("GET", _campaign(p, "sequences"))


@tool("campaign_export", "Export all lead data of a campaign as JSON, or as base64-encoded CSV", ExportParams)
async def campaign_export(client: BackendClient, p: ExportParams) -> RawResult:
    if not p.as_csv:
        return await client.invoke("GET", _campaign(p, "leads-export"))
    return await client.invoke("GET", _campaign(p, "leads-export"), binary=True)


CAMPAIGN_TOOLS = (
    campaign_list,
    campaign_get,
    campaign_create,
    campaign_update_settings,
    campaign_status_update,
    campaign_delete,
    campaign_sequence_get,
    campaign_export,
)
