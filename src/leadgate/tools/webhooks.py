"""Webhook tools: per-campaign event subscriptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field

from leadgate.client import segment

from .base import CampaignParams, Identifier, OptionalText, PassthroughParams, action, tool

if TYPE_CHECKING:
    from leadgate.client import BackendClient, RawResult

EVENT_TYPES = (
    "EMAIL_SENT",
    "EMAIL_OPEN",
    "EMAIL_LINK_CLICK",
    "EMAIL_REPLY",
    "LEAD_UNSUBSCRIBED",
    "LEAD_CATEGORY_UPDATED",
)


class CreateParams(CampaignParams, PassthroughParams):
    """Extra arguments (e.g. categories) are sent as webhook fields."""

    url: str = Field(min_length=1, description="Webhook endpoint URL")
    events: list[str] = Field(
        min_length=1,
        description=f"Events to subscribe to, e.g. {', '.join(EVENT_TYPES)}",
        json_schema_extra={"items": {"type": "string", "enum": list(EVENT_TYPES)}},
    )
    name: OptionalText = Field(default=None, description="Display name for the webhook")


class DeleteParams(CampaignParams):
    webhook_id: Identifier = Field(alias="webhookId", description="Webhook ID to delete")


def _webhooks(campaign_id: int | str) -> str:
    return f"/campaigns/{segment(campaign_id)}/webhooks"


@tool("webhook_list", "List the webhooks configured on a campaign", CampaignParams)
async def webhook_list(client: BackendClient, p: CampaignParams) -> RawResult:
    return await client.invoke("GET", _webhooks(p.campaign_id))


@tool("webhook_create", "Create a webhook on a campaign for real-time event notifications", CreateParams)
async def webhook_create(client: BackendClient, p: CreateParams) -> RawResult:
    body = {
        "name": p.name or f"leadgate-{p.campaign_id}",
        "webhook_url": p.url,
        "event_types": p.events,
        **p.extras(),
    }
    response = await client.invoke("POST", _webhooks(p.campaign_id), body=body)
    return action("Webhook created successfully", response)


@tool("webhook_delete", "Delete a webhook from a campaign", DeleteParams)
async def webhook_delete(client: BackendClient, p: DeleteParams) -> RawResult:
    return await client.invoke("DELETE", _webhooks(p.campaign_id), body={"id": p.webhook_id})


WEBHOOK_TOOLS = (
    webhook_list,
    webhook_create,
    webhook_delete,
)
