"""Lead tools: listing, lookup, enrollment, categorization, sequence control and blocking."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import Field

from leadgate.client import segment

from .base import (
    CampaignPageParams,
    CampaignParams,
    Identifier,
    NoParams,
    OptionalIdentifier,
    OptionalObject,
    ToolParams,
    action,
    tool,
)

if TYPE_CHECKING:
    from leadgate.client import BackendClient, RawResult


class EmailParams(ToolParams):
    email: str = Field(min_length=3, description="Email address to search for")


class AddLeadsParams(CampaignParams):
    leads: list[dict[str, Any]] = Field(
        min_length=1,
        description="Leads to add; each object holds email plus any custom fields",
    )
    settings: OptionalObject = Field(default=None, description="Upload settings, e.g. ignore_global_block_list")


class LeadParams(CampaignParams):
    lead_id: Identifier = Field(alias="leadId", description="The lead ID")


class CategoryParams(LeadParams):
    category_id: Identifier = Field(alias="categoryId", description="Category ID from lead_categories")
    pause_lead: bool = Field(default=False, alias="pauseLead", description="Pause the lead's sequence as well")


class ResumeParams(LeadParams):
    delay_days: int = Field(default=0, ge=0, alias="delayDays", description="Days to wait before the next sequence step")


class GlobalLeadParams(ToolParams):
    lead_id: Identifier = Field(alias="leadId", description="The lead ID")


class BlocklistParams(ToolParams):
    emails: list[str] = Field(min_length=1, description="Email addresses or domains to block")
    client_id: OptionalIdentifier = Field(default=None, alias="clientId", description="Restrict the block to one client")


def _lead(p: LeadParams) -> str:
    return f"/campaigns/{segment(p.campaign_id)}/leads/{segment(p.lead_id)}"


@tool("lead_list_by_campaign", "List all leads in a specific campaign", CampaignPageParams)
async def lead_list_by_campaign(client: BackendClient, p: CampaignPageParams) -> RawResult:
    return await client.invoke(
        "GET", f"/campaigns/{segment(p.campaign_id)}/leads", query={"offset": p.offset, "limit": p.limit},
    )


@tool("lead_search_by_email", "Search for a lead by email address", EmailParams)
async def lead_search_by_email(client: BackendClient, p: EmailParams) -> RawResult:
    return await client.invoke("GET", "/leads/", query={"email": p.email})


@tool("lead_add_to_campaign", "Add leads to a campaign, keeping any custom fields on each lead", AddLeadsParams)
async def lead_add_to_campaign(client: BackendClient, p: AddLeadsParams) -> RawResult:
    body: dict[str, Any] = {"lead_list": p.leads}
    if p.settings:
        body["settings"] = p.settings
    return await client.invoke("POST", f"/campaigns/{segment(p.campaign_id)}/leads", body=body)


@tool("lead_update_category", "Update the category of a lead in a campaign (interested, not interested, ...)", CategoryParams)
async def lead_update_category(client: BackendClient, p: CategoryParams) -> RawResult:
    response = await client.invoke(
        "POST",
        f"{_lead(p)}/category",
        body={"category_id": p.category_id, "pause_lead": p.pause_lead},
    )
    return action(f"Lead {p.lead_id} category updated to {p.category_id}", response)


@tool("lead_pause", "Pause a lead's sequence in a campaign", LeadParams)
async def lead_pause(client: BackendClient, p: LeadParams) -> RawResult:
    response = await client.invoke("POST", f"{_lead(p)}/pause")
    return action(f"Lead {p.lead_id} paused", response)


@tool("lead_resume", "Resume a paused lead's sequence, optionally after a delay", ResumeParams)
async def lead_resume(client: BackendClient, p: ResumeParams) -> RawResult:
    response = await client.invoke("POST", f"{_lead(p)}/resume", body={"resume_lead_with_delay_days": p.delay_days})
    return action(f"Lead {p.lead_id} resumed", response, delay_days=p.delay_days)


@tool("lead_unsubscribe", "Unsubscribe a lead from one campaign", LeadParams)
async def lead_unsubscribe(client: BackendClient, p: LeadParams) -> RawResult:
    response = await client.invoke("POST", f"{_lead(p)}/unsubscribe")
    return action(f"Lead {p.lead_id} unsubscribed from campaign {p.campaign_id}", response)


@tool("lead_unsubscribe_global", "Unsubscribe a lead from every campaign in the account", GlobalLeadParams)
async def lead_unsubscribe_global(client: BackendClient, p: GlobalLeadParams) -> RawResult:
    response = await client.invoke("POST", f"/leads/{segment(p.lead_id)}/unsubscribe")
    return action(f"Lead {p.lead_id} unsubscribed from all campaigns", response)


@tool("lead_delete", "Remove a lead from a campaign", LeadParams)
async def lead_delete(client: BackendClient, p: LeadParams) -> RawResult:
    return await client.invoke("DELETE", _lead(p))


@tool("lead_categories", "List the lead categories available in the account", NoParams)
async def lead_categories(client: BackendClient, p: NoParams) -> RawResult:
    return await client.invoke("GET", "/leads/fetch-categories")


@tool("lead_add_to_blocklist", "Add email addresses or domains to the global blocklist", BlocklistParams)
async def lead_add_to_blocklist(client: BackendClient, p: BlocklistParams) -> RawResult:
    response = await client.invoke(
        "POST",
        "/leads/add-domain-block-list",
        body={"domain_block_list": p.emails, "client_id": p.client_id},
    )
    return action(
        f"Added {len(p.emails)} email(s) to blocklist",
        response,
        blocked_count=len(p.emails),
        emails=p.emails,
    )


LEAD_TOOLS = (
    lead_list_by_campaign,
    lead_search_by_email,
    lead_add_to_campaign,
    lead_update_category,
    lead_pause,
    lead_resume,
    lead_unsubscribe,
    lead_unsubscribe_global,
    lead_delete,
    lead_categories,
    lead_add_to_blocklist,
)
