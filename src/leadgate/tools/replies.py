"""Reply tools: replied leads, message history and sending replies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import Field

from leadgate.client import segment

from .base import CampaignPageParams, CampaignParams, Identifier, OptionalText, action, tool

if TYPE_CHECKING:
    from leadgate.client import BackendClient, RawResult


class HistoryParams(CampaignParams):
    lead_id: Identifier = Field(alias="leadId", description="The lead ID")


class SendParams(CampaignParams):
    email_stats_id: str = Field(alias="emailStatsId", min_length=1, description="stats_id of the message being answered")
    email_body: str = Field(alias="emailBody", min_length=1, description="Reply body (HTML allowed)")
    reply_message_id: OptionalText = Field(default=None, alias="replyMessageId", description="message_id being replied to")
    reply_email_time: OptionalText = Field(default=None, alias="replyEmailTime", description="time of the message being replied to")
    reply_email_body: OptionalText = Field(default=None, alias="replyEmailBody", description="body of the message being replied to")
    cc: OptionalText = Field(default=None, description="Comma-separated CC addresses")
    bcc: OptionalText = Field(default=None, description="Comma-separated BCC addresses")
    add_signature: bool = Field(default=True, alias="addSignature", description="Append the sender's signature")


def summarize_replies(data: RawResult) -> dict[str, Any]:
    """Reshape a replied-leads page into {total_replies, replies: [...]}."""
    rows = data.get("data") if isinstance(data, dict) else None
    leads = [lead for lead in rows or () if isinstance(lead, dict) and lead.get("last_reply")]
    replies = [
        {
            "lead_email": lead.get("email"),
            "lead_name": f"{lead.get('first_name') or ''} {lead.get('last_name') or ''}".strip(),
            "company": lead.get("company_name"),
            "reply_date": lead.get("last_reply_time"),
            "reply_content": lead.get("last_reply"),
            "lead_category": lead.get("lead_category"),
            "lead_id": lead.get("id"),
        }
        for lead in leads
    ]
    total = data.get("total_replied") if isinstance(data, dict) else None
    return {"total_replies": total or len(replies), "replies": replies}


@tool("reply_get_all", "Get all replies for a campaign with full message content", CampaignPageParams)
async def reply_get_all(client: BackendClient, p: CampaignPageParams) -> RawResult:
    data = await client.invoke(
        "GET",
        f"/campaigns/{segment(p.campaign_id)}/leads",
        query={"offset": p.offset, "limit": p.limit, "lead_status": "REPLIED"},
    )
    return summarize_replies(data)


@tool("reply_get_message_history", "Get complete message history for a specific lead", HistoryParams)
async def reply_get_message_history(client: BackendClient, p: HistoryParams) -> RawResult:
    return await client.invoke(
        "GET", f"/campaigns/{segment(p.campaign_id)}/leads/{segment(p.lead_id)}/message-history",
    )


@tool("reply_send", "Send a reply to a lead within an existing email thread", SendParams)
async def reply_send(client: BackendClient, p: SendParams) -> RawResult:
    body = {
        "email_stats_id": p.email_stats_id,
        "email_body": p.email_body,
        "reply_message_id": p.reply_message_id,
        "reply_email_time": p.reply_email_time,
        "reply_email_body": p.reply_email_body,
        "cc": p.cc,
        "bcc": p.bcc,
        "add_signature": p.add_signature,
    }
    response = await client.invoke(
        "POST",
        f"/campaigns/{segment(p.campaign_id)}/reply-email-thread",
        body={k: v for k, v in body.items() if v is not None},
    )
    return action("Reply sent successfully", response)


REPLY_TOOLS = (
    reply_get_all,
    reply_get_message_history,
    reply_send,
)
