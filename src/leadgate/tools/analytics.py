"""Analytics tools: campaign overview, date ranges, sequence steps and statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import Field

from leadgate.client import segment

from .base import CampaignParams, PassthroughParams, tool

if TYPE_CHECKING:
    from leadgate.client import BackendClient, RawResult


class DateRangeParams(CampaignParams):
    start_date: str = Field(alias="startDate", min_length=1, description="Start date (YYYY-MM-DD)")
    end_date: str = Field(alias="endDate", min_length=1, description="End date (YYYY-MM-DD)")


class StatisticsParams(CampaignParams, PassthroughParams):
    """Extra arguments become query filters, e.g. email_sequence_number, email_status, offset, limit."""


def _rate(part: Any, sent: float) -> str:
    try:
        value = float(part or 0)
    except (TypeError, ValueError):
        value = 0.0
    return f"{value / sent * 100:.2f}%" if sent > 0 else "0%"


def with_rates(data: RawResult) -> RawResult:
    """Add open, reply and click rates (percent of sent) to an analytics object."""
    if not isinstance(data, dict):
        return data
    try:
        sent = float(data.get("sent_count") or 0)
    except (TypeError, ValueError):
        sent = 0.0
    return {
        **data,
        "calculated_metrics": {
            "open_rate": _rate(data.get("open_count"), sent),
            "reply_rate": _rate(data.get("reply_count"), sent),
            "click_rate": _rate(data.get("click_count"), sent),
        },
    }


@tool(
    "analytics_campaign_overview",
    "Get campaign statistics including sent, opened, clicked and replied counts, with calculated rates",
    CampaignParams,
)
async def analytics_campaign_overview(client: BackendClient, p: CampaignParams) -> RawResult:
    return with_rates(await client.invoke("GET", f"/campaigns/{segment(p.campaign_id)}/analytics"))


@tool("analytics_campaign_by_date", "Get campaign analytics for a specific date range", DateRangeParams)
async def analytics_campaign_by_date(client: BackendClient, p: DateRangeParams) -> RawResult:
    return await client.invoke(
        "GET",
        f"/campaigns/{segment(p.campaign_id)}/analytics-by-date",
        query={"start_date": p.start_date, "end_date": p.end_date},
    )


@tool("analytics_sequence_performance", "Get performance metrics for each sequence step", CampaignParams)
async def analytics_sequence_performance(client: BackendClient, p: CampaignParams) -> RawResult:
    return await client.invoke("GET", f"/campaigns/{segment(p.campaign_id)}/sequence-analytics")


@tool(
    "analytics_campaign_statistics",
    "Get per-lead email statistics for a campaign. Extra arguments are sent as query filters",
    StatisticsParams,
)
async def analytics_campaign_statistics(client: BackendClient, p: StatisticsParams) -> RawResult:
    return await client.invoke("GET", f"/campaigns/{segment(p.campaign_id)}/statistics", query=p.extras())


ANALYTICS_TOOLS = (
    analytics_campaign_overview,
    analytics_campaign_by_date,
    analytics_sequence_performance,
    analytics_campaign_statistics,
)
