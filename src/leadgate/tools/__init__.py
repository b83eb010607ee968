"""Tool catalog.

Every tool the gateway exposes, grouped by upstream resource. ALL_SPECS is the
single ordered source for both the registry and the dispatcher.
"""

from __future__ import annotations

from .accounts import ACCOUNT_TOOLS
from .analytics import ANALYTICS_TOOLS
from .base import PassthroughParams, ToolParams, ToolSpec, action, schema_for, tool
from .campaigns import CAMPAIGN_TOOLS
from .leads import LEAD_TOOLS
from .replies import REPLY_TOOLS
from .webhooks import WEBHOOK_TOOLS

ALL_SPECS: tuple[ToolSpec, ...] = (
    *CAMPAIGN_TOOLS,
    *LEAD_TOOLS,
    *ANALYTICS_TOOLS,
    *REPLY_TOOLS,
    *WEBHOOK_TOOLS,
    *ACCOUNT_TOOLS,
)

__all__ = [
    "ALL_SPECS",
    "ACCOUNT_TOOLS",
    "ANALYTICS_TOOLS",
    "CAMPAIGN_TOOLS",
    "LEAD_TOOLS",
    "REPLY_TOOLS",
    "WEBHOOK_TOOLS",
    "PassthroughParams",
    "ToolParams",
    "ToolSpec",
    "action",
    "schema_for",
    "tool",
]
