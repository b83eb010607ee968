"""Email account tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import PageParams, tool

if TYPE_CHECKING:
    from leadgate.client import BackendClient, RawResult


@tool("email_account_list", "List the sending email accounts connected to the account", PageParams)
async def email_account_list(client: BackendClient, p: PageParams) -> RawResult:
    return await client.invoke("GET", "/email-accounts", query={"offset": p.offset, "limit": p.limit})


ACCOUNT_TOOLS = (email_account_list,)
