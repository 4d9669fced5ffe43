"""Gmail actions."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import GmailClient, parse_message


class SendEmailConfig(CapabilityConfig):
    to: str = Field(..., min_length=1, description="Recipient address")
    subject: str = Field(..., min_length=1, description="Subject line")
    body: str = Field(..., description="Message body")
    cc: list[str] = Field(default_factory=list, description="Carbon copy addresses")
    is_html: bool = Field(default=False, description="Send the body as HTML")


class SendEmailAction(Action):
    kind = ActionKind.GMAIL_SEND_EMAIL
    name = "Send Email"
    description = "Send an email from the connected Gmail account"
    requires_credentials = True
    config_model = SendEmailConfig

    async def execute(self, config: SendEmailConfig, context: ActionContext) -> dict[str, Any]:
        async with GmailClient(context.access_token, config=context.http_config) as client:
            sent = await client.send_message(
                config.to, config.subject, config.body, cc=config.cc, html=config.is_html
            )
        return {"messageId": sent.get("id"), "threadId": sent.get("threadId"), "to": config.to}


class ReadEmailConfig(CapabilityConfig):
    query: str | None = Field(default=None, description="Gmail search query, e.g. is:unread")
    max_results: int = Field(default=10, ge=1, le=100, description="Messages to return")
    label_ids: list[str] = Field(
        default_factory=list, description="Only messages carrying these labels"
    )


class ReadEmailAction(Action):
    kind = ActionKind.GMAIL_READ_EMAIL
    name = "Read Emails"
    description = "List recent emails matching a search query"
    requires_credentials = True
    config_model = ReadEmailConfig

    async def execute(self, config: ReadEmailConfig, context: ActionContext) -> dict[str, Any]:
        async with GmailClient(context.access_token, config=context.http_config) as client:
            listing = await client.list_messages(
                config.query, max_results=config.max_results, label_ids=config.label_ids
            )
            messages = []
            for ref in listing.get("messages") or []:
                parsed = parse_message(await client.get_message(ref["id"], format="metadata"))
                messages.append(
                    {
                        "id": parsed["id"],
                        "threadId": parsed["threadId"],
                        "snippet": parsed["body"],
                        "from": parsed["from"],
                        "to": parsed["to"],
                        "subject": parsed["subject"],
                        "date": parsed["date"],
                    }
                )
        return {"messages": messages, "totalCount": len(messages)}
