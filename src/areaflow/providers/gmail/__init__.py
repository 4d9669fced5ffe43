"""Gmail: receive-email trigger (push and poll), send-email and read-email actions."""

from .actions import ReadEmailAction, SendEmailAction
from .client import GENERATED_HEADER, GmailClient, parse_message
from .polling import GmailPollingAdapter
from .triggers import ReceiveEmailTrigger, email_payload
from .watch import GmailWatchService, WatchResult

__all__ = [
    "GENERATED_HEADER",
    "GmailClient",
    "GmailPollingAdapter",
    "GmailWatchService",
    "ReadEmailAction",
    "ReceiveEmailTrigger",
    "SendEmailAction",
    "WatchResult",
    "email_payload",
    "parse_message",
]
