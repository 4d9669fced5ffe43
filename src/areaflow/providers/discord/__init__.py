"""Discord: webhook message action."""

from .actions import SendWebhookAction
from .client import DiscordWebhookClient

__all__ = ["DiscordWebhookClient", "SendWebhookAction"]
