"""Webhook: generic incoming-webhook trigger."""

from .triggers import IncomingWebhook, IncomingWebhookTrigger, normalize_path

__all__ = ["IncomingWebhook", "IncomingWebhookTrigger", "normalize_path"]
