"""Capability registries and the trigger/action base classes."""

from .capabilities import (
    Action,
    ActionContext,
    Capability,
    CapabilityConfig,
    CapabilityDescriptor,
    EmptyConfig,
    EventPayload,
    Registration,
    RegistrationStore,
    SetupResult,
    Trigger,
    TriggerType,
    matches_config,
    render_template,
)
from .kinds import ActionKind
from .registries import ActionRegistry, CapabilityRegistry, TriggerRegistry

__all__ = [
    "Action",
    "ActionContext",
    "ActionKind",
    "ActionRegistry",
    "Capability",
    "CapabilityConfig",
    "CapabilityDescriptor",
    "CapabilityRegistry",
    "EmptyConfig",
    "EventPayload",
    "Registration",
    "RegistrationStore",
    "SetupResult",
    "Trigger",
    "TriggerRegistry",
    "TriggerType",
    "matches_config",
    "render_template",
]
