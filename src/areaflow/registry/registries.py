"""In-memory catalogs of trigger and action capabilities keyed ``provider:id``."""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

from ..core.logger import get_logger
from .capabilities import Action, Capability, CapabilityDescriptor, Trigger

logger = get_logger("registry")

C = TypeVar("C", bound=Capability)


def make_key(provider: str, capability_id: str) -> str:
    return f"{provider}:{capability_id}"


class CapabilityRegistry(Generic[C]):
    """Registry of capabilities; registration overwrites silently (last write wins)."""

    kind = "capability"

    def __init__(self) -> None:
        self._items: dict[str, C] = {}
        self._lock = threading.Lock()

    def register(self, capability: C) -> None:
        key = make_key(capability.provider, capability.id)
        with self._lock:
            replaced = key in self._items
            self._items[key] = capability
        logger.debug("%s %s %s", "Replaced" if replaced else "Registered", self.kind, key)

    def unregister(self, provider: str, capability_id: str) -> bool:
        with self._lock:
            return self._items.pop(make_key(provider, capability_id), None) is not None

    def get(self, provider: str, capability_id: str) -> C | None:
        with self._lock:
            return self._items.get(make_key(provider, capability_id))

    def has(self, provider: str, capability_id: str) -> bool:
        return self.get(provider, capability_id) is not None

    def get_all(self) -> list[C]:
        with self._lock:
            return list(self._items.values())

    def get_by_provider(self, provider: str) -> list[C]:
        return [item for item in self.get_all() if item.provider == provider]

    def providers(self) -> list[str]:
        return sorted({item.provider for item in self.get_all()})

    def get_metadata(self, provider: str, capability_id: str) -> CapabilityDescriptor | None:
        item = self.get(provider, capability_id)
        return item.descriptor() if item else None

    def get_all_metadata(self, provider: str | None = None) -> list[CapabilityDescriptor]:
        items = self.get_all() if provider is None else self.get_by_provider(provider)
        return sorted((item.descriptor() for item in items), key=lambda d: d.key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class TriggerRegistry(CapabilityRegistry[Trigger]):
    """Catalog of every trigger capability."""

    kind = "trigger"


class ActionRegistry(CapabilityRegistry[Action]):
    """Catalog of every action capability."""

    kind = "action"
