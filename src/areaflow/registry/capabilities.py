"""Trigger and action capability base classes.

A capability is one provider feature: "new liked song on Spotify" (a trigger)
or "send a Discord webhook message" (an action). Each capability owns a
pydantic config model from which its JSON schema is derived, and triggers own
a ``RegistrationStore`` holding the workflows currently listening to them.
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import CredentialError, RegistrationError, ValidationError
from ..core.logger import get_logger
from .kinds import ActionKind

if TYPE_CHECKING:
    from ..core.config import HTTPClientConfig
    from ..store.models import CredentialRecord

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


class TriggerType(str, Enum):
    """How a trigger learns about external events."""

    POLLING = "polling"
    PUSH = "push"
    WEBHOOK = "webhook"
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class CapabilityConfig(BaseModel):
    """Base for capability config models; accepts camelCase keys or field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class EmptyConfig(CapabilityConfig):
    """Config model for capabilities that take no settings."""


class EventPayload(BaseModel):
    """Trigger output; serialised with camelCase keys for templates and storage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_event(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Immutable, read-only view of a trigger or action for catalog listings."""

    kind: str
    provider: str
    id: str
    name: str
    description: str
    config_schema: dict[str, Any]
    requires_credentials: bool = False
    output_schema: dict[str, Any] | None = None
    input_schema: dict[str, Any] | None = None
    trigger_type: str | None = None

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.id}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "kind": self.kind,
            "provider": self.provider,
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "configSchema": self.config_schema,
            "requiresCredentials": self.requires_credentials,
        }
        if self.kind == "trigger":
            data["outputSchema"] = self.output_schema or {}
            data["triggerType"] = self.trigger_type
        else:
            data["inputSchema"] = self.input_schema or {}
        return data


@dataclass(frozen=True)
class Registration:
    """A workflow listening to a trigger."""

    workflow_id: int
    config: dict[str, Any]
    credential_id: int | None = None


class RegistrationStore:
    """Lock-guarded map of workflow id to registration.

    Contents live only in memory; active workflows are re-registered from the
    store at startup.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[int, Registration] = {}

    def put(self, registration: Registration) -> None:
        with self._lock:
            self._entries[registration.workflow_id] = registration

    def remove(self, workflow_id: int) -> Registration | None:
        with self._lock:
            return self._entries.pop(workflow_id, None)

    def get(self, workflow_id: int) -> Registration | None:
        with self._lock:
            return self._entries.get(workflow_id)

    def snapshot(self) -> dict[int, Registration]:
        """Return a point-in-time copy safe to iterate while others mutate."""
        with self._lock:
            return dict(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, workflow_id: object) -> bool:
        with self._lock:
            return workflow_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass
class SetupResult:
    """Outcome of a trigger's one-time external setup step."""

    success: bool
    error: RegistrationError | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **details: Any) -> SetupResult:
        return cls(success=True, details=details)

    @classmethod
    def fail(cls, error: RegistrationError) -> SetupResult:
        return cls(success=False, error=error)


def matches_config(filters: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
    """AND of optional, case-insensitive substring filters.

    A filter that is unset or empty matches anything; a configured filter
    requires the event field to contain it.
    """
    for name, expected in filters.items():
        if expected is None or expected == "":
            continue
        actual = event.get(name)
        if actual is None:
            return False
        if str(expected).lower() not in str(actual).lower():
            return False
    return True


def render_template(value: Any, data: Mapping[str, Any] | None) -> Any:
    """Replace ``{{key}}`` placeholders in strings, dicts and lists with trigger data."""
    if not data:
        return value
    if isinstance(value, str):

        def _replace(match: re.Match[str]) -> str:
            found = data.get(match.group(1))
            if found is None or found == "":
                return match.group(0)
            return str(found)

        return _PLACEHOLDER.sub(_replace, value)
    if isinstance(value, dict):
        return {key: render_template(item, data) for key, item in value.items()}
    if isinstance(value, list):
        return [render_template(item, data) for item in value]
    return value


class Capability(ABC):
    """Common behaviour of triggers and actions."""

    provider: ClassVar[str]
    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    requires_credentials: ClassVar[bool] = False
    config_model: ClassVar[type[CapabilityConfig]] = EmptyConfig

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.id}"

    def parse_config(self, config: Mapping[str, Any] | None) -> CapabilityConfig:
        """Validate a raw config mapping against the capability's model.

        Raises:
            ValidationError: Naming the first failing field
        """
        try:
            return self.config_model.model_validate(dict(config or {}))
        except PydanticValidationError as exc:
            details = [
                {
                    "field": ".".join(str(part) for part in error["loc"]),
                    "message": error["msg"],
                }
                for error in exc.errors()
            ]
            first = details[0] if details else {"field": None, "message": str(exc)}
            raise ValidationError(
                f"Invalid config for {self.key}: {first['field']}: {first['message']}",
                field=first["field"],
                capability=self.key,
                details=details,
            ) from exc

    def config_schema(self) -> dict[str, Any]:
        return self.config_model.model_json_schema(by_alias=True)

    @abstractmethod
    def descriptor(self) -> CapabilityDescriptor:
        """Return the catalog descriptor for this capability."""


class Trigger(Capability):
    """An event source with a registration table.

    Subclasses override ``setup``/``teardown`` for one-time external side
    effects (push subscriptions, timers) and ``matches`` for push matching.
    """

    trigger_type: ClassVar[TriggerType] = TriggerType.POLLING
    output_model: ClassVar[type[BaseModel] | None] = None

    def __init__(self, store: RegistrationStore | None = None) -> None:
        self.registrations = store if store is not None else RegistrationStore()
        self.logger = get_logger(f"triggers.{self.provider}")

    def validate_config(self, config: Mapping[str, Any] | None) -> None:
        self.parse_config(config)

    async def register(
        self,
        workflow_id: int,
        config: Mapping[str, Any] | None,
        credential_id: int | None = None,
        *,
        restoring: bool = False,
    ) -> SetupResult:
        """Record a registration, then run external setup.

        Args:
            workflow_id: Workflow listening to this trigger
            config: Raw trigger config
            credential_id: Explicit credential for the trigger, if any
            restoring: True when re-registering at startup

        Returns:
            The setup result; a failed setup still leaves the registration recorded.

        Raises:
            ValidationError: If the config is invalid (nothing is recorded)
        """
        parsed = self.parse_config(config)
        registration = Registration(workflow_id, dict(config or {}), credential_id)
        self.registrations.put(registration)

        try:
            result = await self.setup(registration, parsed, restoring=restoring)
        except RegistrationError as exc:
            result = SetupResult.fail(exc)
        except Exception:
            self.registrations.remove(workflow_id)
            raise

        if result.success:
            self.logger.info("Registered workflow %s on %s", workflow_id, self.key)
        else:
            self.logger.warning(
                "Registered workflow %s on %s but external setup failed: %s",
                workflow_id,
                self.key,
                result.error,
            )
        return result

    async def unregister(self, workflow_id: int) -> None:
        """Remove a registration and reverse its external setup; never raises."""
        registration = self.registrations.remove(workflow_id)
        if registration is None:
            return
        try:
            await self.teardown(registration)
        except Exception as exc:
            self.logger.warning(
                "Teardown failed for workflow %s on %s: %s", workflow_id, self.key, exc
            )
        self.logger.info("Unregistered workflow %s from %s", workflow_id, self.key)

    async def setup(
        self,
        registration: Registration,
        config: CapabilityConfig,
        *,
        restoring: bool = False,
    ) -> SetupResult:
        return SetupResult.ok()

    async def teardown(self, registration: Registration) -> None:
        return None

    def is_registered(self, workflow_id: int) -> bool:
        return workflow_id in self.registrations

    def get_registrations(self) -> dict[int, Registration]:
        return self.registrations.snapshot()

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        return True

    def get_matching_workflows(self, event: Mapping[str, Any]) -> list[int]:
        """Return ids of registered workflows whose config matches an event."""
        return [
            workflow_id
            for workflow_id, registration in sorted(self.get_registrations().items())
            if self.matches(registration.config, event)
        ]

    def descriptor(self) -> CapabilityDescriptor:
        return CapabilityDescriptor(
            kind="trigger",
            provider=self.provider,
            id=self.id,
            name=self.name,
            description=self.description,
            config_schema=self.config_schema(),
            requires_credentials=self.requires_credentials,
            output_schema=(
                self.output_model.model_json_schema(by_alias=True) if self.output_model else {}
            ),
            trigger_type=self.trigger_type.value,
        )


@dataclass
class ActionContext:
    """Everything an action needs at execution time besides its config."""

    workflow_id: int
    owner_id: str
    trigger_data: dict[str, Any]
    credential: CredentialRecord | None = None
    http_config: HTTPClientConfig | None = None
    client_id: str | None = None

    @property
    def access_token(self) -> str:
        if self.credential is None or not self.credential.access_token:
            raise CredentialError("Action requires a credential with an access token")
        return self.credential.access_token


class Action(Capability):
    """An effect on an external service.

    ``provider`` and ``id`` are derived from the class's ``kind``.
    """

    kind: ClassVar[ActionKind]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        kind = cls.__dict__.get("kind")
        if kind is not None:
            cls.provider = kind.provider
            cls.id = kind.action_id

    def validate_input(self, config: Mapping[str, Any] | None) -> None:
        self.parse_config(config)

    @abstractmethod
    async def execute(self, config: CapabilityConfig, context: ActionContext) -> dict[str, Any]:
        """Perform the action and return a JSON-serialisable result."""

    def descriptor(self) -> CapabilityDescriptor:
        return CapabilityDescriptor(
            kind="action",
            provider=self.provider,
            id=self.id,
            name=self.name,
            description=self.description,
            config_schema=self.config_schema(),
            requires_credentials=self.requires_credentials,
            input_schema=self.config_schema(),
        )
