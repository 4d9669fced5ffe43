"""Workflow lifecycle manager.

Workflows move between two states: draft (``is_active=False``) and active.
The manager owns validation against the capability registries and the
trigger registration side effects of each transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import InvalidStateError, NotFoundError
from ..core.logger import get_logger
from ..registry.capabilities import Action, Trigger
from ..registry.registries import ActionRegistry, TriggerRegistry
from ..store.models import ExecutionRecord, WorkflowRecord
from ..store.repository import AutomationStore
from .dispatcher import ExecutionDispatcher

logger = get_logger("engine.lifecycle")

EXECUTION_HISTORY_LIMIT = 50


class TriggerSpec(BaseModel):
    """Trigger half of a workflow definition."""

    provider: str
    id: str
    config: dict[str, Any] = Field(default_factory=dict)


class ActionSpec(BaseModel):
    """Action half of a workflow definition."""

    model_config = ConfigDict(populate_by_name=True)

    provider: str
    id: str
    config: dict[str, Any] = Field(default_factory=dict)
    credential_id: int | None = Field(default=None, alias="credentialsId")


class WorkflowCreate(BaseModel):
    """Payload for creating a workflow."""

    name: str = Field(..., min_length=1)
    description: str | None = None
    trigger: TriggerSpec
    action: ActionSpec


class WorkflowUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    trigger: TriggerSpec | None = None
    action: ActionSpec | None = None


@dataclass
class ReloadReport:
    """Outcome of re-registering active workflows at startup."""

    restored: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


class WorkflowLifecycleManager:
    """CRUD plus activate / deactivate / execute for workflows."""

    def __init__(
        self,
        store: AutomationStore,
        triggers: TriggerRegistry,
        actions: ActionRegistry,
        dispatcher: ExecutionDispatcher,
    ) -> None:
        self.store = store
        self.triggers = triggers
        self.actions = actions
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_trigger(self, provider: str, trigger_id: str) -> Trigger:
        trigger = self.triggers.get(provider, trigger_id)
        if trigger is None:
            raise NotFoundError("trigger", f"{provider}:{trigger_id}")
        return trigger

    def _require_action(self, provider: str, action_id: str) -> Action:
        action = self.actions.get(provider, action_id)
        if action is None:
            raise NotFoundError("action", f"{provider}:{action_id}")
        return action

    def _trigger_credential_id(self, workflow: WorkflowRecord) -> int | None:
        """The action credential doubles as trigger credential when the providers match."""
        if workflow.action_credential_id is None:
            return None
        credential = self.store.get_credential(workflow.action_credential_id)
        if credential is None or credential.provider != workflow.trigger_provider:
            return None
        return credential.id

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_workflow(self, owner_id: str, data: WorkflowCreate) -> WorkflowRecord:
        """Create a workflow in the draft state.

        Configs are validated only when non-empty, so skeleton workflows can be
        saved and configured later.

        Raises:
            NotFoundError: If the trigger or action capability is unknown
            ValidationError: If a non-empty config is invalid
        """
        trigger = self._require_trigger(data.trigger.provider, data.trigger.id)
        action = self._require_action(data.action.provider, data.action.id)
        if data.trigger.config:
            trigger.validate_config(data.trigger.config)
        if data.action.config:
            action.validate_input(data.action.config)

        workflow = self.store.insert_workflow(
            owner_id=owner_id,
            name=data.name,
            description=data.description,
            trigger_provider=data.trigger.provider,
            trigger_id=data.trigger.id,
            trigger_config=dict(data.trigger.config),
            action_provider=data.action.provider,
            action_id=data.action.id,
            action_config=dict(data.action.config),
            action_credential_id=data.action.credential_id,
            is_active=False,
        )
        logger.info("Created workflow %s (%s) for %s", workflow.id, workflow.name, owner_id)
        return workflow

    def get_workflow(self, owner_id: str, workflow_id: int) -> WorkflowRecord:
        workflow = self.store.get_workflow(workflow_id)
        if workflow is None or workflow.owner_id != owner_id:
            raise NotFoundError("workflow", workflow_id)
        return workflow

    def list_workflows(self, owner_id: str) -> list[WorkflowRecord]:
        return self.store.list_workflows(owner_id)

    def update_workflow(
        self, owner_id: str, workflow_id: int, data: WorkflowUpdate
    ) -> WorkflowRecord:
        """Update a draft workflow.

        Raises:
            InvalidStateError: If the workflow is active
        """
        workflow = self.get_workflow(owner_id, workflow_id)
        if workflow.is_active:
            raise InvalidStateError(
                "Cannot update an active workflow. Deactivate it first.", workflow_id=workflow_id
            )

        patch: dict[str, Any] = {}
        if data.name is not None:
            patch["name"] = data.name
        if data.description is not None:
            patch["description"] = data.description
        if data.trigger is not None:
            trigger = self._require_trigger(data.trigger.provider, data.trigger.id)
            if data.trigger.config:
                trigger.validate_config(data.trigger.config)
            patch.update(
                trigger_provider=data.trigger.provider,
                trigger_id=data.trigger.id,
                trigger_config=dict(data.trigger.config),
            )
        if data.action is not None:
            action = self._require_action(data.action.provider, data.action.id)
            if data.action.config:
                action.validate_input(data.action.config)
            patch.update(
                action_provider=data.action.provider,
                action_id=data.action.id,
                action_config=dict(data.action.config),
                action_credential_id=data.action.credential_id,
            )

        if not patch:
            return workflow
        updated = self.store.update_workflow(workflow_id, **patch)
        if updated is None:
            raise NotFoundError("workflow", workflow_id)
        return updated

    async def delete_workflow(self, owner_id: str, workflow_id: int) -> None:
        """Delete a workflow, deactivating it first when needed."""
        workflow = self.get_workflow(owner_id, workflow_id)
        if workflow.is_active:
            await self.deactivate_workflow(owner_id, workflow_id)
        self.store.delete_workflow(workflow_id)
        logger.info("Deleted workflow %s", workflow_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def activate_workflow(self, owner_id: str, workflow_id: int) -> WorkflowRecord:
        """Validate, mark active, then register the trigger.

        The active flag is persisted before ``register`` so trigger-side logic
        that immediately dispatches sees the workflow as active. A failing
        ``register`` resets the flag and re-raises.
        """
        workflow = self.get_workflow(owner_id, workflow_id)
        if workflow.is_active:
            raise InvalidStateError("Workflow is already active", workflow_id=workflow_id)

        trigger = self._require_trigger(workflow.trigger_provider, workflow.trigger_id)
        action = self._require_action(workflow.action_provider, workflow.action_id)
        trigger.validate_config(workflow.trigger_config)
        action.validate_input(workflow.action_config)

        self.store.update_workflow(workflow_id, is_active=True)
        try:
            await trigger.register(
                workflow_id, workflow.trigger_config, self._trigger_credential_id(workflow)
            )
        except Exception:
            self.store.update_workflow(workflow_id, is_active=False)
            logger.warning("Activation of workflow %s rolled back", workflow_id)
            raise

        logger.info("Activated workflow %s", workflow_id)
        return self.get_workflow(owner_id, workflow_id)

    async def deactivate_workflow(self, owner_id: str, workflow_id: int) -> WorkflowRecord:
        """Unregister the trigger (if it still exists) and mark the workflow inactive."""
        workflow = self.get_workflow(owner_id, workflow_id)
        if not workflow.is_active:
            raise InvalidStateError("Workflow is not active", workflow_id=workflow_id)

        trigger = self.triggers.get(workflow.trigger_provider, workflow.trigger_id)
        if trigger is not None:
            await trigger.unregister(workflow_id)
        else:
            logger.warning(
                "Trigger %s missing while deactivating workflow %s",
                workflow.trigger_key,
                workflow_id,
            )

        updated = self.store.update_workflow(workflow_id, is_active=False)
        logger.info("Deactivated workflow %s", workflow_id)
        return updated or workflow

    async def execute_workflow(
        self, owner_id: str, workflow_id: int, trigger_data: dict[str, Any] | None = None
    ) -> ExecutionRecord:
        """Run a workflow's action now, regardless of its trigger."""
        self.get_workflow(owner_id, workflow_id)
        return await self.dispatcher.execute(owner_id, workflow_id, trigger_data or {})

    def list_executions(
        self, owner_id: str, workflow_id: int, limit: int = EXECUTION_HISTORY_LIMIT
    ) -> list[ExecutionRecord]:
        """Executions of a workflow, newest first."""
        self.get_workflow(owner_id, workflow_id)
        return self.store.list_executions(workflow_id, limit=limit)

    async def reload_active_workflows(self) -> ReloadReport:
        """Re-create in-memory registrations for every active workflow.

        Runs unattended at startup: failures are logged and the workflow is
        left inactive instead of raising.
        """
        report = ReloadReport()
        for workflow in self.store.list_active_workflows():
            trigger = self.triggers.get(workflow.trigger_provider, workflow.trigger_id)
            if trigger is None:
                reason = f"Trigger {workflow.trigger_key} not registered"
            else:
                try:
                    await trigger.register(
                        workflow.id,
                        workflow.trigger_config,
                        self._trigger_credential_id(workflow),
                        restoring=True,
                    )
                except Exception as exc:
                    reason = str(exc)
                else:
                    report.restored.append(workflow.id)
                    continue

            logger.error("Could not restore workflow %s: %s", workflow.id, reason)
            self.store.update_workflow(workflow.id, is_active=False)
            report.failed[workflow.id] = reason

        logger.info(
            "Restored %d active workflow(s), %d failed", len(report.restored), len(report.failed)
        )
        return report
