"""Execution dispatcher: turns one detected trigger event into a durable run."""

from __future__ import annotations

import threading
import time
from typing import Any

from ..core.errors import NotActiveError, NotFoundError
from ..core.logger import get_logger
from ..registry.kinds import ActionKind
from ..store.models import ExecutionRecord, ExecutionStatus, WorkflowRecord, utcnow
from ..store.repository import AutomationStore
from .durable import AutomationRunInput, DurableBackend, RunOutcome

logger = get_logger("engine.dispatcher")


class ExecutionDispatcher:
    """Starts durable runs and keeps execution records in step with them."""

    def __init__(self, store: AutomationStore, backend: DurableBackend) -> None:
        self.store = store
        self.backend = backend
        self._last_run_ms = 0
        self._lock = threading.Lock()

    async def execute(
        self, owner_id: str, workflow_id: int, trigger_data: dict[str, Any]
    ) -> ExecutionRecord:
        """Start a run for a workflow owned by ``owner_id``.

        Raises:
            NotFoundError: If the workflow does not exist or belongs to someone else
            UnsupportedActionError: If the workflow's action is outside the catalog
        """
        workflow = self.store.get_workflow(workflow_id)
        if workflow is None or workflow.owner_id != owner_id:
            raise NotFoundError("workflow", workflow_id)
        return await self._start(workflow, trigger_data)

    async def trigger_workflow_execution(
        self, workflow_id: int, trigger_data: dict[str, Any]
    ) -> ExecutionRecord:
        """Entry point for pollers and webhooks; no owner check.

        Raises:
            NotFoundError: If the workflow does not exist
            NotActiveError: If the workflow is not active
        """
        workflow = self.store.get_workflow(workflow_id)
        if workflow is None:
            raise NotFoundError("workflow", workflow_id)
        if not workflow.is_active:
            raise NotActiveError(workflow_id)
        return await self.execute(workflow.owner_id, workflow_id, trigger_data)

    def record_outcome(self, outcome: RunOutcome) -> None:
        """Backend listener: move the execution record to its terminal status."""
        execution = self.store.finish_execution(
            outcome.run_id,
            outcome.status.value,
            result=outcome.result,
            error=outcome.error,
        )
        if execution is None:
            logger.warning("No execution record for run %s", outcome.run_id)

    def _next_run_id(self, workflow_id: int) -> str:
        # One process-wide stamp, strictly increasing, so bursts within a millisecond stay unique
        with self._lock:
            now_ms = int(time.time() * 1000)
            stamp = max(now_ms, self._last_run_ms + 1)
            self._last_run_ms = stamp
        return f"workflow-{workflow_id}-{stamp}"

    async def _start(
        self, workflow: WorkflowRecord, trigger_data: dict[str, Any]
    ) -> ExecutionRecord:
        kind = ActionKind.resolve(workflow.action_provider, workflow.action_id)
        run_input = AutomationRunInput(
            workflow_id=workflow.id,
            owner_id=workflow.owner_id,
            trigger_provider=workflow.trigger_provider,
            trigger_id=workflow.trigger_id,
            trigger_data=dict(trigger_data),
            action_kind=kind,
            action_config=dict(workflow.action_config or {}),
            action_credential_id=workflow.action_credential_id,
        )
        run_id = self._next_run_id(workflow.id)
        handle = await self.backend.start_run(run_id, run_input)

        started_at = utcnow()
        execution = self.store.insert_execution(
            workflow_id=workflow.id,
            owner_id=workflow.owner_id,
            durable_run_id=handle.run_id,
            durable_run_correlation=handle.correlation_id,
            status=ExecutionStatus.RUNNING.value,
            trigger_data=dict(trigger_data),
            started_at=started_at,
        )
        self.store.update_workflow(workflow.id, last_run_at=started_at)
        logger.info(
            "Dispatched workflow %s (%s -> %s) as run %s",
            workflow.id,
            workflow.trigger_key,
            workflow.action_key,
            handle.run_id,
        )
        return execution
