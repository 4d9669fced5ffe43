"""Durable execution backend contract and an in-process implementation.

The dispatcher only needs to start a run and record its correlation id. The
in-process backend runs each action as an asyncio task with bounded retries,
exponential backoff, a per-attempt timeout and a whole-run timeout, then
reports the terminal outcome to its listeners.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from ..core.config import DurableBackendConfig
from ..core.errors import (
    CredentialError,
    NotFoundError,
    UnsupportedActionError,
    ValidationError,
)
from ..core.logger import get_logger
from ..registry.kinds import ActionKind
from ..store.models import ExecutionStatus

logger = get_logger("engine.durable")

NON_RETRYABLE = (CredentialError, NotFoundError, UnsupportedActionError, ValidationError)


@dataclass
class AutomationRunInput:
    """Everything a durable run needs to execute one workflow's action."""

    workflow_id: int
    owner_id: str
    trigger_provider: str
    trigger_id: str
    trigger_data: dict[str, Any]
    action_kind: ActionKind
    action_config: dict[str, Any]
    action_credential_id: int | None = None

    @property
    def action_provider(self) -> str:
        return self.action_kind.provider

    @property
    def action_id(self) -> str:
        return self.action_kind.action_id

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["action_kind"] = self.action_kind.value
        return data


@dataclass
class DurableRunHandle:
    """Identifiers returned when a run is started."""

    run_id: str
    correlation_id: str
    task_queue: str


@dataclass
class RunOutcome:
    """Terminal state of a durable run."""

    run_id: str
    status: ExecutionStatus
    result: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = 0


class DurableBackend(Protocol):
    """What the dispatcher requires from an execution backend."""

    async def start_run(self, run_id: str, run_input: AutomationRunInput) -> DurableRunHandle: ...

    async def get_run_result(self, run_id: str) -> RunOutcome: ...

    async def cancel_run(self, run_id: str) -> None: ...

    async def is_running(self, run_id: str) -> bool: ...


class _RunFailed(Exception):
    """Terminal failure of the attempt loop."""

    def __init__(self, error: Exception, attempts: int) -> None:
        self.error = error
        self.attempts = attempts
        super().__init__(str(error))


RunnerFn = Callable[[AutomationRunInput], Awaitable[dict[str, Any]]]
OutcomeListener = Callable[[RunOutcome], None]


@dataclass
class _Run:
    handle: DurableRunHandle
    task: asyncio.Task[RunOutcome]
    outcome: RunOutcome | None = None


class InProcessDurableBackend:
    """Runs actions as asyncio tasks with retry and timeout semantics.

    A run leaves the live table as soon as its outcome is reported; the most
    recent ``finished_runs_retained`` outcomes stay available to
    ``get_run_result``.
    """

    def __init__(
        self,
        runner: RunnerFn,
        config: DurableBackendConfig | None = None,
        listeners: list[OutcomeListener] | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            runner: Coroutine executing one attempt of a run
            config: Timeouts and retry policy
            listeners: Callbacks receiving each terminal outcome
        """
        self.runner = runner
        self.config = config or DurableBackendConfig()
        self._listeners: list[OutcomeListener] = list(listeners or [])
        self._runs: dict[str, _Run] = {}
        self._finished: OrderedDict[str, RunOutcome] = OrderedDict()

    def add_listener(self, listener: OutcomeListener) -> None:
        self._listeners.append(listener)

    async def start_run(self, run_id: str, run_input: AutomationRunInput) -> DurableRunHandle:
        if run_id in self._runs:
            raise ValueError(f"Run already started: {run_id}")

        handle = DurableRunHandle(
            run_id=run_id,
            correlation_id=uuid.uuid4().hex,
            task_queue=self.config.task_queue,
        )
        task = asyncio.create_task(self._execute(run_id, run_input), name=f"run-{run_id}")
        run = _Run(handle=handle, task=task)
        self._runs[run_id] = run
        self._finished.pop(run_id, None)
        # fires even when the task is cancelled before its first step
        task.add_done_callback(lambda done: self._on_task_done(run, done))
        logger.info(
            "Started run %s for workflow %s (%s)",
            run_id,
            run_input.workflow_id,
            run_input.action_kind.value,
        )
        return handle

    async def get_run_result(self, run_id: str) -> RunOutcome:
        finished = self._finished.get(run_id)
        if finished is not None:
            return finished
        run = self._get(run_id)
        await asyncio.wait({run.task})
        # the done callback registered in start_run runs before wait() returns
        if run.outcome is None:
            raise RuntimeError(f"Run {run_id} finished without an outcome")
        return run.outcome

    async def cancel_run(self, run_id: str) -> None:
        if run_id in self._finished:
            return
        run = self._get(run_id)
        if run.task.done():
            return
        run.task.cancel()
        await asyncio.wait({run.task})

    async def is_running(self, run_id: str) -> bool:
        if run_id in self._finished:
            return False
        return not self._get(run_id).task.done()

    def running_runs(self) -> list[str]:
        return [run_id for run_id, run in self._runs.items() if not run.task.done()]

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight runs, cancelling whatever is left after ``timeout``."""
        pending = {run.task for run in self._runs.values() if not run.task.done()}
        if not pending:
            return
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.wait(still_pending)

    def _get(self, run_id: str) -> _Run:
        run = self._runs.get(run_id)
        if run is None:
            raise NotFoundError("run", run_id)
        return run

    async def _execute(self, run_id: str, run_input: AutomationRunInput) -> RunOutcome:
        try:
            result, attempts = await asyncio.wait_for(
                self._attempt_loop(run_input), timeout=self.config.run_timeout_seconds
            )
        except asyncio.TimeoutError:
            return RunOutcome(
                run_id,
                ExecutionStatus.FAILED,
                error=f"Run timed out after {self.config.run_timeout_seconds:.0f}s",
            )
        except _RunFailed as exc:
            return RunOutcome(
                run_id, ExecutionStatus.FAILED, error=str(exc.error), attempts=exc.attempts
            )
        return RunOutcome(run_id, ExecutionStatus.COMPLETED, result=result, attempts=attempts)

    async def _attempt_loop(self, run_input: AutomationRunInput) -> tuple[dict[str, Any], int]:
        policy = self.config.retry
        for attempt in range(1, policy.max_attempts + 1):
            try:
                result = await asyncio.wait_for(
                    self.runner(run_input), timeout=self.config.attempt_timeout_seconds
                )
                return result, attempt
            except NON_RETRYABLE as exc:
                raise _RunFailed(exc, attempt) from exc
            except Exception as exc:
                if attempt >= policy.max_attempts:
                    raise _RunFailed(exc, attempt) from exc
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Attempt %d/%d for workflow %s failed (%s), retrying in %.1fs",
                    attempt,
                    policy.max_attempts,
                    run_input.workflow_id,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
        raise RuntimeError("Retry loop exited without a result")

    def _on_task_done(self, run: _Run, task: asyncio.Task[RunOutcome]) -> None:
        run_id = run.handle.run_id
        if task.cancelled():
            outcome = RunOutcome(run_id, ExecutionStatus.CANCELLED, error="Run cancelled")
        elif task.exception() is not None:
            outcome = RunOutcome(run_id, ExecutionStatus.FAILED, error=str(task.exception()))
        else:
            outcome = task.result()
        run.outcome = outcome
        if self._runs.get(run_id) is run:
            del self._runs[run_id]
        self._retain(outcome)
        self._notify(outcome)

    def _retain(self, outcome: RunOutcome) -> None:
        limit = self.config.finished_runs_retained
        if limit <= 0:
            return
        self._finished[outcome.run_id] = outcome
        self._finished.move_to_end(outcome.run_id)
        while len(self._finished) > limit:
            self._finished.popitem(last=False)

    def _notify(self, outcome: RunOutcome) -> None:
        if outcome.status is ExecutionStatus.COMPLETED:
            logger.info("Run %s completed after %d attempt(s)", outcome.run_id, outcome.attempts)
        else:
            logger.warning("Run %s %s: %s", outcome.run_id, outcome.status.value, outcome.error)

        for listener in self._listeners:
            try:
                listener(outcome)
            except Exception as exc:
                logger.error(
                    "Run outcome listener failed for %s: %s", outcome.run_id, exc, exc_info=True
                )
