"""Generic polling reconciliation engine.

One ``PollingEngine`` runs per polling provider. Provider specifics live in a
``PollingAdapter`` that knows how to fetch a snapshot, diff it against a
cursor and advance the cursor; the engine owns scheduling, credential
resolution, per-partition mutual exclusion, failure isolation and cursor
persistence.

A *partition* is the unit of serialization: one credential for OAuth
providers, or a key derived from trigger config (e.g. a bot token) for
providers that do not use stored credentials.
"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..core.logger import get_logger
from ..registry.capabilities import Registration, Trigger
from ..store.models import CredentialRecord
from ..store.repository import AutomationStore, index_by_id
from .credentials import CredentialManager, resolve_credential

logger = get_logger("engine.polling")

DispatchFn = Callable[[int, dict[str, Any]], Awaitable[Any]]


@dataclass
class PollTarget:
    """One independently cursored sub-check inside a partition pass.

    The cursor lives at ``state[key]``, or ``state[key][sub_key]`` when
    ``sub_key`` is set (e.g. one stargazer cursor per repository).
    """

    key: str
    workflows: dict[str, list[int]]
    params: dict[str, Any] = field(default_factory=dict)
    sub_key: str | None = None


@dataclass
class DetectedEvent:
    """A new external item to dispatch.

    ``workflow_ids`` restricts delivery to specific workflows; otherwise every
    workflow registered for ``trigger_id`` in the target receives it.
    """

    trigger_id: str
    data: dict[str, Any]
    workflow_ids: list[int] | None = None


@dataclass
class PollPartition:
    """Work bucket for one credential (or config-derived key) in a tick."""

    key: str
    credential: CredentialRecord | None
    tasks: dict[str, list[int]] = field(default_factory=dict)
    registrations: dict[int, Registration] = field(default_factory=dict)

    def add(self, trigger_id: str, registration: Registration) -> None:
        self.tasks.setdefault(trigger_id, []).append(registration.workflow_id)
        self.registrations[registration.workflow_id] = registration


@dataclass
class TickReport:
    """Summary of one tick, mostly for logs and tests."""

    partitions: int = 0
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    dispatched: int = 0


class CursorExpired(Exception):
    """Raised by an adapter when the stored cursor is no longer valid upstream.

    The engine stores ``seed`` in its place and dispatches nothing.
    """

    def __init__(self, seed: Any, reason: str = "cursor expired") -> None:
        self.seed = seed
        super().__init__(reason)


class PollingAdapter(ABC):
    """Provider-specific half of a polling loop."""

    provider: ClassVar[str]
    requires_credentials: ClassVar[bool] = True

    def __init__(self, triggers: Sequence[Trigger]) -> None:
        self.triggers = list(triggers)

    def partition_key(self, registration: Registration) -> str | None:
        """Partition key for credential-less providers (None skips the registration)."""
        return None

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        """Split a partition into sub-checks; by default one per trigger id."""
        return [
            PollTarget(key=trigger_id, workflows={trigger_id: list(ids)})
            for trigger_id, ids in partition.tasks.items()
        ]

    @abstractmethod
    def connect(self, partition: PollPartition) -> AbstractAsyncContextManager[Any]:
        """Return an async context manager yielding the provider client."""

    @abstractmethod
    async def fetch_snapshot(self, client: Any, target: PollTarget, cursor: Any) -> Any:
        """Fetch the provider's current state for a target."""

    @abstractmethod
    def seed(self, snapshot: Any, target: PollTarget) -> Any:
        """Initial cursor for a first observation."""

    @abstractmethod
    def diff(self, cursor: Any, snapshot: Any, target: PollTarget) -> list[DetectedEvent]:
        """New events since the cursor, oldest first."""

    @abstractmethod
    def advance(
        self, cursor: Any, snapshot: Any, events: list[DetectedEvent], target: PollTarget
    ) -> Any:
        """Cursor after the given events were dispatched."""


class PollingEngine:
    """Recurring reconciliation loop for one provider."""

    def __init__(
        self,
        adapter: PollingAdapter,
        store: AutomationStore,
        dispatch: DispatchFn,
        interval_seconds: float = 20.0,
        credentials: CredentialManager | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            adapter: Provider adapter
            store: Relational store
            dispatch: ``trigger_workflow_execution``-compatible coroutine
            interval_seconds: Delay between ticks
            credentials: Token refresher used before each credential pass
        """
        self.adapter = adapter
        self.store = store
        self.dispatch = dispatch
        self.interval_seconds = interval_seconds
        self.credentials = credentials
        self._task: asyncio.Task[None] | None = None
        self._in_progress: set[str] = set()
        self._passes: set[asyncio.Task[int]] = set()
        self._memory_state: dict[str, dict[str, Any]] = {}

    @property
    def provider(self) -> str:
        return self.adapter.provider

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the recurring loop; a no-op when already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_loop(), name=f"poll-{self.provider}")
        logger.info(
            "Started %s polling (interval: %.1fs)", self.provider, self.interval_seconds
        )

    async def stop(self) -> None:
        """Stop the timer and let in-flight partition passes finish."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        if self._passes:
            await asyncio.wait(set(self._passes))
        logger.info("Stopped %s polling", self.provider)

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as exc:
                logger.error("%s polling tick failed: %s", self.provider, exc, exc_info=True)
            await asyncio.sleep(self.interval_seconds)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def tick(self) -> TickReport:
        """Run one reconciliation pass over every partition."""
        report = TickReport()
        partitions = self.collect_partitions()
        if not partitions:
            return report

        tasks: dict[asyncio.Task[int], str] = {}
        for partition in partitions:
            if partition.key in self._in_progress:
                logger.debug(
                    "%s partition %s still in progress, skipping", self.provider, partition.key
                )
                report.skipped.append(partition.key)
                continue
            self._in_progress.add(partition.key)
            task = asyncio.create_task(self._run_partition(partition))
            self._passes.add(task)
            task.add_done_callback(self._passes.discard)
            tasks[task] = partition.key

        report.partitions = len(tasks)
        if not tasks:
            return report

        # asyncio.wait leaves the passes running if this tick is cancelled
        done, _ = await asyncio.wait(tasks)
        for task in done:
            if task.cancelled() or task.exception() is not None:
                report.failed.append(tasks[task])
            elif task.result() < 0:
                report.failed.append(tasks[task])
            else:
                report.dispatched += task.result()
        return report

    def collect_partitions(self) -> list[PollPartition]:
        """Bucket every live registration under the partition that will poll it."""
        registrations: list[tuple[str, Registration]] = [
            (trigger.id, registration)
            for trigger in self.adapter.triggers
            for registration in trigger.get_registrations().values()
        ]
        if not registrations:
            return []

        workflows = index_by_id(
            self.store.get_workflows_by_ids(reg.workflow_id for _, reg in registrations)
        )
        live = [(tid, reg) for tid, reg in registrations if reg.workflow_id in workflows]
        if not live:
            return []

        partitions: dict[str, PollPartition] = {}

        if not self.adapter.requires_credentials:
            for trigger_id, registration in live:
                key = self.adapter.partition_key(registration)
                if key is None:
                    continue
                partitions.setdefault(key, PollPartition(key=key, credential=None)).add(
                    trigger_id, registration
                )
            return list(partitions.values())

        owners = {workflows[reg.workflow_id].owner_id for _, reg in live}
        explicit = {reg.credential_id for _, reg in live if reg.credential_id is not None}
        credentials = self.store.list_credentials(self.provider, owners, explicit)
        by_id = index_by_id(credentials)
        by_owner: dict[str, list[CredentialRecord]] = defaultdict(list)
        for credential in credentials:
            by_owner[credential.owner_id].append(credential)

        for trigger_id, registration in live:
            owner_id = workflows[registration.workflow_id].owner_id
            credential = resolve_credential(owner_id, registration, by_owner[owner_id], by_id)
            if credential is None:
                logger.debug(
                    "No %s credential for workflow %s (owner %s), skipping this pass",
                    self.provider,
                    registration.workflow_id,
                    owner_id,
                )
                continue
            key = f"credential:{credential.id}"
            partitions.setdefault(key, PollPartition(key=key, credential=credential)).add(
                trigger_id, registration
            )
        return list(partitions.values())

    # ------------------------------------------------------------------
    # Partition pass
    # ------------------------------------------------------------------

    async def _run_partition(self, partition: PollPartition) -> int:
        """Check one partition; returns the dispatch count, -1 on failure."""
        dispatched = 0
        try:
            if partition.credential is not None and self.credentials is not None:
                partition.credential = await self.credentials.ensure_fresh(partition.credential)

            state = self._load_state(partition)
            changed = False
            async with self.adapter.connect(partition) as client:
                for target in self.adapter.plan(partition):
                    try:
                        target_changed, count = await self._run_target(client, target, state)
                    except Exception as exc:
                        logger.error(
                            "%s check %s failed for %s: %s",
                            self.provider,
                            target.sub_key or target.key,
                            partition.key,
                            exc,
                        )
                        continue
                    changed = changed or target_changed
                    dispatched += count

            if changed:
                self._save_state(partition, state)
            return dispatched
        except Exception as exc:
            logger.error(
                "%s pass failed for %s: %s", self.provider, partition.key, exc, exc_info=True
            )
            return -1
        finally:
            self._in_progress.discard(partition.key)

    async def _run_target(
        self, client: Any, target: PollTarget, state: dict[str, Any]
    ) -> tuple[bool, int]:
        cursor = self._read_cursor(state, target)
        try:
            snapshot = await self.adapter.fetch_snapshot(client, target, cursor)
        except CursorExpired as reset:
            logger.info("%s cursor %s reset: %s", self.provider, target.key, reset)
            self._write_cursor(state, target, reset.seed)
            return True, 0

        if cursor is None:
            self._write_cursor(state, target, self.adapter.seed(snapshot, target))
            logger.debug("%s cursor %s initialized", self.provider, target.sub_key or target.key)
            return True, 0

        events = self.adapter.diff(cursor, snapshot, target)
        count = 0
        for event in events:
            workflow_ids = (
                event.workflow_ids
                if event.workflow_ids is not None
                else target.workflows.get(event.trigger_id, [])
            )
            for workflow_id in workflow_ids:
                if await self._dispatch_one(workflow_id, event.data):
                    count += 1

        new_cursor = self.adapter.advance(cursor, snapshot, events, target)
        if new_cursor != cursor:
            self._write_cursor(state, target, new_cursor)
            return True, count
        return False, count

    async def _dispatch_one(self, workflow_id: int, data: dict[str, Any]) -> bool:
        try:
            await self.dispatch(workflow_id, data)
            return True
        except Exception as exc:
            logger.warning(
                "%s dispatch to workflow %s failed: %s", self.provider, workflow_id, exc
            )
            return False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _load_state(self, partition: PollPartition) -> dict[str, Any]:
        if partition.credential is not None:
            return dict(partition.credential.polling_state or {})
        return dict(self._memory_state.get(partition.key, {}))

    def _save_state(self, partition: PollPartition, state: dict[str, Any]) -> None:
        if partition.credential is not None:
            self.store.save_polling_state(partition.credential.id, state)
        else:
            self._memory_state[partition.key] = dict(state)

    @staticmethod
    def _read_cursor(state: dict[str, Any], target: PollTarget) -> Any:
        value = state.get(target.key)
        if target.sub_key is None:
            return value
        if not isinstance(value, dict):
            return None
        return value.get(target.sub_key)

    @staticmethod
    def _write_cursor(state: dict[str, Any], target: PollTarget, cursor: Any) -> None:
        if target.sub_key is None:
            state[target.key] = cursor
            return
        nested = dict(state.get(target.key) or {})
        nested[target.sub_key] = cursor
        state[target.key] = nested
