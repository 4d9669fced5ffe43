"""Application object that wires the automation engine together."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .core import EngineConfig, get_logger, setup_logging
from .engine import (
    ActionRunner,
    CredentialManager,
    ExecutionDispatcher,
    InProcessDurableBackend,
    PollingEngine,
    WorkflowLifecycleManager,
)
from .ingestion import GmailIngestionService, GmailWatchRenewalSweep, WebhookIngestionService
from .providers.catalog import ProviderCatalog, build_catalog, build_refreshers
from .providers.gmail import GmailWatchService
from .store import AutomationStore, DatabaseManager

logger = get_logger("app")

DRAIN_TIMEOUT_SECONDS = 30.0


class AutomationApp:
    """The automation engine with every collaborator wired in.

    Example:
        ```python
        from areaflow import AutomationApp

        app = AutomationApp.from_config("areaflow.yaml")
        await app.start()
        workflow = app.lifecycle.create_workflow("user-1", definition)
        await app.lifecycle.activate_workflow("user-1", workflow.id)
        ...
        await app.stop()
        ```
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        """Build every component; nothing runs until ``start``.

        Args:
            config: Engine configuration (defaults plus environment when None)
        """
        self.config: EngineConfig = config or EngineConfig()
        setup_logging(self.config.logging)

        self.db = DatabaseManager(self.config.database.url, echo=self.config.database.echo)
        self.store = AutomationStore(self.db)

        self.credentials = CredentialManager(
            self.store, build_refreshers(self.config.http), self.config.oauth_apps
        )
        self.scheduler = AsyncIOScheduler(timezone=self.config.timezone or "UTC")
        self.gmail_watch = GmailWatchService(
            self.store, self.credentials, self.config.gmail_watch, self.config.http
        )
        self.catalog: ProviderCatalog = build_catalog(
            self.config, job_scheduler=self.scheduler, gmail_watch=self.gmail_watch
        )
        self.triggers = self.catalog.triggers
        self.actions = self.catalog.actions

        runner = ActionRunner(self.actions, self.store, self.credentials, self.config.http)
        self.backend = InProcessDurableBackend(runner, self.config.durable)
        self.dispatcher = ExecutionDispatcher(self.store, self.backend)
        self.backend.add_listener(self.dispatcher.record_outcome)
        for trigger in self.catalog.self_firing_triggers():
            trigger.bind_dispatch(self.dispatcher.trigger_workflow_execution)

        self.lifecycle = WorkflowLifecycleManager(
            self.store, self.triggers, self.actions, self.dispatcher
        )

        self.engines: list[PollingEngine] = [
            PollingEngine(
                adapter,
                self.store,
                self.dispatcher.trigger_workflow_execution,
                interval_seconds=self.config.polling.interval_for(adapter.provider),
                credentials=self.credentials,
            )
            for adapter in self.catalog.adapters
            if self.config.polling.is_enabled_for(adapter.provider)
        ]
        self.gmail = GmailIngestionService(
            self.store,
            self.triggers,
            self.dispatcher.trigger_workflow_execution,
            self.gmail_watch,
            self.config.http,
        )
        self.webhooks = WebhookIngestionService(
            self.triggers, self.dispatcher.trigger_workflow_execution
        )
        self.watch_renewal = GmailWatchRenewalSweep(
            self.store, self.triggers, self.gmail_watch, self.config.gmail_watch
        )
        self._running = False

    @classmethod
    def from_config(cls, path: str | Path) -> AutomationApp:
        return cls(EngineConfig.from_yaml(path))

    @property
    def is_running(self) -> bool:
        return self._running

    def get_engine(self, provider: str) -> PollingEngine | None:
        return next((engine for engine in self.engines if engine.provider == provider), None)

    async def start(self) -> None:
        """Create tables, restore active workflows and start background loops."""
        if self._running:
            return
        self.db.create_tables()
        self.scheduler.start()

        report = await self.lifecycle.reload_active_workflows()
        logger.info(
            "Restored %d active workflow(s), %d failed", len(report.restored), len(report.failed)
        )

        for engine in self.engines:
            engine.start()
        if self.gmail_watch.enabled:
            self.watch_renewal.schedule(self.scheduler)

        self._running = True
        logger.info("Automation engine started with %d polling loop(s)", len(self.engines))

    async def stop(self) -> None:
        """Stop loops in reverse order and let in-flight runs finish."""
        if not self._running:
            return
        self._running = False

        self.watch_renewal.unschedule(self.scheduler)
        await asyncio.gather(*(engine.stop() for engine in self.engines))
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.backend.drain(timeout=DRAIN_TIMEOUT_SECONDS)
        self.db.dispose()
        logger.info("Automation engine stopped")

    async def run_forever(self) -> None:
        """Start, block until SIGINT/SIGTERM, then stop."""
        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, shutdown.set)
            except (NotImplementedError, RuntimeError) as exc:
                logger.warning("Unable to register handler for signal %s: %s", sig, exc)

        await self.start()
        try:
            await shutdown.wait()
            logger.info("Shutdown signal received")
        finally:
            await self.stop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except (NotImplementedError, RuntimeError) as exc:
                    logger.debug("Unable to restore handler for signal %s: %s", sig, exc)
