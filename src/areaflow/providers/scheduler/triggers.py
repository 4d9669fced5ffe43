"""Time-based triggers: cron schedules and fire-once-on-activation.

Unlike polled or pushed triggers these fire on their own, so they hold a
dispatch callback bound by the application once the dispatcher exists.
"""

from __future__ import annotations

import contextlib
from datetime import datetime, timezone
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger as APCronTrigger
from pydantic import Field, field_validator

from ...core.errors import RegistrationError
from ...engine.polling import DispatchFn
from ...registry.capabilities import (
    CapabilityConfig,
    EventPayload,
    Registration,
    RegistrationStore,
    SetupResult,
    Trigger,
    TriggerType,
)


class CronConfig(CapabilityConfig):
    cron: str = Field(..., min_length=1, description="Cron expression (m h dom mon dow)")

    @field_validator("cron")
    @classmethod
    def parse_expression(cls, value: str) -> str:
        value = value.strip()
        try:
            APCronTrigger.from_crontab(value)
        except ValueError as exc:
            raise ValueError(f"invalid cron expression: {exc}") from exc
        return value


class ScheduledRun(EventPayload):
    scheduled_at: str
    schedule: str


class Activated(EventPayload):
    triggered_at: str
    source: str = "on-activation"


def job_id(workflow_id: int) -> str:
    return f"cron-workflow-{workflow_id}"


class SelfFiringTrigger(Trigger):
    """Trigger that dispatches its own events through a bound callback."""

    provider = "scheduler"

    def __init__(self, store: RegistrationStore | None = None) -> None:
        super().__init__(store)
        self._dispatch: DispatchFn | None = None

    def bind_dispatch(self, dispatch: DispatchFn) -> None:
        self._dispatch = dispatch

    async def fire(self, workflow_id: int, data: dict[str, Any]) -> bool:
        """Dispatch one event; failures are logged, never raised."""
        if self._dispatch is None:
            self.logger.error(
                "No dispatcher bound, dropping %s event for workflow %s", self.key, workflow_id
            )
            return False
        try:
            await self._dispatch(workflow_id, data)
        except Exception as exc:
            self.logger.error("Failed to trigger workflow %s: %s", workflow_id, exc)
            return False
        self.logger.debug("Triggered workflow %s from %s", workflow_id, self.key)
        return True


class CronTrigger(SelfFiringTrigger):
    id = "cron"
    name = "Cron Schedule"
    description = "Run on a cron expression"
    trigger_type = TriggerType.SCHEDULED
    config_model = CronConfig
    output_model = ScheduledRun

    def __init__(
        self,
        store: RegistrationStore | None = None,
        scheduler: AsyncIOScheduler | None = None,
        timezone_name: str | None = None,
    ) -> None:
        super().__init__(store)
        self.scheduler = scheduler
        self.timezone_name = timezone_name

    async def setup(
        self,
        registration: Registration,
        config: CronConfig,
        *,
        restoring: bool = False,
    ) -> SetupResult:
        if self.scheduler is None:
            return SetupResult.fail(
                RegistrationError(
                    "No scheduler available for cron triggers",
                    capability=self.key,
                    workflow_id=registration.workflow_id,
                )
            )
        trigger = APCronTrigger.from_crontab(config.cron, timezone=self.timezone_name)
        job = self.scheduler.add_job(
            self.run_scheduled,
            trigger=trigger,
            args=[registration.workflow_id, config.cron],
            id=job_id(registration.workflow_id),
            name=f"workflow {registration.workflow_id} ({config.cron})",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        return SetupResult.ok(jobId=job.id)

    async def teardown(self, registration: Registration) -> None:
        if self.scheduler is None:
            return
        with contextlib.suppress(JobLookupError):
            self.scheduler.remove_job(job_id(registration.workflow_id))

    async def run_scheduled(self, workflow_id: int, cron: str) -> None:
        await self.fire(
            workflow_id,
            ScheduledRun(
                scheduled_at=datetime.now(timezone.utc).isoformat(), schedule=cron
            ).to_event(),
        )


class OnActivationTrigger(SelfFiringTrigger):
    id = "on-activation"
    name = "On Activation"
    description = "Run once immediately when the automation is activated"
    trigger_type = TriggerType.MANUAL
    output_model = Activated

    async def setup(
        self,
        registration: Registration,
        config: CapabilityConfig,
        *,
        restoring: bool = False,
    ) -> SetupResult:
        # A restart is not an activation
        if restoring:
            return SetupResult.ok()
        fired = await self.fire(
            registration.workflow_id,
            Activated(triggered_at=datetime.now(timezone.utc).isoformat()).to_event(),
        )
        return SetupResult.ok(fired=fired)
