"""Periodic, startup and manual triggers for the ingestion orchestrator."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from trustwire.config import get_schedule_config

if TYPE_CHECKING:
    from trustwire.models import PipelineRun
    from trustwire.pipeline import IngestionOrchestrator

logger = logging.getLogger(__name__)

SCHEDULED_HOURS = (0, 6, 12, 18)


def next_scheduled_run(now: datetime, hours: tuple[int, ...] = SCHEDULED_HOURS) -> datetime:
    """First scheduled UTC hour strictly after ``now``, rolling over to tomorrow."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    for hour in sorted(hours):
        candidate = midnight + timedelta(hours=hour)
        if candidate > now:
            return candidate
    return midnight + timedelta(days=1, hours=min(hours))


class IngestionScheduler:
    """Drive one orchestrator from a UTC cron trigger, a startup delay and on demand."""

    def __init__(self, config: dict, orchestrator: IngestionOrchestrator):
        self.config = config
        self.orchestrator = orchestrator
        cfg = get_schedule_config(config)
        self.hours = tuple(cfg["hours"])
        self.initial_delay = cfg["initial_delay_seconds"]
        self.run_on_start = cfg["run_on_start"]
        self.scheduler: AsyncIOScheduler | None = None

    async def _scheduled_run(self, trigger: str) -> None:
        logger.info("Triggered %s ingestion", trigger)
        await self.orchestrator.run()

    def start(self) -> None:
        """Register jobs and start; must be called from inside a running event loop."""
        if self.scheduler is not None:
            return
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.scheduler.add_job(
            self._scheduled_run,
            CronTrigger(hour=",".join(str(h) for h in self.hours), minute=0, timezone=timezone.utc),
            args=["scheduled"],
            id="ingestion_periodic",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if self.run_on_start:
            run_at = datetime.now(timezone.utc) + timedelta(seconds=self.initial_delay)
            self.scheduler.add_job(
                self._scheduled_run,
                DateTrigger(run_date=run_at),
                args=["initial"],
                id="ingestion_initial",
                replace_existing=True,
            )
        self.scheduler.start()
        logger.info(
            "Scheduler started; runs at %s UTC, next at %s",
            ", ".join(f"{h:02d}:00" for h in self.hours),
            self.next_run().isoformat(),
        )

    def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
            logger.info("Scheduler stopped")

    async def trigger_manual(self) -> PipelineRun | None:
        logger.info("Manual ingestion triggered")
        return await self.orchestrator.run()

    def next_run(self, now: datetime | None = None) -> datetime:
        return next_scheduled_run(now or datetime.now(timezone.utc), self.hours)
