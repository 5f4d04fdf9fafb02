"""APScheduler-based maintenance scheduler.

Owns the two background timers the aggregator relies on:

- a periodic sweep that drops expired cache entries,
- a local-midnight job that resets every source's daily request quota.

The jobs live only as long as the scheduler: stop() removes them, so
nothing keeps firing after application shutdown.
"""

from typing import Callable, Iterable, List, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from dealradar.marketplace.cache import DealCache
from dealradar.marketplace.sources.base import SourceAdapter

logger = structlog.get_logger(__name__)

CACHE_SWEEP_JOB_ID = "cache_sweep"
DAILY_RESET_JOB_ID = "daily_quota_reset"


class MaintenanceScheduler:
    """Runs cache sweeps and daily quota resets on APScheduler.

    A failing job is logged and retried on its next trigger; the scheduler
    itself keeps running.
    """

    def __init__(
        self,
        cache: DealCache,
        adapters: Iterable[SourceAdapter],
        sweep_interval_seconds: int = 60,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        """Initialize maintenance scheduler.

        Args:
            cache: Cache to sweep
            adapters: Adapters whose daily quotas reset at midnight
            sweep_interval_seconds: Seconds between cache sweeps
            scheduler: APScheduler instance (a local-time AsyncIOScheduler by default)
        """
        self.cache = cache
        self.adapters: List[SourceAdapter] = list(adapters)
        self.sweep_interval_seconds = sweep_interval_seconds
        # Quotas reset at local midnight, so no fixed timezone here
        self.scheduler = scheduler or AsyncIOScheduler()
        self._started = False
        self.logger = logger.bind(service="maintenance_scheduler")

    def start(self) -> None:
        """Register the maintenance jobs and start the scheduler.

        Must be called from within a running event loop.
        """
        if self._started:
            self.logger.warning("scheduler_already_running")
            return

        self._add_jobs()
        self.scheduler.start()
        self._started = True
        self.logger.info(
            "scheduler_started",
            sweep_interval_seconds=self.sweep_interval_seconds,
            adapters=len(self.adapters),
        )

    def stop(self) -> None:
        """Stop the scheduler and drop its jobs.

        AsyncIOScheduler may finish its shutdown on a later loop tick, so
        ``running`` reports this wrapper's own state.
        """
        if not self._started:
            self.logger.warning("scheduler_not_running")
            return

        self._started = False
        self.scheduler.remove_all_jobs()
        self.scheduler.shutdown(wait=False)
        self.logger.info("scheduler_stopped")

    @property
    def running(self) -> bool:
        return self._started

    def get_jobs(self) -> List[Job]:
        return self.scheduler.get_jobs()

    def sweep_cache(self) -> int:
        """Drop expired cache entries. Returns how many were removed."""
        removed = self.cache.cleanup()
        if removed:
            self.logger.info("cache_sweep_completed", removed=removed, remaining=len(self.cache))
        return removed

    def reset_daily_quotas(self) -> None:
        """Reset the daily request counter of every adapter."""
        for adapter in self.adapters:
            adapter.reset_daily()
        self.logger.info("daily_quotas_reset", sources=[adapter.name.value for adapter in self.adapters])

    def _add_jobs(self) -> None:
        self.scheduler.add_job(
            func=self._run_job,
            args=[self.sweep_cache],
            trigger=IntervalTrigger(seconds=self.sweep_interval_seconds),
            id=CACHE_SWEEP_JOB_ID,
            name="Sweep expired cache entries",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            func=self._run_job,
            args=[self.reset_daily_quotas],
            trigger=CronTrigger(hour=0, minute=0),
            id=DAILY_RESET_JOB_ID,
            name="Reset daily source quotas",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def _run_job(self, job: Callable[[], object]) -> None:
        """Wrapper APScheduler calls, so one failed run is only logged."""
        try:
            job()
        except Exception as e:
            self.logger.error("maintenance_job_failed", job=job.__name__, error=str(e), exc_info=True)
