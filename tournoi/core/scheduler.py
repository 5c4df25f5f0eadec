"""
Background refresh scheduler.

Runs the scheduled registration refresh on a fixed interval with
APScheduler. The job itself never raises; every run is logged with its
outcome.
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tournoi.core import metrics
from tournoi.core.logging import get_logger

logger = get_logger(__name__)

REFRESH_JOB_ID = "refresh_cache"

RefreshJob = Callable[[], Awaitable[Dict[str, Any]]]


class RefreshScheduler:
    """
    Owns the APScheduler instance and the refresh job.

    Args:
        job: Coroutine function returning the refresh result dict
        interval_seconds: Time between two runs
    """

    def __init__(self, job: RefreshJob, interval_seconds: int = 60):
        self.job = job
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting refresh scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # A slow refresh is never run twice in parallel
                "misfire_grace_time": 30,
            },
        )
        self._schedule_refresh()

        self.scheduler.start()
        self.running = True
        metrics.scheduler_running.set(1)

        logger.info(f"Scheduler started with {len(self.scheduler.get_jobs())} jobs")
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        metrics.scheduler_running.set(0)
        logger.info("Scheduler stopped")

    async def run_refresh(self) -> Dict[str, Any]:
        """Run the refresh job once and log its outcome."""
        result = await self.job()
        if result.get("success"):
            logger.info(f"Scheduled refresh: {result.get('message')}")
        else:
            logger.error(f"Scheduled refresh failed: {result.get('error')}")
        return result

    def _schedule_refresh(self):
        """
        Schedule: refresh players cache from HelloAsso.

        Frequency: every ``interval_seconds`` (one minute by default)
        """
        if self.scheduler is None:
            return

        self.scheduler.add_job(
            self.run_refresh,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=REFRESH_JOB_ID,
            name="Refresh players cache",
            replace_existing=True,
        )

    def _log_scheduled_jobs(self):
        if self.scheduler is None:
            return
        for job in self.scheduler.get_jobs():
            logger.info(f"  {job.id}: {job.name} ({job.trigger}), next run {job.next_run_time}")


_scheduler: Optional[RefreshScheduler] = None


async def start_scheduler(job: RefreshJob, interval_seconds: int = 60) -> RefreshScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = RefreshScheduler(job, interval_seconds)
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[RefreshScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
