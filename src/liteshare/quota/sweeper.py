"""APScheduler-based background sweep of stale rate limit entries."""

import logging
from datetime import datetime
from typing import Any

from apscheduler.executors.pool import ThreadPoolExecutor as APSThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from liteshare.quota.store import RateLimitStore

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "rate_limit_sweep"


class Sweeper:
    """
    Periodically evicts entries whose window has fully elapsed.

    Runs on its own timer, independent of request traffic. Sweeping only
    bounds memory; expired entries are already ignored on access.
    """

    def __init__(
        self,
        store: RateLimitStore,
        interval_seconds: float = 600,
        timezone: str = "UTC",
    ) -> None:
        """
        Initialize the sweeper.

        Args:
            store: Store to sweep
            interval_seconds: Seconds between sweeps
            timezone: Scheduler timezone
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self._store = store
        self._interval_seconds = interval_seconds
        self._timezone = timezone
        self._scheduler: BackgroundScheduler | None = None
        self.last_removed = 0

    @property
    def scheduler(self) -> BackgroundScheduler:
        """Get or create the scheduler instance."""
        if self._scheduler is None:
            self._scheduler = self._create_scheduler()
        return self._scheduler

    def _create_scheduler(self) -> BackgroundScheduler:
        """Create the scheduler with a single worker and the sweep job."""
        scheduler = BackgroundScheduler(
            executors={"default": APSThreadPoolExecutor(max_workers=1)},
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # Prevent overlapping sweeps
            },
            timezone=self._timezone,
        )
        scheduler.add_job(
            self.run_now,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=SWEEP_JOB_ID,
            name=SWEEP_JOB_ID,
            replace_existing=True,
        )
        return scheduler

    def run_now(self) -> int:
        """
        Sweep immediately on the calling thread.

        Returns:
            Number of entries removed
        """
        try:
            self.last_removed = self._store.sweep()
        except Exception:
            logger.exception("Rate limit sweep failed")
            return 0
        return self.last_removed

    def start(self) -> None:
        """Start sweeping in the background."""
        if self.is_running:
            logger.warning("Sweeper is already running")
            return

        self.scheduler.start()
        logger.info(f"Sweeper started ({self._interval_seconds}s interval)")

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop sweeping.

        Args:
            wait: Wait for a running sweep to complete
        """
        if self.is_running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Sweeper stopped")
        self._scheduler = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def get_status(self) -> dict[str, Any]:
        """Describe the sweep job for health output."""
        next_run: datetime | None = None
        if self.is_running:
            job = self._scheduler.get_job(SWEEP_JOB_ID)
            if job is not None:
                next_run = job.next_run_time

        return {
            "running": self.is_running,
            "interval_seconds": self._interval_seconds,
            "next_run_time": next_run.isoformat() if next_run else None,
            "last_removed": self.last_removed,
            "tracked_entries": len(self._store),
        }
