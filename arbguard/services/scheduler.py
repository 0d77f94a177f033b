"""
Scheduler service for periodic detection cycles.

Uses APScheduler in the background. Each job allows a single running
instance and coalesces missed runs, so cycles never overlap.
"""

from typing import TYPE_CHECKING, Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from arbguard.core.config import Settings, get_settings
from arbguard.core.errors import ArbGuardError
from arbguard.core.logging import get_logger

if TYPE_CHECKING:
    from arbguard.arb.engine import ArbEngine

logger = get_logger("scheduler")


class SchedulerService:
    """Scheduler service running jobs at fixed intervals."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.settings = settings or get_settings()
        self._scheduler = scheduler
        self._jobs: dict[str, str] = {}  # name -> job_id

    @property
    def scheduler(self) -> BackgroundScheduler:
        """Lazy-initialize scheduler."""
        if self._scheduler is None:
            self._scheduler = BackgroundScheduler(timezone="UTC")
        return self._scheduler

    def add_interval_job(
        self,
        name: str,
        func: Callable,
        seconds: int,
        args: Optional[tuple] = None,
        kwargs: Optional[dict] = None,
    ) -> str:
        """
        Add a job that runs at fixed intervals.

        Args:
            name: Job name
            func: Function to execute
            seconds: Interval in seconds
            args: Positional arguments
            kwargs: Keyword arguments

        Returns:
            Job ID
        """
        if seconds <= 0:
            raise ValueError(f"Interval must be positive, got {seconds}")

        job = self.scheduler.add_job(
            func,
            "interval",
            seconds=seconds,
            args=args or (),
            kwargs=kwargs or {},
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._jobs[name] = job.id
        logger.info(f"Added interval job: {name} every {seconds}s")
        return job.id

    def remove_job(self, name: str) -> bool:
        """Remove a scheduled job. Returns True if it existed."""
        if name in self._jobs:
            self.scheduler.remove_job(self._jobs[name])
            del self._jobs[name]
            logger.info(f"Removed job: {name}")
            return True
        return False

    def start(self) -> None:
        """Start the scheduler."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler, waiting for a running cycle to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler stopped")

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get list of scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })
        return jobs

    def setup_engine(self, engine: "ArbEngine", name: str = "detection_cycle") -> str:
        """
        Register the engine's detection cycle at the configured interval.

        Cycle errors are logged and the job keeps running; retrying is
        left to the next tick.
        """

        def tick() -> None:
            try:
                engine.run_cycle()
            except ArbGuardError as e:
                logger.error(f"Detection cycle failed: {e.to_dict()}")

        return self.add_interval_job(name, tick, self.settings.cycle_interval_seconds)


def create_scheduler_service(
    settings: Optional[Settings] = None,
) -> SchedulerService:
    """Create scheduler service."""
    return SchedulerService(settings=settings)
