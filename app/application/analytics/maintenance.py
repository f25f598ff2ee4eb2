"""
Maintenance scheduler for the analytics engine.

Runs the periodic housekeeping jobs:
- **validate_patterns** (hourly): close elapsed patterns in the store,
  prune pattern history past the memory window and drop stale predictions
- **sweep_cache** (every 10 minutes): sweep the transaction history cache

The scheduler itself is driven externally through ``tick(now)`` so it can
be tested without timers. In the running service an APScheduler
AsyncIOScheduler calls ``tick`` on a fixed interval, on the event loop
thread, so jobs never run concurrently with request handlers.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.application.analytics.identify_patterns import IdentifyPatternsUseCase
from app.application.analytics.memory import AnalyticsMemory
from app.domain.analytics.entities import utcnow
from app.infrastructure.cache.tiered_cache import TieredCache

logger = logging.getLogger(__name__)


class TaskStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskResult:
    """Result of a maintenance job execution."""

    task_name: str
    status: TaskStatus
    started_at: str
    finished_at: Optional[str] = None
    duration_seconds: float = 0.0
    details: dict = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class MaintenanceJob:
    """A named job and how often it should run.

    Attributes:
        name: Job identifier used by ``run_now``.
        interval: Minimum time between runs.
        run: Callable taking ``now`` and returning a details dict.
    """

    name: str
    interval: timedelta
    run: Callable[[datetime], dict[str, Any]]
    last_run: Optional[datetime] = None

    def is_due(self, now: datetime) -> bool:
        return self.last_run is None or now - self.last_run >= self.interval


class MaintenanceScheduler:
    """Runs maintenance jobs whose interval has elapsed.

    A failing job is recorded as failed and never raises out of ``tick``.

    Usage:
        scheduler = MaintenanceScheduler(jobs)
        scheduler.start(tick_seconds=60)   # inside a running event loop
        scheduler.run_now("sweep_cache")
        scheduler.stop()
    """

    def __init__(
        self,
        jobs: list[MaintenanceJob],
        clock: Callable[[], datetime] = utcnow,
        max_history: int = 200,
    ) -> None:
        self._jobs = {job.name: job for job in jobs}
        self._clock = clock
        self._task_history: list[TaskResult] = []
        self._max_history = max_history
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    @property
    def task_history(self) -> list[TaskResult]:
        return list(self._task_history)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def tick(self, now: Optional[datetime] = None) -> list[TaskResult]:
        """Run every job that is due at ``now``.

        Returns:
            Results of the jobs that ran, in registration order.
        """
        now = now or self._clock()
        return [self._execute(job, now) for job in self._jobs.values() if job.is_due(now)]

    def run_now(self, task_name: str, now: Optional[datetime] = None) -> TaskResult:
        """Execute a named job immediately, regardless of its interval.

        Args:
            task_name: One of the registered job names.

        Returns:
            TaskResult with execution details.
        """
        now = now or self._clock()
        job = self._jobs.get(task_name)
        if job is None:
            return TaskResult(
                task_name=task_name,
                status=TaskStatus.FAILED,
                started_at=now.isoformat(),
                error=f"Unknown task: {task_name}. Available: {self.job_names}",
            )
        return self._execute(job, now)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, tick_seconds: float = 60.0) -> None:
        """Start ticking on the running event loop."""
        if self.is_running:
            logger.warning("Maintenance scheduler already running.")
            return

        self._scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self._scheduler.add_job(
            self._tick_on_loop,
            IntervalTrigger(seconds=tick_seconds),
            id="analytics_maintenance",
            name="Analytics maintenance tick",
        )
        self._scheduler.start()
        logger.info(
            "Maintenance scheduler started (tick=%ss, jobs=%s)", tick_seconds, self.job_names
        )

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Maintenance scheduler stopped.")
        self._scheduler = None

    def get_status(self) -> dict:
        recent = self._task_history[-10:]
        return {
            "running": self.is_running,
            "jobs": [
                {
                    "name": job.name,
                    "interval_seconds": job.interval.total_seconds(),
                    "last_run": job.last_run.isoformat() if job.last_run else None,
                }
                for job in self._jobs.values()
            ],
            "recent_tasks": [
                {
                    "task": r.task_name,
                    "status": r.status.value,
                    "duration": r.duration_seconds,
                    "started_at": r.started_at,
                }
                for r in recent
            ],
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _tick_on_loop(self) -> None:
        # Must stay a coroutine: APScheduler runs it on the loop thread.
        self.tick()

    def _execute(self, job: MaintenanceJob, now: datetime) -> TaskResult:
        start = time.monotonic()
        job.last_run = now
        try:
            details = job.run(now)
            result = TaskResult(
                task_name=job.name,
                status=TaskStatus.COMPLETED,
                started_at=now.isoformat(),
                finished_at=self._clock().isoformat(),
                duration_seconds=round(time.monotonic() - start, 4),
                details=details or {},
            )
        except Exception as exc:
            result = TaskResult(
                task_name=job.name,
                status=TaskStatus.FAILED,
                started_at=now.isoformat(),
                finished_at=self._clock().isoformat(),
                duration_seconds=round(time.monotonic() - start, 4),
                error=str(exc),
            )
            logger.exception("Maintenance job %s failed.", job.name)

        self._record_result(result)
        return result

    def _record_result(self, result: TaskResult) -> None:
        self._task_history.append(result)
        if len(self._task_history) > self._max_history:
            self._task_history = self._task_history[-self._max_history:]


def build_maintenance_jobs(
    identify_patterns: IdentifyPatternsUseCase,
    memory: AnalyticsMemory,
    cache: Optional[TieredCache] = None,
    pattern_validation_interval: timedelta = timedelta(hours=1),
    cache_sweep_interval: timedelta = timedelta(minutes=10),
) -> list[MaintenanceJob]:
    """Assemble the standard analytics maintenance jobs."""

    def validate_patterns(now: datetime) -> dict[str, Any]:
        closed = identify_patterns.expire(now)
        return {"patterns_closed": closed, **memory.prune(now)}

    def sweep_cache(now: datetime) -> dict[str, Any]:
        if cache is None:
            return {"entries_removed": 0}
        return {"entries_removed": cache.invalidate_expired(), "size": cache.size}

    return [
        MaintenanceJob("validate_patterns", pattern_validation_interval, validate_patterns),
        MaintenanceJob("sweep_cache", cache_sweep_interval, sweep_cache),
    ]
