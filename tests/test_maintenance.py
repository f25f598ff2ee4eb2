"""
Tests for the analytics maintenance scheduler.

The scheduler is mostly driven through ``tick`` and ``run_now`` with
explicit timestamps; one test starts the APScheduler loop for real.
"""

import asyncio
import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.application.analytics.identify_patterns import IdentifyPatternsUseCase
from app.application.analytics.maintenance import (
    MaintenanceJob,
    MaintenanceScheduler,
    TaskStatus,
    build_maintenance_jobs,
)
from app.application.analytics.memory import AnalyticsMemory
from app.domain.analytics.entities import CacheEntry
from app.infrastructure.cache.tiered_cache import TieredCache
from factories import NOW, POOL_ID, make_pattern


def _counting_job(name: str, minutes: int) -> MaintenanceJob:
    runs = []

    def run(now):
        runs.append(now)
        return {"runs": len(runs)}

    return MaintenanceJob(name, timedelta(minutes=minutes), run)


def _failing_job(name: str = "broken") -> MaintenanceJob:
    def run(now):
        raise RuntimeError("boom")

    return MaintenanceJob(name, timedelta(minutes=1), run)


class TestTick:
    """Interval handling."""

    def test_every_job_runs_on_first_tick(self, clock) -> None:
        scheduler = MaintenanceScheduler([_counting_job("a", 60), _counting_job("b", 10)], clock=clock)
        results = scheduler.tick(NOW)
        assert [r.task_name for r in results] == ["a", "b"]
        assert all(r.status is TaskStatus.COMPLETED for r in results)

    def test_jobs_run_only_when_due(self, clock) -> None:
        scheduler = MaintenanceScheduler([_counting_job("a", 60), _counting_job("b", 10)], clock=clock)
        scheduler.tick(NOW)
        assert scheduler.tick(NOW + timedelta(minutes=5)) == []
        [result] = scheduler.tick(NOW + timedelta(minutes=10))
        assert result.task_name == "b"
        assert result.details == {"runs": 2}

    def test_failing_job_is_recorded_and_others_still_run(self, clock) -> None:
        scheduler = MaintenanceScheduler([_failing_job(), _counting_job("ok", 10)], clock=clock)
        failed, ok = scheduler.tick(NOW)
        assert failed.status is TaskStatus.FAILED
        assert failed.error == "boom"
        assert ok.status is TaskStatus.COMPLETED


class TestRunNow:
    """Manual execution and history."""

    def test_run_now_ignores_interval(self, clock) -> None:
        scheduler = MaintenanceScheduler([_counting_job("a", 60)], clock=clock)
        scheduler.tick(NOW)
        result = scheduler.run_now("a", NOW + timedelta(minutes=1))
        assert result.details == {"runs": 2}

    def test_unknown_task(self, clock) -> None:
        result = MaintenanceScheduler([], clock=clock).run_now("nope")
        assert result.status is TaskStatus.FAILED
        assert "Unknown task" in result.error

    def test_history_is_bounded(self, clock) -> None:
        scheduler = MaintenanceScheduler([_counting_job("a", 1)], clock=clock, max_history=3)
        for minute in range(5):
            scheduler.run_now("a", NOW + timedelta(minutes=minute))
        history = scheduler.task_history
        assert len(history) == 3
        assert history[-1].details == {"runs": 5}

    def test_status(self, clock) -> None:
        scheduler = MaintenanceScheduler([_counting_job("a", 15)], clock=clock)
        scheduler.tick(NOW)
        status = scheduler.get_status()
        assert status["running"] is False
        assert status["jobs"][0]["interval_seconds"] == 900
        assert status["jobs"][0]["last_run"] == NOW.isoformat()
        assert status["recent_tasks"][0]["status"] == "completed"

    def test_stop_without_start(self, clock) -> None:
        scheduler = MaintenanceScheduler([], clock=clock)
        scheduler.stop()
        assert not scheduler.is_running


class TestStandardJobs:
    """validate_patterns and sweep_cache."""

    def test_validate_patterns(self, clock) -> None:
        identify = MagicMock(spec=IdentifyPatternsUseCase)
        identify.expire.return_value = 2
        memory = AnalyticsMemory()
        memory.remember_patterns(POOL_ID, [make_pattern()], NOW)
        memory.predictions.put(
            CacheEntry(
                key="prediction:x",
                payload=None,
                created_at=NOW,
                expires_at=NOW + timedelta(minutes=5),
            )
        )
        scheduler = MaintenanceScheduler(build_maintenance_jobs(identify, memory), clock=clock)

        result = scheduler.run_now("validate_patterns", NOW + timedelta(hours=169))

        assert result.details == {
            "patterns_closed": 2,
            "predictions_removed": 1,
            "pattern_histories_removed": 1,
        }
        identify.expire.assert_called_once_with(NOW + timedelta(hours=169))

    def test_sweep_cache(self, clock) -> None:
        cache = TieredCache(clock=clock)
        cache.put("k", [])
        clock.advance(minutes=11)
        scheduler = MaintenanceScheduler(
            build_maintenance_jobs(MagicMock(spec=IdentifyPatternsUseCase), AnalyticsMemory(), cache),
            clock=clock,
        )

        result = scheduler.run_now("sweep_cache")

        assert result.details == {"entries_removed": 1, "size": 0}

    def test_sweep_without_cache(self, clock) -> None:
        identify = MagicMock(spec=IdentifyPatternsUseCase)
        scheduler = MaintenanceScheduler(build_maintenance_jobs(identify, AnalyticsMemory()), clock=clock)
        assert scheduler.run_now("sweep_cache").details == {"entries_removed": 0}


class TestStart:
    """APScheduler integration."""

    @pytest.mark.asyncio
    async def test_jobs_run_on_the_event_loop_thread(self) -> None:
        loop_thread = threading.get_ident()
        seen = []

        def run(now):
            seen.append(threading.get_ident())
            return {}

        scheduler = MaintenanceScheduler([MaintenanceJob("record_thread", timedelta(0), run)])
        scheduler.start(tick_seconds=0.05)
        try:
            assert scheduler.is_running
            for _ in range(40):
                if seen:
                    break
                await asyncio.sleep(0.05)
        finally:
            scheduler.stop()

        assert seen
        assert set(seen) == {loop_thread}
        assert not scheduler.is_running
