"""Unit tests for the cooperative scheduler and the display clock."""

import asyncio
import logging
from datetime import UTC, datetime

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.core.scheduler import CooperativeScheduler, MinuteClock


@pytest.fixture
async def scheduler():
    scheduler = CooperativeScheduler()
    yield scheduler
    scheduler.shutdown()


@pytest.mark.unit
class TestCooperativeScheduler:
    async def test_one_shot_job_runs_once(self, scheduler):
        done = asyncio.Event()

        async def job():
            done.set()

        job_id = scheduler.schedule_once(job, name="refresh")
        assert job_id.startswith("refresh:")

        await asyncio.wait_for(done.wait(), timeout=2)
        assert job_id not in scheduler.job_ids

    async def test_cancel_before_run(self, scheduler):
        async def job():
            raise AssertionError("cancelled job ran")

        job_id = scheduler.schedule_once(job, name="deferred_action", delay_seconds=60)

        assert scheduler.cancel(job_id) is True
        assert scheduler.cancel(job_id) is False
        assert scheduler.job_ids == frozenset()

    async def test_periodic_job_repeats(self, scheduler):
        runs = 0
        done = asyncio.Event()

        async def job():
            nonlocal runs
            runs += 1
            if runs == 2:
                done.set()

        scheduler.schedule_every(job, name="clock_tick", seconds=0.05)

        await asyncio.wait_for(done.wait(), timeout=2)
        assert runs >= 2

    async def test_failing_job_is_logged(self, scheduler, caplog):
        done = asyncio.Event()

        async def job():
            done.set()
            raise ValueError("boom")

        with caplog.at_level(logging.ERROR, logger="src.core.scheduler"):
            scheduler.schedule_once(job, name="refresh")
            await asyncio.wait_for(done.wait(), timeout=2)
            await asyncio.sleep(0.05)

        assert "Scheduled job failed" in caplog.text

    async def test_no_jobs_after_shutdown(self):
        scheduler = CooperativeScheduler()

        async def job():
            pass

        scheduler.schedule_once(job, name="refresh", delay_seconds=60)
        scheduler.shutdown()

        assert scheduler.closed
        assert scheduler.job_ids == frozenset()
        with pytest.raises(RuntimeError, match="after shutdown"):
            scheduler.schedule_once(job, name="refresh")

    async def test_shared_scheduler_survives_shutdown(self):
        shared = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone=UTC)
        shared.start()

        async def job():
            pass

        shared.add_job(job, "interval", seconds=60, id="other-owner")
        wrapper = CooperativeScheduler(shared)
        wrapper.schedule_once(job, name="refresh", delay_seconds=60)

        wrapper.shutdown()

        assert shared.running
        assert [job.id for job in shared.get_jobs()] == ["other-owner"]
        shared.shutdown(wait=False)


@pytest.mark.unit
class TestMinuteClock:
    async def test_tick_advances_and_notifies(self, manual_scheduler):
        moments = iter([datetime(2025, 1, 10, 23, 59), datetime(2025, 1, 11, 0, 0)])
        clock = MinuteClock(manual_scheduler, tick_seconds=60, now=lambda: next(moments))
        seen = []
        clock.subscribe(seen.append)

        assert clock.today.isoformat() == "2025-01-10"

        clock.start()
        await manual_scheduler.tick()

        assert clock.today.isoformat() == "2025-01-11"
        assert seen == [datetime(2025, 1, 11, 0, 0)]

    async def test_start_is_idempotent(self, frozen_clock, manual_scheduler):
        frozen_clock.start()
        frozen_clock.start()

        assert manual_scheduler.names() == ["clock_tick"]
        assert manual_scheduler.periodic[next(iter(manual_scheduler.periodic))][2] == 60

    async def test_unsubscribe(self, frozen_clock):
        seen = []
        unsubscribe = frozen_clock.subscribe(seen.append)

        unsubscribe()
        await frozen_clock.tick()

        assert seen == []

    def test_stop_cancels_tick_and_subscribers(self, frozen_clock, manual_scheduler):
        frozen_clock.subscribe(lambda _: None)
        frozen_clock.start()

        frozen_clock.stop()

        assert not frozen_clock.running
        assert manual_scheduler.periodic == {}
