"""Cooperative scheduling on the asyncio event loop.

Deferred work (background cache refreshes, deferred UI actions) and the
minute-granularity display clock run as APScheduler jobs. Each
``CooperativeScheduler`` remembers the jobs it created so ``shutdown()`` can
remove every one of them on teardown.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import constants, settings


logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[None]]


class CooperativeScheduler:
    """Owns a set of scheduled jobs on an AsyncIOScheduler."""

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        """Initialize the scheduler wrapper.

        Args:
            scheduler: Shared APScheduler instance; when omitted, a private one is
                created on first use and shut down with this wrapper.
        """
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._job_ids: set[str] = set()
        self._closed = False

    @property
    def job_ids(self) -> frozenset[str]:
        """IDs of jobs created by this wrapper that have not finished or been cancelled."""
        return frozenset(self._job_ids)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_started(self) -> AsyncIOScheduler:
        if self._closed:
            msg = "Cannot schedule jobs after shutdown"
            raise RuntimeError(msg)
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone=UTC)
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started")
        return self._scheduler

    def schedule_once(self, func: JobFunc, *, name: str, delay_seconds: float = 0.0) -> str:
        """Run ``func`` once after ``delay_seconds``.

        Returns:
            Job ID usable with cancel()
        """
        scheduler = self._ensure_started()
        job_id = f"{name}:{uuid.uuid4().hex}"

        async def run_once() -> None:
            self._job_ids.discard(job_id)
            try:
                await func()
            except Exception as e:
                logger.error("Scheduled job failed", extra={"job_id": job_id, "error": str(e)})

        scheduler.add_job(
            run_once,
            trigger=DateTrigger(run_date=datetime.now(UTC) + timedelta(seconds=delay_seconds)),
            id=job_id,
            name=name,
            misfire_grace_time=None,
        )
        self._job_ids.add(job_id)
        logger.debug("Scheduled one-shot job %s in %.2fs", job_id, delay_seconds)
        return job_id

    def schedule_every(self, func: JobFunc, *, name: str, seconds: float) -> str:
        """Run ``func`` every ``seconds`` until cancelled.

        Returns:
            Job ID usable with cancel()
        """
        scheduler = self._ensure_started()
        job_id = f"{name}:{uuid.uuid4().hex}"

        async def run_periodic() -> None:
            try:
                await func()
            except Exception as e:
                logger.error("Periodic job failed", extra={"job_id": job_id, "error": str(e)})

        scheduler.add_job(
            run_periodic,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name,
            coalesce=True,
            max_instances=1,
        )
        self._job_ids.add(job_id)
        logger.debug("Scheduled periodic job %s every %.2fs", job_id, seconds)
        return job_id

    def cancel(self, job_id: str) -> bool:
        """Cancel a job. Returns False if it already ran or was cancelled."""
        if job_id not in self._job_ids:
            return False
        self._job_ids.discard(job_id)
        if self._scheduler is None:
            return False
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            return False
        logger.debug("Cancelled job %s", job_id)
        return True

    def shutdown(self) -> None:
        """Cancel every owned job and stop the private scheduler, if any."""
        for job_id in list(self._job_ids):
            self.cancel(job_id)
        if self._owns_scheduler and self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self._closed = True


class MinuteClock:
    """Low-frequency clock for time-sensitive displays.

    Subscribers are notified on every tick; ``today`` reflects the last tick.
    """

    def __init__(
        self,
        scheduler: CooperativeScheduler,
        *,
        tick_seconds: float | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._scheduler = scheduler
        self._tick_seconds = tick_seconds or settings.clock_tick_seconds
        self._now_func = now
        self._now = now()
        self._job_id: str | None = None
        self._subscribers: list[Callable[[datetime], None]] = []

    @property
    def now(self) -> datetime:
        return self._now

    @property
    def today(self) -> date:
        return self._now.date()

    @property
    def running(self) -> bool:
        return self._job_id is not None

    def subscribe(self, callback: Callable[[datetime], None]) -> Callable[[], None]:
        """Register a tick callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def tick(self) -> None:
        """Advance the clock and notify subscribers."""
        self._now = self._now_func()
        for callback in list(self._subscribers):
            callback(self._now)

    def start(self) -> None:
        if self._job_id is None:
            self._job_id = self._scheduler.schedule_every(
                self.tick,
                name=constants.CLOCK_TICK_JOB,
                seconds=self._tick_seconds,
            )

    def stop(self) -> None:
        if self._job_id is not None:
            self._scheduler.cancel(self._job_id)
            self._job_id = None
        self._subscribers.clear()
