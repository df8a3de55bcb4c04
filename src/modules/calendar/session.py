"""Calendar session: the object a calendar view talks to.

A session owns one cache key (backend scope + visible window), derives
``CalendarData`` from the cached tasks on demand, and routes completions,
deletions and reschedules through the mutation controller.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from src.core.config import settings
from src.core.errors import ErrorResponse, classify_error_with_response
from src.core.logging import span
from src.core.scheduler import CooperativeScheduler, MinuteClock
from src.domain.task import MaintenanceTask
from src.modules.calendar.aggregator import CalendarData, CalendarStats, CalendarWindow, build_calendar_data
from src.modules.calendar.backend import TaskBackend
from src.modules.calendar.cache import CacheKey, TaskCache
from src.modules.calendar.filters import FilterState
from src.modules.calendar.mutations import MutationController


logger = logging.getLogger(__name__)


class CalendarSession:
    """Month calendar state for one backend scope."""

    def __init__(
        self,
        *,
        backend: TaskBackend,
        cache: TaskCache | None = None,
        scheduler: CooperativeScheduler | None = None,
        month: date | None = None,
        filters: FilterState | None = None,
        week_starts_on: int | None = None,
        clock: MinuteClock | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            backend: Remote task operations for the acting user
            cache: Shared task cache (a private one when omitted)
            scheduler: Scheduler for background refreshes and the display clock
            month: Any day in the month to show (defaults to the current month)
            filters: Initial filter state
            week_starts_on: First weekday of the grid (defaults to settings.week_starts_on)
            clock: Display clock; one ticking on ``scheduler`` is created when omitted
        """
        self._backend = backend
        self._cache = cache or TaskCache()
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or CooperativeScheduler()
        self._clock = clock or MinuteClock(self._scheduler)
        self._week_starts_on = settings.week_starts_on if week_starts_on is None else week_starts_on
        self._window = CalendarWindow.for_month(month or self._clock.today, week_starts_on=self._week_starts_on)
        self._filters = filters or FilterState()
        self._error: ErrorResponse | None = None
        self._memo: tuple[tuple[Any, ...], CalendarData] | None = None
        self._deferred: set[str] = set()
        self._closed = False
        self._controller = MutationController(
            cache=self._cache,
            backend=self._backend,
            scheduler=self._scheduler,
            refresh=self._reload,
            clock=lambda: self._clock.today,
        )

    # State

    @property
    def key(self) -> CacheKey:
        return CacheKey(scope=self._backend.scope, window=self._window.key)

    @property
    def window(self) -> CalendarWindow:
        return self._window

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def today(self) -> date:
        return self._clock.today

    @property
    def is_loading(self) -> bool:
        return self._cache.is_loading(self.key)

    @property
    def error(self) -> ErrorResponse | None:
        """The last load or mutation error, classified for display."""
        return self._error

    @property
    def controller(self) -> MutationController:
        return self._controller

    @property
    def data(self) -> CalendarData:
        """Calendar data for the current window, filters and day.

        Recomputed only when the cached tasks, window, filters or day change.
        """
        tasks = self._cache.get(self.key) or ()
        inputs = (self.key, self._window, self._filters, self.today)
        if self._memo is not None:
            memo_inputs, memo_data = self._memo
            if memo_inputs == inputs and memo_data.tasks is tasks:
                return memo_data

        data = build_calendar_data(tasks, window=self._window, today=self.today, filters=self._filters)
        self._memo = (inputs, data)
        return data

    @property
    def days(self) -> tuple[date, ...]:
        return self.data.days

    @property
    def stats(self) -> CalendarStats:
        return self.data.stats

    @property
    def filtered_tasks(self) -> tuple[MaintenanceTask, ...]:
        return self.data.filtered_tasks

    def get_tasks_for_day(self, day: date) -> list[MaintenanceTask]:
        return self.data.get_tasks_for_day(day)

    def is_task_pending(self, task_id: str) -> bool:
        """Whether a change to the task is still being saved."""
        return self._controller.is_pending(task_id)

    # Loading

    async def _reload(self, key: CacheKey) -> None:
        window = self._window if key == self.key else None
        if window is None:
            # The view moved on; drop the stale window instead of reloading it
            self._cache.invalidate(key)
            return

        try:
            await self._cache.load(key, lambda: self._backend.list_tasks(window))
        except Exception as e:
            self._error = classify_error_with_response(e)
            logger.error(
                "Failed to load calendar tasks",
                extra={"scope": key.scope, "window": key.window, "error": str(e)},
            )
            return
        self._error = None

    async def open(self) -> None:
        """Start the display clock and load the current window."""
        self._clock.start()
        await self.refresh()

    async def refresh(self) -> None:
        """Reload the current window from the backend."""
        with span("calendar_session.refresh"):
            await self._reload(self.key)

    async def set_month(self, month: date) -> None:
        """Switch to the month containing ``month`` and load it if not cached."""
        self._window = CalendarWindow.for_month(month, week_starts_on=self._week_starts_on)
        if self._cache.get(self.key) is None:
            await self.refresh()

    def set_filters(self, filters: FilterState) -> None:
        self._filters = filters

    # Mutations

    async def _mutate(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        try:
            result = await operation()
        except Exception as e:
            self._error = classify_error_with_response(e)
            raise
        self._error = None
        return result

    async def complete_task(self, task_id: str) -> Any:
        """Complete a task; the successor appears after the background refresh."""
        return await self._mutate(lambda: self._controller.complete_task(self.key, task_id))

    async def delete_task(self, task_id: str) -> Any:
        return await self._mutate(lambda: self._controller.delete_task(self.key, task_id))

    async def reschedule_task(self, task_id: str, new_date: date | str) -> Any:
        """Move a task to another day (also used for drag-and-drop on the grid)."""
        return await self._mutate(lambda: self._controller.reschedule_task(self.key, task_id, new_date))

    # Deferred actions

    def defer(self, action: Callable[[], Awaitable[None]], *, name: str = "deferred_action", delay: float = 0.0) -> str:
        """Run a UI action on the scheduler after ``delay`` seconds; cancelled on close()."""
        job_id = self._scheduler.schedule_once(action, name=name, delay_seconds=delay)
        self._deferred.add(job_id)
        return job_id

    def cancel_deferred(self, job_id: str) -> bool:
        self._deferred.discard(job_id)
        return self._scheduler.cancel(job_id)

    async def close(self) -> None:
        """Stop the clock, cancel deferred work and pending reads."""
        if self._closed:
            return
        self._closed = True
        self._clock.stop()
        for job_id in list(self._deferred):
            self.cancel_deferred(job_id)
        self._controller.close()
        self._cache.cancel(self.key)
        if self._owns_scheduler:
            self._scheduler.shutdown()
        logger.debug("Closed calendar session for %s", self._backend.scope)
