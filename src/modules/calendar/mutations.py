"""Optimistic task mutations.

Each mutation is a command object. The controller runs every command through
the same sequence:

1. cancel the pending read for the cache key,
2. ``snapshot()`` the cached list,
3. ``apply()`` the optimistic change,
4. ``execute()`` the remote call,
5. ``commit()`` and schedule a background refresh on success, or
   ``rollback()`` and re-raise on failure.

Rollback undoes only the command's own change on the list as it is at that
moment, so a failure never reverts other mutations that completed meanwhile.
Readers of the cache only ever see a change fully applied or fully undone.
"""

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from src.core.config import constants, settings
from src.core.dates import to_calendar_date, today
from src.core.logging import span
from src.core.scheduler import CooperativeScheduler
from src.domain.task import MaintenanceTask, TaskStatus
from src.modules.calendar.backend import TaskBackend
from src.modules.calendar.cache import CacheKey, TaskCache, TaskList


logger = logging.getLogger(__name__)


class MutationInProgressError(RuntimeError):
    """Raised when a task already has a mutation outstanding."""


class TaskMutation(ABC):
    """Optimistic change to one task in one cached list."""

    name = "mutation"

    def __init__(self, *, cache: TaskCache, key: CacheKey, task_id: str) -> None:
        self.cache = cache
        self.key = key
        self.task_id = task_id
        self._snapshot: TaskList | None = None
        self._snapshot_taken = False
        self._original: MaintenanceTask | None = None

    def snapshot(self) -> None:
        """Remember the cached list and the task as they are before the change."""
        self._snapshot = self.cache.get(self.key)
        self._original = next((task for task in self._snapshot or () if task.id == self.task_id), None)
        self._snapshot_taken = True

    def apply(self) -> None:
        """Write the optimistic change into the cache."""
        if not self._snapshot_taken:
            msg = f"Cannot apply {self.name} before snapshot"
            raise RuntimeError(msg)
        if self._snapshot is not None:
            self.cache.set(self.key, self.transform(self._snapshot))

    @abstractmethod
    def transform(self, tasks: TaskList) -> TaskList:
        """Return the list with the optimistic change applied."""

    @abstractmethod
    async def execute(self, backend: TaskBackend) -> Any:
        """Perform the remote operation."""

    def restore(self, tasks: TaskList, original: MaintenanceTask) -> TaskList:
        """Return ``tasks`` with this command's change undone."""
        return tuple(original if task.id == self.task_id else task for task in tasks)

    def commit(self) -> None:
        """Keep the optimistic state."""
        self._reset()

    def rollback(self) -> None:
        """Undo this command's change on the currently cached list.

        Changes other commands made to the list since the snapshot are kept.
        """
        if not self._snapshot_taken:
            return
        current = self.cache.get(self.key)
        if current is not None and self._original is not None:
            self.cache.set(self.key, self.restore(current, self._original))
        self._reset()

    def _reset(self) -> None:
        self._snapshot = None
        self._snapshot_taken = False
        self._original = None

    def _patch(self, tasks: TaskList, update: dict[str, Any]) -> TaskList:
        return tuple(task.model_copy(update=update) if task.id == self.task_id else task for task in tasks)


class CompleteTask(TaskMutation):
    """Mark the task completed with a local completion date."""

    name = "complete_task"

    def __init__(self, *, cache: TaskCache, key: CacheKey, task_id: str, completed_on: date) -> None:
        super().__init__(cache=cache, key=key, task_id=task_id)
        self.completed_on = completed_on

    def transform(self, tasks: TaskList) -> TaskList:
        return self._patch(tasks, {"status": TaskStatus.COMPLETED, "completed_date": self.completed_on})

    async def execute(self, backend: TaskBackend) -> Any:
        return await backend.complete_task(self.task_id)


class DeleteTask(TaskMutation):
    """Remove the task from the list."""

    name = "delete_task"

    def transform(self, tasks: TaskList) -> TaskList:
        return tuple(task for task in tasks if task.id != self.task_id)

    def restore(self, tasks: TaskList, original: MaintenanceTask) -> TaskList:
        """Reinsert the task ahead of the first task that followed it in the snapshot."""
        if any(task.id == self.task_id for task in tasks):
            return tasks
        snapshot = self._snapshot or ()
        position = next(index for index, task in enumerate(snapshot) if task.id == self.task_id)
        followers = {task.id for task in snapshot[position + 1 :]}
        index = next((index for index, task in enumerate(tasks) if task.id in followers), len(tasks))
        return (*tasks[:index], original, *tasks[index:])

    async def execute(self, backend: TaskBackend) -> Any:
        return await backend.delete_task(self.task_id)


class RescheduleTask(TaskMutation):
    """Move the task to a new due date."""

    name = "reschedule_task"

    def __init__(self, *, cache: TaskCache, key: CacheKey, task_id: str, new_date: date) -> None:
        super().__init__(cache=cache, key=key, task_id=task_id)
        self.new_date = new_date

    def transform(self, tasks: TaskList) -> TaskList:
        return self._patch(tasks, {"due_date": self.new_date})

    async def execute(self, backend: TaskBackend) -> Any:
        return await backend.reschedule_task(self.task_id, self.new_date)


class MutationController:
    """Runs task mutations against the cache and the backend."""

    def __init__(
        self,
        *,
        cache: TaskCache,
        backend: TaskBackend,
        scheduler: CooperativeScheduler,
        refresh: Callable[[CacheKey], Awaitable[Any]],
        clock: Callable[[], date] = today,
        refresh_delay_seconds: float | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            cache: Cache holding the optimistic state
            backend: Remote task operations
            scheduler: Runs the background refresh after a successful mutation
            refresh: Reloads one cache key from the backend
            clock: Returns today's date for synthetic completion dates
            refresh_delay_seconds: Delay before the background refresh
        """
        self._cache = cache
        self._backend = backend
        self._scheduler = scheduler
        self._refresh = refresh
        self._clock = clock
        self._refresh_delay = (
            settings.background_refresh_delay_seconds if refresh_delay_seconds is None else refresh_delay_seconds
        )
        self._in_flight: set[str] = set()
        self._refresh_jobs: dict[CacheKey, str] = {}

    def is_pending(self, task_id: str) -> bool:
        """Whether a mutation for the task is outstanding."""
        return task_id in self._in_flight

    @property
    def pending_task_ids(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    async def run(self, mutation: TaskMutation) -> Any:
        """Run a mutation with optimistic update and rollback.

        Raises:
            MutationInProgressError: If the task already has a mutation outstanding
            Exception: Whatever the remote operation raised, after rollback
        """
        if mutation.task_id in self._in_flight:
            msg = f"A change to task {mutation.task_id} is already in progress"
            raise MutationInProgressError(msg)

        self._in_flight.add(mutation.task_id)
        try:
            with span(f"mutation.{mutation.name}", task_id=mutation.task_id, scope=mutation.key.scope):
                self._cache.cancel(mutation.key)
                mutation.snapshot()
                mutation.apply()
                try:
                    result = await mutation.execute(self._backend)
                except (Exception, asyncio.CancelledError) as e:
                    mutation.rollback()
                    logger.warning(
                        "Mutation failed, restored cached tasks",
                        extra={"mutation": mutation.name, "task_id": mutation.task_id, "error": str(e)},
                    )
                    raise

                mutation.commit()
                logger.info("Mutation %s succeeded for task %s", mutation.name, mutation.task_id)
                self._cache.invalidate_scope(mutation.key.scope, keep=mutation.key)
                self.schedule_refresh(mutation.key)
                return result
        finally:
            self._in_flight.discard(mutation.task_id)

    def schedule_refresh(self, key: CacheKey) -> str:
        """Schedule a one-shot reload of ``key``, replacing any refresh still waiting."""
        previous = self._refresh_jobs.pop(key, None)
        if previous is not None:
            self._scheduler.cancel(previous)

        job_id = self._scheduler.schedule_once(
            functools.partial(self._run_refresh, key),
            name=f"{constants.BACKGROUND_REFRESH_JOB_PREFIX}:{key.scope}:{key.window}",
            delay_seconds=self._refresh_delay,
        )
        self._refresh_jobs[key] = job_id
        return job_id

    def close(self) -> None:
        """Cancel background refreshes that have not run yet."""
        for job_id in self._refresh_jobs.values():
            self._scheduler.cancel(job_id)
        self._refresh_jobs.clear()

    async def _run_refresh(self, key: CacheKey) -> None:
        self._refresh_jobs.pop(key, None)
        await self._refresh(key)

    async def complete_task(self, key: CacheKey, task_id: str) -> Any:
        return await self.run(CompleteTask(cache=self._cache, key=key, task_id=task_id, completed_on=self._clock()))

    async def delete_task(self, key: CacheKey, task_id: str) -> Any:
        return await self.run(DeleteTask(cache=self._cache, key=key, task_id=task_id))

    async def reschedule_task(self, key: CacheKey, task_id: str, new_date: date | str) -> Any:
        return await self.run(
            RescheduleTask(cache=self._cache, key=key, task_id=task_id, new_date=to_calendar_date(new_date))
        )
