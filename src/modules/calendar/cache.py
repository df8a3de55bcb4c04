"""Task cache keyed by (scope, window).

Reads go through ``load()``, which shares one in-flight fetch per key and
stores its result when it finishes. A write for a key must first ``cancel()``
the pending read so a stale result never lands on top of it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import NamedTuple

from src.domain.task import MaintenanceTask


logger = logging.getLogger(__name__)

TaskList = tuple[MaintenanceTask, ...]
Fetcher = Callable[[], Awaitable[Iterable[MaintenanceTask]]]


class CacheKey(NamedTuple):
    """Identifies a cached task list."""

    scope: str
    window: str


class TaskCache:
    """In-memory task lists with cancellable reads."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, TaskList] = {}
        self._inflight: dict[CacheKey, asyncio.Task[TaskList]] = {}

    def get(self, key: CacheKey) -> TaskList | None:
        """Return the cached list, or None if the key was never loaded."""
        return self._entries.get(key)

    def set(self, key: CacheKey, tasks: Iterable[MaintenanceTask]) -> None:
        self._entries[key] = tuple(tasks)

    def discard(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    def is_loading(self, key: CacheKey) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    async def _fetch_and_store(self, key: CacheKey, fetcher: Fetcher) -> TaskList:
        tasks = tuple(await fetcher())
        self._entries[key] = tasks
        logger.debug("Cached %d tasks for %s", len(tasks), key)
        return tasks

    def _forget(self, key: CacheKey, task: asyncio.Task[TaskList]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def load(self, key: CacheKey, fetcher: Fetcher) -> TaskList | None:
        """Fetch and cache the task list for ``key``.

        Concurrent loads of the same key share one fetch. If the fetch is
        cancelled through ``cancel()``, the current entry is returned unchanged.

        Raises:
            Exception: Whatever the fetcher raises
        """
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(key, fetcher))
            task.add_done_callback(lambda done: self._forget(key, done))
            self._inflight[key] = task

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                logger.debug("Read for %s was cancelled", key)
                return self._entries.get(key)
            raise

    def cancel(self, key: CacheKey) -> bool:
        """Abort the pending read for ``key``. Returns True if one was cancelled."""
        task = self._inflight.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("Cancelled in-flight read for %s", key)
        return True

    def invalidate(self, key: CacheKey) -> None:
        """Drop the entry and any pending read for ``key``."""
        self.cancel(key)
        self.discard(key)

    def invalidate_scope(self, scope: str, *, keep: CacheKey | None = None) -> None:
        """Drop every window cached for ``scope`` except ``keep``."""
        for key in [key for key in {*self._entries, *self._inflight} if key.scope == scope and key != keep]:
            self.invalidate(key)

    def clear(self) -> None:
        for key in list(self._inflight):
            self.cancel(key)
        self._entries.clear()
