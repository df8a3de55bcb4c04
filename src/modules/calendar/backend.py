"""Remote operations used by the calendar."""

from datetime import date
from typing import Protocol

from src.domain.task import MaintenanceTask
from src.modules.calendar.aggregator import CalendarWindow
from src.modules.tasks import service
from src.modules.tasks.recurrence import CompletionResult


class TaskBackend(Protocol):
    """Asynchronous task operations behind the calendar cache."""

    @property
    def scope(self) -> str:
        """Identifies whose tasks the backend returns (the cache scope)."""
        ...

    async def list_tasks(self, window: CalendarWindow) -> list[MaintenanceTask]: ...

    async def complete_task(self, task_id: str) -> CompletionResult: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def reschedule_task(self, task_id: str, new_date: date) -> MaintenanceTask: ...


class ServiceBackend:
    """TaskBackend backed by the task service, acting as one user."""

    def __init__(self, *, user_id: str, aquarium_ids: list[str] | None = None) -> None:
        """Initialize the backend.

        Args:
            user_id: Acting user; every call is ownership-checked against it
            aquarium_ids: Aquarium scope (None for every aquarium the user owns)
        """
        self.user_id = user_id
        self.aquarium_ids = sorted(aquarium_ids) if aquarium_ids is not None else None

    @property
    def scope(self) -> str:
        if self.aquarium_ids is None:
            return self.user_id
        return f"{self.user_id}:{','.join(self.aquarium_ids)}"

    async def list_tasks(self, window: CalendarWindow) -> list[MaintenanceTask]:
        return await service.get_tasks(
            user_id=self.user_id,
            aquarium_ids=self.aquarium_ids,
            start=window.start,
            end=window.end,
        )

    async def complete_task(self, task_id: str) -> CompletionResult:
        return await service.complete_task(task_id=task_id, user_id=self.user_id)

    async def delete_task(self, task_id: str) -> None:
        await service.delete_task(task_id=task_id, user_id=self.user_id)

    async def reschedule_task(self, task_id: str, new_date: date) -> MaintenanceTask:
        return await service.reschedule_task(task_id=task_id, user_id=self.user_id, new_date=new_date)
