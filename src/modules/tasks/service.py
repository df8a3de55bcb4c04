"""Task service for CRUD operations, rescheduling and completion."""

import logging
from datetime import date
from typing import Any

from src.core.config import settings
from src.core.dates import add_days, to_calendar_date, today
from src.core.logging import log_task_event, span
from src.domain.create_models import TaskCreate
from src.domain.task import MaintenanceTask, RecurrenceInterval, TaskStatus
from src.domain.update_models import TaskUpdate
from src.modules.tasks import recurrence, store


logger = logging.getLogger(__name__)


async def create_task(
    *,
    user_id: str,
    aquarium_id: str,
    task_name: str,
    task_type: str,
    due_date: date | str,
    equipment_id: str | None = None,
    notes: str | None = None,
    is_recurring: bool = False,
    recurrence_interval: RecurrenceInterval | str | None = None,
    recurrence_days: int | None = None,
) -> MaintenanceTask:
    """Create a new maintenance task.

    Args:
        user_id: Acting user; must own the aquarium
        aquarium_id: Aquarium the task belongs to
        task_name: Task title (e.g., "Weekly water change")
        task_type: Task category (e.g., "water_change")
        due_date: Calendar date the task is due
        equipment_id: Related equipment, installed in the same aquarium
        notes: Free-form notes
        is_recurring: Whether completion spawns the next occurrence
        recurrence_interval: daily, weekly, biweekly, monthly, or custom
        recurrence_days: Day count, required for custom recurrence only

    Returns:
        Created task

    Raises:
        ValueError: If recurrence settings are invalid or equipment is in another aquarium
        PermissionError: If the aquarium does not belong to the user
    """
    with span("task_service.create_task"):
        data = TaskCreate(
            aquarium_id=aquarium_id,
            task_name=task_name,
            task_type=task_type,
            due_date=due_date,
            equipment_id=equipment_id,
            notes=notes or None,
            is_recurring=is_recurring,
            recurrence_interval=recurrence_interval,
            recurrence_days=recurrence_days,
        )
        task = await store.insert_task(data=data, user_id=user_id)

        recurring_note = f" (recurring {task.recurrence_interval})" if task.is_recurring else ""
        logger.info("Created task '%s' due %s%s", task.task_name, task.due_date, recurring_note)
        return task


async def get_task(*, task_id: str, user_id: str) -> MaintenanceTask:
    """Get task by ID.

    Raises:
        RecordNotFoundError: If task not found
        PermissionError: If the task belongs to another user
    """
    return await store.get_task(task_id=task_id, user_id=user_id)


async def get_tasks(
    *,
    user_id: str,
    aquarium_ids: list[str] | None = None,
    start: date | None = None,
    end: date | None = None,
    status: TaskStatus | None = None,
) -> list[MaintenanceTask]:
    """Get tasks with optional filters, ordered by due date ascending.

    Args:
        user_id: Acting user
        aquarium_ids: Aquarium scope (None for every aquarium the user owns)
        start: Filter by due_date >= start
        end: Filter by due_date <= end
        status: Filter by persisted status

    Returns:
        List of tasks matching filters
    """
    with span("task_service.get_tasks"):
        tasks = await store.list_tasks(user_id=user_id, aquarium_ids=aquarium_ids, start=start, end=end, status=status)
        logger.debug("Retrieved %d tasks for user_id=%s", len(tasks), user_id)
        return tasks


async def list_upcoming_tasks(
    *,
    user_id: str,
    aquarium_ids: list[str] | None = None,
    days_ahead: int | None = None,
    reference: date | None = None,
) -> list[MaintenanceTask]:
    """Get pending tasks due on or before ``reference + days_ahead``, including overdue ones.

    Args:
        user_id: Acting user
        aquarium_ids: Aquarium scope (None for every aquarium the user owns)
        days_ahead: Look-ahead in days (defaults to settings.upcoming_days_ahead)
        reference: Day to count from (defaults to today)
    """
    with span("task_service.list_upcoming_tasks"):
        horizon = add_days(reference or today(), settings.upcoming_days_ahead if days_ahead is None else days_ahead)
        return await store.list_tasks(
            user_id=user_id,
            aquarium_ids=aquarium_ids,
            end=horizon,
            status=TaskStatus.PENDING,
        )


def _merge_recurrence(task: MaintenanceTask, changes: dict[str, Any]) -> dict[str, Any]:
    """Apply recurrence edits and clear fields the new rule no longer uses."""
    merged = dict(changes)
    is_recurring = merged.get("is_recurring", task.is_recurring)
    interval = merged.get("recurrence_interval", task.recurrence_interval)

    if not is_recurring:
        merged["recurrence_interval"] = None
        merged["recurrence_days"] = None
    elif interval is not None and RecurrenceInterval(interval) != RecurrenceInterval.CUSTOM:
        merged["recurrence_days"] = None
    return merged


async def update_task(*, task_id: str, user_id: str, changes: TaskUpdate) -> MaintenanceTask:
    """Apply field edits to a task.

    Args:
        task_id: Task ID
        user_id: Acting user
        changes: Fields to change

    Returns:
        Updated task

    Raises:
        ValueError: If the result violates recurrence rules or the equipment is in another aquarium
        PermissionError: If the task or equipment belongs to another user
    """
    with span("task_service.update_task"):
        task = await store.get_task(task_id=task_id, user_id=user_id)
        data = changes.changes()
        if not data:
            return task

        if {"is_recurring", "recurrence_interval", "recurrence_days"} & data.keys():
            data = _merge_recurrence(task, data)

        # Validate the edited task the same way a new one is validated
        TaskCreate.model_validate(
            _merge_recurrence(task, {**task.model_dump(include=set(TaskCreate.model_fields)), **data})
        )

        if data.get("equipment_id"):
            equipment = await store.get_equipment(equipment_id=data["equipment_id"], user_id=user_id)
            if equipment.aquarium_id != task.aquarium_id:
                msg = f"Equipment {equipment.id} is not installed in aquarium {task.aquarium_id}"
                raise ValueError(msg)

        updated = await store.update_task(task_id=task_id, user_id=user_id, data=data)
        logger.info("Updated task %s fields: %s", task_id, sorted(data))
        return updated


async def reschedule_task(*, task_id: str, user_id: str, new_date: date | str) -> MaintenanceTask:
    """Move a task to a new due date.

    Raises:
        ValueError: If the new date cannot be parsed
    """
    with span("task_service.reschedule_task", task_id=task_id):
        due_date = to_calendar_date(new_date)
        updated = await store.update_task(task_id=task_id, user_id=user_id, data={"due_date": due_date})
        log_task_event(logger, "info", "Rescheduled task", task_id=task_id, user_id=user_id, due_date=str(due_date))
        return updated


async def complete_task(
    *, task_id: str, user_id: str, completed_on: date | None = None
) -> recurrence.CompletionResult:
    """Complete a task and create its successor (see recurrence.complete_task)."""
    return await recurrence.complete_task(task_id=task_id, user_id=user_id, completed_on=completed_on)


async def delete_task(*, task_id: str, user_id: str) -> None:
    """Delete a task permanently.

    Raises:
        RecordNotFoundError: If the task does not exist
        PermissionError: If the task belongs to another user
    """
    with span("task_service.delete_task", task_id=task_id):
        await store.delete_task(task_id=task_id, user_id=user_id)
        log_task_event(logger, "info", "Deleted task", task_id=task_id, user_id=user_id)
