"""Task completion and successor generation.

Completing a task is final once ownership is verified. Afterwards at most one
successor is created:

1. recurring tasks repeat with the same recurrence rule, due
   ``completed_date + recurrence days``;
2. otherwise, tasks linked to equipment with a maintenance interval get a
   one-off successor due ``completed_date + maintenance_interval_days``;
3. otherwise there is no successor.

Successor creation is best-effort: a failure is logged and reported in the
result, and never reverts the completion.
"""

import logging
from datetime import date

from pydantic import BaseModel, Field

from src.core.dates import add_days, today
from src.core.db_client import RecordNotFoundError
from src.core.logging import log_task_event, span
from src.domain.aquarium import Equipment
from src.domain.create_models import TaskCreate
from src.domain.task import MaintenanceTask, RecurrenceInterval, TaskStatus
from src.modules.tasks import store


logger = logging.getLogger(__name__)


class RecurrenceResult(BaseModel):
    """Outcome of successor resolution for a completed task."""

    has_next_task: bool = Field(..., description="Whether a successor task was created")
    is_recurring: bool = Field(..., description="Whether the successor came from the task's own recurrence rule")
    successor: MaintenanceTask | None = Field(default=None, description="The created successor")
    successor_error: str | None = Field(default=None, description="Why successor creation failed, if it did")


class CompletionResult(BaseModel):
    """Completed task plus its successor resolution."""

    task: MaintenanceTask
    recurrence: RecurrenceResult

    @property
    def has_next_task(self) -> bool:
        return self.recurrence.has_next_task

    @property
    def is_recurring(self) -> bool:
        return self.recurrence.is_recurring


def build_recurring_successor(*, task: MaintenanceTask, completed_on: date) -> TaskCreate:
    """Build the next occurrence of a recurring task with the same recurrence rule."""
    interval_days = task.effective_recurrence_days
    if interval_days is None:
        msg = f"Task {task.id} has no recurrence rule"
        raise ValueError(msg)

    return TaskCreate(
        aquarium_id=task.aquarium_id,
        task_name=task.task_name,
        task_type=task.task_type,
        due_date=add_days(completed_on, interval_days),
        equipment_id=task.equipment_id,
        notes=task.notes,
        is_recurring=True,
        recurrence_interval=task.recurrence_interval,
        recurrence_days=task.recurrence_days if task.recurrence_interval == RecurrenceInterval.CUSTOM else None,
    )


def build_equipment_successor(*, task: MaintenanceTask, equipment: Equipment, completed_on: date) -> TaskCreate | None:
    """Build a one-off successor from the equipment's maintenance interval, if it has one."""
    if equipment.maintenance_interval_days is None:
        return None

    return TaskCreate(
        aquarium_id=task.aquarium_id,
        task_name=task.task_name,
        task_type=task.task_type,
        due_date=add_days(completed_on, equipment.maintenance_interval_days),
        equipment_id=task.equipment_id,
        is_recurring=False,
    )


async def _find_equipment(*, equipment_id: str, user_id: str) -> Equipment | None:
    try:
        return await store.get_equipment(equipment_id=equipment_id, user_id=user_id)
    except RecordNotFoundError:
        logger.info("Equipment %s not found, no maintenance successor", equipment_id)
        return None


async def resolve_successor(*, task: MaintenanceTask, completed_on: date, user_id: str) -> RecurrenceResult:
    """Decide whether a completed task gets a successor and create it.

    Raises:
        Exception: Whatever the persistence layer raises while creating the successor
    """
    with span("recurrence.resolve_successor"):
        if task.is_recurring:
            successor_data = build_recurring_successor(task=task, completed_on=completed_on)
            successor = await store.insert_task(data=successor_data, user_id=user_id, check_equipment=False)
            log_task_event(logger, "info", "Created recurring successor", task_id=task.id, successor_id=successor.id)
            return RecurrenceResult(has_next_task=True, is_recurring=True, successor=successor)

        if task.equipment_id is not None:
            equipment = await _find_equipment(equipment_id=task.equipment_id, user_id=user_id)
            successor_data = (
                build_equipment_successor(task=task, equipment=equipment, completed_on=completed_on)
                if equipment is not None
                else None
            )
            if successor_data is not None:
                successor = await store.insert_task(data=successor_data, user_id=user_id, check_equipment=False)
                log_task_event(
                    logger, "info", "Created maintenance successor", task_id=task.id, successor_id=successor.id
                )
                return RecurrenceResult(has_next_task=True, is_recurring=False, successor=successor)

        return RecurrenceResult(has_next_task=False, is_recurring=False)


async def complete_task(*, task_id: str, user_id: str, completed_on: date | None = None) -> CompletionResult:
    """Complete a task and create its successor, if any.

    Args:
        task_id: Task ID
        user_id: Acting user (ownership is checked by the store)
        completed_on: Completion date (defaults to today)

    Returns:
        CompletionResult with the completed task and successor outcome

    Raises:
        RecordNotFoundError: If the task does not exist
        PermissionError: If the task belongs to another user
        ValueError: If the task is already completed
    """
    with span("recurrence.complete_task"):
        completion_date = completed_on or today()
        task = await store.get_task(task_id=task_id, user_id=user_id)

        if task.status != TaskStatus.PENDING:
            msg = f"Cannot complete: task {task_id} is already {task.status}"
            raise ValueError(msg)

        completed = await store.update_task(
            task_id=task_id,
            user_id=user_id,
            data={"status": TaskStatus.COMPLETED.value, "completed_date": completion_date},
        )
        log_task_event(logger, "info", "Task completed", task_id=task_id, user_id=user_id, aquarium_id=task.aquarium_id)

        try:
            recurrence = await resolve_successor(task=completed, completed_on=completion_date, user_id=user_id)
        except Exception as e:
            log_task_event(
                logger, "warning", "Successor creation failed; completion stands", task_id=task_id, error=str(e)
            )
            recurrence = RecurrenceResult(
                has_next_task=False,
                is_recurring=completed.is_recurring,
                successor_error=str(e),
            )

        return CompletionResult(task=completed, recurrence=recurrence)
