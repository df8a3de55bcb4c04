"""Calendar filter engine.

A task passes when every non-empty axis matches (OR within an axis, AND across
axes). ``overdue`` is a virtual status derived at filter time from a pending
task's due date; it is never persisted.
"""

from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.dates import is_overdue
from src.domain.task import MaintenanceTask, TaskStatus


OVERDUE_STATUS = "overdue"

# Statuses offered by the filter panel
STATUS_OPTIONS: tuple[str, ...] = (TaskStatus.PENDING.value, TaskStatus.COMPLETED.value, OVERDUE_STATUS)


def _toggled(values: frozenset[str], value: str) -> frozenset[str]:
    return values - {value} if value in values else values | {value}


def _check_status(status: str) -> str:
    if status not in STATUS_OPTIONS:
        msg = f"Unknown status filter: {status}. Expected one of: {', '.join(STATUS_OPTIONS)}"
        raise ValueError(msg)
    return status


class FilterState(BaseModel):
    """Selected values per filter axis; an empty axis matches everything."""

    model_config = ConfigDict(frozen=True)

    task_types: frozenset[str] = Field(default_factory=frozenset, description="Selected task types")
    statuses: frozenset[str] = Field(
        default_factory=frozenset, description="Selected statuses (pending, completed, overdue)"
    )
    aquarium_ids: frozenset[str] = Field(default_factory=frozenset, description="Selected aquarium IDs")

    @field_validator("statuses")
    @classmethod
    def validate_statuses(cls, v: frozenset[str]) -> frozenset[str]:
        for status in v:
            _check_status(status)
        return v

    @property
    def active_count(self) -> int:
        """Number of selected values across all axes."""
        return len(self.task_types) + len(self.statuses) + len(self.aquarium_ids)

    @property
    def is_empty(self) -> bool:
        return self.active_count == 0

    def toggle_task_type(self, task_type: str) -> "FilterState":
        return self.model_copy(update={"task_types": _toggled(self.task_types, task_type)})

    def toggle_status(self, status: str) -> "FilterState":
        """Raises ValueError for a status outside STATUS_OPTIONS."""
        return self.model_copy(update={"statuses": _toggled(self.statuses, _check_status(status))})

    def toggle_aquarium(self, aquarium_id: str) -> "FilterState":
        return self.model_copy(update={"aquarium_ids": _toggled(self.aquarium_ids, aquarium_id)})

    def cleared(self) -> "FilterState":
        return FilterState()


def derived_statuses(task: MaintenanceTask, today: date) -> frozenset[str]:
    """Persisted status plus ``overdue`` for pending tasks due before today."""
    statuses = {task.status.value}
    if task.is_pending and is_overdue(task.due_date, reference=today):
        statuses.add(OVERDUE_STATUS)
    return frozenset(statuses)


def passes(task: MaintenanceTask, state: FilterState, today: date) -> bool:
    """Return True if the task matches the filter state."""
    if state.task_types and task.task_type not in state.task_types:
        return False
    if state.statuses and not (derived_statuses(task, today) & state.statuses):
        return False
    return not state.aquarium_ids or task.aquarium_id in state.aquarium_ids


def filter_tasks(tasks: Iterable[MaintenanceTask], state: FilterState, today: date) -> list[MaintenanceTask]:
    """Keep the tasks that pass the filter state, preserving order."""
    if state.is_empty:
        return list(tasks)
    return [task for task in tasks if passes(task, state, today)]
