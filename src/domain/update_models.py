"""Update models for database operations."""

from pydantic import BaseModel, Field

from src.core.config import constants
from src.domain.task import RecurrenceInterval


class TaskUpdate(BaseModel):
    """Field edits for a maintenance task.

    Status, completion date and due date are changed only through
    completion and reschedule.
    """

    task_name: str | None = Field(default=None, min_length=1)
    task_type: str | None = Field(default=None, min_length=1)
    notes: str | None = None
    equipment_id: str | None = None
    is_recurring: bool | None = None
    recurrence_interval: RecurrenceInterval | None = None
    recurrence_days: int | None = None

    def changes(self) -> dict[str, object]:
        """Return only the fields explicitly set by the caller."""
        return self.model_dump(mode="json", exclude_unset=True)


class EquipmentUpdate(BaseModel):
    """Field edits for equipment. The aquarium it is installed in never changes.

    Setting ``maintenance_interval_days`` to None removes the maintenance schedule.
    """

    name: str | None = Field(default=None, min_length=1)
    equipment_type: str | None = Field(default=None, min_length=1)
    maintenance_interval_days: int | None = Field(
        default=None,
        ge=constants.MIN_MAINTENANCE_INTERVAL_DAYS,
        le=constants.MAX_MAINTENANCE_INTERVAL_DAYS,
    )
    notes: str | None = None

    def changes(self) -> dict[str, object]:
        """Return only the fields explicitly set by the caller."""
        return self.model_dump(mode="json", exclude_unset=True)
