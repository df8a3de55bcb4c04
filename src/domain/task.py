"""Maintenance task domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.config import constants
from src.core.dates import to_calendar_date


class TaskStatus(StrEnum):
    """Persisted task lifecycle state (pending -> completed, one way)."""

    PENDING = "pending"
    COMPLETED = "completed"


class RecurrenceInterval(StrEnum):
    """How often a recurring task repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


def resolve_recurrence_days(interval: RecurrenceInterval, recurrence_days: int | None) -> int:
    """Return the day count for a recurrence interval.

    Fixed intervals come from the recurrence table; ``custom`` uses the stored day count.

    Raises:
        ValueError: If a custom interval has no positive day count
    """
    if interval != RecurrenceInterval.CUSTOM:
        return constants.RECURRENCE_DAYS[interval.value]
    if recurrence_days is None or recurrence_days < 1:
        msg = f"Custom recurrence requires a positive recurrence_days, got {recurrence_days!r}"
        raise ValueError(msg)
    return recurrence_days


def _normalize_optional_date(value: object) -> object:
    if value is None or value == "":
        return None
    if isinstance(value, date | str):
        return to_calendar_date(value)
    return value


class MaintenanceTask(BaseModel):
    """Validated maintenance task.

    Records are validated here at the persistence boundary; dates are
    normalized to calendar dates so time-of-day never leaks into comparisons.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique task ID from database")
    aquarium_id: str = Field(..., description="Owning aquarium ID")
    equipment_id: str | None = Field(default=None, description="Related equipment ID")
    task_name: str = Field(..., min_length=1, description="Task title")
    task_type: str = Field(..., min_length=1, description="Task category (water_change, testing, ...)")
    due_date: date = Field(..., description="Calendar date the task is due")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Persisted status")
    completed_date: date | None = Field(default=None, description="Calendar date the task was completed")
    notes: str | None = Field(default=None, description="Free-form notes")
    is_recurring: bool = Field(default=False, description="Whether completion spawns a successor")
    recurrence_interval: RecurrenceInterval | None = Field(default=None, description="Recurrence rule")
    recurrence_days: int | None = Field(default=None, description="Day count for custom recurrence")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: object) -> object:
        """Strip any time-of-day from the due date."""
        if isinstance(v, date | str):
            return to_calendar_date(v)
        return v

    @field_validator("completed_date", mode="before")
    @classmethod
    def normalize_completed_date(cls, v: object) -> object:
        """Strip any time-of-day from the completion date."""
        return _normalize_optional_date(v)

    @field_validator("equipment_id", "notes", "recurrence_interval", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        """Treat empty strings from storage as missing."""
        return None if v == "" else v

    @model_validator(mode="after")
    def validate_recurrence(self) -> "MaintenanceTask":
        """Recurring tasks need an interval; custom intervals need a positive day count."""
        if self.is_recurring:
            if self.recurrence_interval is None:
                msg = "recurrence_interval is required for recurring tasks"
                raise ValueError(msg)
            resolve_recurrence_days(self.recurrence_interval, self.recurrence_days)
        return self

    @property
    def is_pending(self) -> bool:
        return self.status == TaskStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def effective_recurrence_days(self) -> int | None:
        """Days between occurrences, or None for non-recurring tasks."""
        if not self.is_recurring or self.recurrence_interval is None:
            return None
        return resolve_recurrence_days(self.recurrence_interval, self.recurrence_days)
