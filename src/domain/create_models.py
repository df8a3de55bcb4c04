"""Pydantic models for creating records in database."""

from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.config import constants
from src.core.dates import to_calendar_date
from src.domain.task import RecurrenceInterval, TaskStatus


class AquariumCreate(BaseModel):
    """Pydantic model for creating an aquarium record."""

    user_id: str = Field(..., min_length=1, description="Owning user ID")
    name: str = Field(..., min_length=1, description="Aquarium name")
    type: str = Field(default="freshwater", min_length=1, description="Aquarium type")


class EquipmentCreate(BaseModel):
    """Pydantic model for creating an equipment record."""

    aquarium_id: str = Field(..., description="Aquarium the equipment belongs to")
    name: str = Field(..., min_length=1, description="Equipment name")
    equipment_type: str = Field(..., min_length=1, description="Equipment type")
    maintenance_interval_days: int | None = Field(
        default=None,
        ge=constants.MIN_MAINTENANCE_INTERVAL_DAYS,
        le=constants.MAX_MAINTENANCE_INTERVAL_DAYS,
        description="Days between maintenance",
    )
    notes: str | None = Field(default=None, description="Free-form notes")


class TaskCreate(BaseModel):
    """Pydantic model for creating a maintenance task record.

    Recurrence is validated here, at creation time, so the recurrence resolver
    can rely on stored configuration.
    """

    aquarium_id: str = Field(..., description="Owning aquarium ID")
    task_name: str = Field(..., min_length=1, description="Task title")
    task_type: str = Field(..., min_length=1, description="Task category")
    due_date: date = Field(..., description="Calendar date the task is due")
    equipment_id: str | None = Field(default=None, description="Related equipment ID")
    notes: str | None = Field(default=None, description="Free-form notes")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Initial status")
    is_recurring: bool = Field(default=False, description="Whether completion spawns a successor")
    recurrence_interval: RecurrenceInterval | None = Field(default=None, description="Recurrence rule")
    recurrence_days: int | None = Field(default=None, description="Day count for custom recurrence")

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: object) -> object:
        """Strip any time-of-day from the due date."""
        if isinstance(v, date | str):
            return to_calendar_date(v)
        return v

    @field_validator("task_name")
    @classmethod
    def strip_task_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Task name is required")
        return v

    @model_validator(mode="after")
    def validate_recurrence(self) -> "TaskCreate":
        """Enforce recurrence invariants before anything is persisted."""
        if not self.is_recurring:
            if self.recurrence_interval is not None or self.recurrence_days is not None:
                msg = "recurrence_interval and recurrence_days require is_recurring"
                raise ValueError(msg)
            return self

        if self.recurrence_interval is None:
            msg = "recurrence_interval is required for recurring tasks"
            raise ValueError(msg)

        if self.recurrence_interval == RecurrenceInterval.CUSTOM:
            if self.recurrence_days is None or self.recurrence_days < 1:
                msg = "Custom recurrence requires recurrence_days to be a positive integer"
                raise ValueError(msg)
        elif self.recurrence_days is not None:
            msg = f"recurrence_days is derived for {self.recurrence_interval} recurrence and must not be set"
            raise ValueError(msg)
        return self

    def to_record(self) -> dict[str, object]:
        """Serialize for db_client.create_record, omitting unset optional relations."""
        record = self.model_dump(mode="json")
        if record["equipment_id"] is None:
            record.pop("equipment_id")
        return record
