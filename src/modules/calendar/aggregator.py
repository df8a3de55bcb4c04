"""Calendar data aggregation: month grid, per-day index and summary stats."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.core.config import settings
from src.core.dates import (
    days_between,
    end_of_month,
    end_of_week,
    format_date_key,
    is_overdue,
    start_of_month,
    start_of_week,
    to_calendar_date,
)
from src.domain.task import MaintenanceTask
from src.modules.calendar.filters import FilterState, filter_tasks


class CalendarWindow(BaseModel):
    """Date range whose tasks are loaded, plus the full-week grid that displays it."""

    model_config = ConfigDict(frozen=True)

    start: date = Field(..., description="First loaded day (inclusive)")
    end: date = Field(..., description="Last loaded day (inclusive)")
    week_starts_on: int = Field(default=0, ge=0, le=6, description="0=Sunday, 1=Monday, ..., 6=Saturday")

    @model_validator(mode="after")
    def validate_order(self) -> "CalendarWindow":
        if self.end < self.start:
            msg = f"Window end {self.end} is before start {self.start}"
            raise ValueError(msg)
        return self

    @classmethod
    def for_month(cls, month: date, *, week_starts_on: int | None = None) -> "CalendarWindow":
        """Window covering the calendar month containing ``month``."""
        month = to_calendar_date(month)
        return cls(
            start=start_of_month(month),
            end=end_of_month(month),
            week_starts_on=settings.week_starts_on if week_starts_on is None else week_starts_on,
        )

    @classmethod
    def for_range(cls, start: date, end: date, *, week_starts_on: int | None = None) -> "CalendarWindow":
        """Window covering an arbitrary inclusive date range."""
        return cls(
            start=to_calendar_date(start),
            end=to_calendar_date(end),
            week_starts_on=settings.week_starts_on if week_starts_on is None else week_starts_on,
        )

    @property
    def key(self) -> str:
        """Cache key component identifying the loaded range."""
        return f"{format_date_key(self.start)}..{format_date_key(self.end)}"

    @property
    def grid_start(self) -> date:
        return start_of_week(self.start, week_starts_on=self.week_starts_on)

    @property
    def grid_end(self) -> date:
        return end_of_week(self.end, week_starts_on=self.week_starts_on)

    def grid_days(self) -> list[date]:
        """Every day from the start of the first week through the end of the last week."""
        return days_between(self.grid_start, self.grid_end)


class CalendarStats(BaseModel):
    """Summary counts relative to a reference day."""

    model_config = ConfigDict(frozen=True)

    today_count: int
    today_tasks: tuple[MaintenanceTask, ...]
    overdue_count: int
    overdue_tasks: tuple[MaintenanceTask, ...]
    this_week_count: int
    this_week_tasks: tuple[MaintenanceTask, ...]
    completed_count: int
    total_pending: int


def compute_stats(tasks: Iterable[MaintenanceTask], *, today: date, week_starts_on: int = 0) -> CalendarStats:
    """Compute calendar stats.

    A task due today is never overdue; this week runs from today through the end
    of the current week, inclusive.
    """
    tasks = list(tasks)
    pending = [task for task in tasks if task.is_pending]
    week_end = end_of_week(today, week_starts_on=week_starts_on)

    today_tasks = tuple(task for task in pending if task.due_date == today)
    overdue_tasks = tuple(task for task in pending if is_overdue(task.due_date, reference=today))
    this_week_tasks = tuple(task for task in pending if today <= task.due_date <= week_end)

    return CalendarStats(
        today_count=len(today_tasks),
        today_tasks=today_tasks,
        overdue_count=len(overdue_tasks),
        overdue_tasks=overdue_tasks,
        this_week_count=len(this_week_tasks),
        this_week_tasks=this_week_tasks,
        completed_count=sum(1 for task in tasks if task.is_completed),
        total_pending=len(pending),
    )


def group_by_due_date(tasks: Iterable[MaintenanceTask]) -> dict[str, tuple[MaintenanceTask, ...]]:
    """Bucket tasks by ``YYYY-MM-DD`` due date, keeping ascending due-date order within each bucket."""
    ordered = sorted(tasks, key=lambda task: task.due_date)
    buckets: dict[str, list[MaintenanceTask]] = {}
    for task in ordered:
        buckets.setdefault(format_date_key(task.due_date), []).append(task)
    return {key: tuple(bucket) for key, bucket in buckets.items()}


@dataclass(frozen=True)
class CalendarData:
    """Immutable snapshot of everything a calendar view renders.

    Stats cover every loaded task; the day index and ``filtered_tasks`` honour
    the filter state.
    """

    window: CalendarWindow
    today: date
    tasks: tuple[MaintenanceTask, ...]
    filters: FilterState
    days: tuple[date, ...]
    filtered_tasks: tuple[MaintenanceTask, ...]
    stats: CalendarStats
    tasks_by_date: Mapping[str, tuple[MaintenanceTask, ...]] = field(repr=False)

    def get_tasks_for_day(self, day: date) -> list[MaintenanceTask]:
        """Tasks due on ``day`` (an empty list when there are none)."""
        return list(self.tasks_by_date.get(format_date_key(day), ()))


def build_calendar_data(
    tasks: Iterable[MaintenanceTask],
    *,
    window: CalendarWindow,
    today: date,
    filters: FilterState | None = None,
) -> CalendarData:
    """Aggregate loaded tasks into calendar data.

    Deterministic: the same tasks, window, filters and ``today`` always produce an
    equal result.
    """
    tasks = tuple(tasks)
    filters = filters or FilterState()
    visible = tuple(filter_tasks(tasks, filters, today))

    return CalendarData(
        window=window,
        today=today,
        tasks=tasks,
        filters=filters,
        days=tuple(window.grid_days()),
        filtered_tasks=visible,
        stats=compute_stats(tasks, today=today, week_starts_on=window.week_starts_on),
        tasks_by_date=MappingProxyType(group_by_due_date(visible)),
    )
