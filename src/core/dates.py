"""Date-only helpers.

Task dates are calendar dates. Anything carrying a time-of-day (datetime objects,
ISO timestamps) is truncated to its date before it is compared or stored, and
dates are serialized as ``YYYY-MM-DD``.
"""

from datetime import date, datetime, timedelta
from enum import StrEnum

from dateutil import parser as dateutil_parser

from src.core.config import constants


class DateProximity(StrEnum):
    """Human-oriented distance of a due date from today."""

    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this-week"
    LATER = "later"


def to_calendar_date(value: date | datetime | str) -> date:
    """Normalize a date, datetime, or ISO string to a calendar date.

    Raises:
        ValueError: If the value cannot be parsed as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        msg = f"Invalid date value: {value!r}"
        raise ValueError(msg)

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return dateutil_parser.isoparse(text).date()
    except (ValueError, OverflowError) as e:
        msg = f"Invalid date value: {value!r}"
        raise ValueError(msg) from e


def parse_date(value: date | datetime | str | None) -> date | None:
    """Parse a date value, returning None for missing or malformed input."""
    if value is None:
        return None
    try:
        return to_calendar_date(value)
    except ValueError:
        return None


def format_date_key(value: date | datetime) -> str:
    """Format a date as the ``YYYY-MM-DD`` key used for storage and bucketing."""
    return to_calendar_date(value).isoformat()


def today() -> date:
    """Return the local calendar date."""
    return date.today()


def add_days(value: date, days: int) -> date:
    """Add a number of days to a calendar date."""
    return value + timedelta(days=days)


def start_of_week(value: date, *, week_starts_on: int = 0) -> date:
    """Return the first day of the week containing ``value``.

    Args:
        value: Any date in the week
        week_starts_on: 0=Sunday, 1=Monday, ..., 6=Saturday
    """
    # date.weekday() is Monday=0; shift to Sunday=0
    day_index = (value.weekday() + 1) % 7
    offset = (day_index - week_starts_on) % 7
    return value - timedelta(days=offset)


def end_of_week(value: date, *, week_starts_on: int = 0) -> date:
    """Return the last day of the week containing ``value``."""
    return start_of_week(value, week_starts_on=week_starts_on) + timedelta(days=6)


def start_of_month(value: date) -> date:
    return value.replace(day=1)


def end_of_month(value: date) -> date:
    next_month = (value.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def days_between(start: date, end: date) -> list[date]:
    """Return every date from start to end inclusive."""
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def is_overdue(due: date, *, reference: date) -> bool:
    """A date is overdue when it falls strictly before the reference day."""
    return due < reference


def date_proximity(due: date | str | None, *, reference: date) -> DateProximity | None:
    """Describe how far away a due date is from the reference day."""
    parsed = parse_date(due)
    if parsed is None:
        return None

    if is_overdue(parsed, reference=reference):
        return DateProximity.OVERDUE
    if parsed == reference:
        return DateProximity.TODAY

    days_until = (parsed - reference).days
    if days_until == constants.TOMORROW_DAYS:
        return DateProximity.TOMORROW
    if days_until <= constants.THIS_WEEK_DAYS:
        return DateProximity.THIS_WEEK
    return DateProximity.LATER
