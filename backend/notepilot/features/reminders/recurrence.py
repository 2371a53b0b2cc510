"""
Recurrence arithmetic for repeating reminders.
"""

import calendar
from datetime import datetime, timedelta

RECURRENCES = ("daily", "weekly", "monthly")


def _add_month(value: datetime) -> datetime:
    """Same day next month, clamped to the last day (Jan 31 → Feb 28/29)."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_next_occurrence(current: datetime, recurrence: str | None) -> datetime:
    """Next occurrence date; unknown or empty recurrence returns `current`."""
    match recurrence:
        case "daily":
            return current + timedelta(days=1)
        case "weekly":
            return current + timedelta(weeks=1)
        case "monthly":
            return _add_month(current)
        case _:
            return current


def should_create_next_occurrence(
    recurrence: str | None,
    remind_at: datetime | None,
    recurrence_end_date: datetime | None,
) -> bool:
    if recurrence not in RECURRENCES or remind_at is None:
        return False
    next_date = calculate_next_occurrence(remind_at, recurrence)
    return recurrence_end_date is None or next_date <= recurrence_end_date
