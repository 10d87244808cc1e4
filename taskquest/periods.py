from __future__ import annotations

from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import relativedelta
from zoneinfo import ZoneInfo

from .errors import ValidationError
from .models import TaskCategory

# Weeks start on Sunday. This is a fixed convention shared by deadlines,
# the weekly champion check and the weekly progress window.
END_OF_DAY = time(23, 59, 59)


def sunday_weekday(value: date) -> int:
    """Day of week with Sunday as 0 and Saturday as 6."""
    return (value.weekday() + 1) % 7


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), END_OF_DAY, tzinfo=value.tzinfo)


def week_start(value: datetime) -> datetime:
    return start_of_day(value) - timedelta(days=sunday_weekday(value.date()))


def week_end(value: datetime) -> datetime:
    return end_of_day(week_start(value) + timedelta(days=6))


def month_start(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def month_end(value: datetime) -> datetime:
    last_day = month_start(value) + relativedelta(months=1, days=-1)
    return end_of_day(last_day)


def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days


def in_window(value: datetime, start: datetime, end: datetime) -> bool:
    return start <= value <= end


def compute_deadline(category: TaskCategory | str, created_at: datetime) -> datetime:
    try:
        category = TaskCategory(category)
    except ValueError as exc:
        raise ValidationError(f"Unknown task category: {category!r}") from exc
    if category == TaskCategory.DAILY:
        return end_of_day(created_at)
    if category == TaskCategory.WEEKLY:
        # a task created on Sunday is due the following Sunday
        days_until_sunday = 7 - sunday_weekday(created_at.date())
        return end_of_day(created_at + timedelta(days=days_until_sunday))
    return month_end(created_at)


def local_now(timezone: str) -> datetime:
    """Current wall-clock time in ``timezone`` as a naive datetime."""
    return datetime.now(ZoneInfo(timezone)).replace(tzinfo=None)
