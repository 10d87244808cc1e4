from datetime import datetime

import pytest

from taskquest.errors import ValidationError
from taskquest.models import TaskCategory
from taskquest.periods import compute_deadline, month_end, week_end, week_start
from taskquest.schemas import TaskCreate


def test_daily_deadline_is_end_of_day():
    assert compute_deadline(TaskCategory.DAILY, datetime(2024, 1, 10, 15, 30)) == datetime(2024, 1, 10, 23, 59, 59)


def test_weekly_deadline_is_next_sunday():
    assert compute_deadline("weekly", datetime(2024, 1, 10, 15, 30)) == datetime(2024, 1, 14, 23, 59, 59)
    assert compute_deadline("weekly", datetime(2024, 1, 13, 8, 0)) == datetime(2024, 1, 14, 23, 59, 59)


def test_weekly_deadline_created_on_sunday():
    assert compute_deadline("weekly", datetime(2024, 1, 14, 10, 0)) == datetime(2024, 1, 21, 23, 59, 59)


def test_monthly_deadline():
    assert compute_deadline("monthly", datetime(2024, 2, 10, 9, 0)) == datetime(2024, 2, 29, 23, 59, 59)
    assert compute_deadline("monthly", datetime(2023, 12, 5, 9, 0)) == datetime(2023, 12, 31, 23, 59, 59)


def test_unknown_category():
    with pytest.raises(ValidationError):
        compute_deadline("yearly", datetime(2024, 1, 10))


def test_week_window_starts_sunday():
    assert week_start(datetime(2024, 1, 10, 12, 0)) == datetime(2024, 1, 7)
    assert week_start(datetime(2024, 1, 14, 12, 0)) == datetime(2024, 1, 14)
    assert week_end(datetime(2024, 1, 10, 12, 0)) == datetime(2024, 1, 13, 23, 59, 59)
    assert month_end(datetime(2024, 1, 10)) == datetime(2024, 1, 31, 23, 59, 59)


def test_task_create_validation():
    data = TaskCreate(title="  Water plants  ", category="weekly")
    assert data.title == "Water plants"
    assert data.category is TaskCategory.WEEKLY
    with pytest.raises(ValidationError):
        TaskCreate(title="   ")
    with pytest.raises(ValidationError):
        TaskCreate(title="x" * 201)
    with pytest.raises(ValidationError):
        TaskCreate(title="Ok", category="yearly")
