from datetime import datetime

import pytest
from sqlalchemy import select

from taskquest.badges import EARLY_BIRD
from taskquest.errors import AlreadyCompleted, NotFound
from taskquest.models import EarnedBadge, Task, TaskCategory, User
from taskquest.schemas import CompletionResult, RevertResult, TaskCreate
from taskquest.services import task_service
from taskquest.services.analytics_service import calendar_for_user, leaderboard, progress_for_user, stats_for_user
from taskquest.services.reminder_service import build_daily_digest
from taskquest.services.sweep_service import sweep_overdue
from taskquest.services.user_service import get_or_create_user

CREATED = datetime(2024, 1, 10, 7, 0)


def test_create_task_assigns_deadline(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task = task_service.create_task(session, user, TaskCreate(title="Plan week", category="weekly"), CREATED)
        session.commit()
        assert task.deadline == datetime(2024, 1, 14, 23, 59, 59)
        assert task.points_awarded == 0
        assert not task.completed


def test_complete_persists_user_task_and_badges(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task = task_service.create_task(session, user, TaskCreate(title="Stretch"), CREATED)
        result = task_service.complete_task(session, user, task.id, datetime(2024, 1, 10, 8, 30))
        session.commit()
        assert result.points_earned == 18
        assert result.new_badges == (EARLY_BIRD,)

    with session_factory() as session:
        user = session.scalars(select(User).where(User.telegram_id == 10)).one()
        task = session.scalars(select(Task)).one()
        assert (user.points, user.xp, user.level) == (18, 18, 1)
        assert user.total_tasks_completed == 1
        assert user.current_streak == 1
        assert task.completed and task.points_awarded == 18
        assert [badge.badge_id for badge in session.scalars(select(EarnedBadge))] == [EARLY_BIRD]


def test_complete_twice_and_missing(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task = task_service.create_task(session, user, TaskCreate(title="Read"), CREATED)
        task_service.complete_task(session, user, task.id, datetime(2024, 1, 10, 12, 0))
        session.commit()
        with pytest.raises(AlreadyCompleted):
            task_service.complete_task(session, user, task.id, datetime(2024, 1, 10, 13, 0))
        session.rollback()
        with pytest.raises(NotFound):
            task_service.complete_task(session, user, 999, datetime(2024, 1, 10, 13, 0))


def test_second_session_cannot_complete_the_same_task(file_session_factory):
    with file_session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task_id = task_service.create_task(session, user, TaskCreate(title="Read"), CREATED).id
        session.commit()

    first, second = file_session_factory(), file_session_factory()
    try:
        # both sessions see the task open before either completes it
        first_user = first.scalars(select(User)).one()
        second_user = second.scalars(select(User)).one()
        task_service.require_task(first, first_user.id, task_id)
        task_service.require_task(second, second_user.id, task_id)

        task_service.complete_task(first, first_user, task_id, datetime(2024, 1, 10, 12, 0))
        first.commit()
        with pytest.raises(AlreadyCompleted):
            task_service.complete_task(second, second_user, task_id, datetime(2024, 1, 10, 12, 5))
        second.rollback()
    finally:
        first.close()
        second.close()

    with file_session_factory() as session:
        user = session.scalars(select(User)).one()
        task = session.get(Task, task_id)
        assert (user.points, user.xp, user.total_tasks_completed) == (15, 15, 1)
        assert task.completed and task.points_awarded == 15

def test_other_users_task_is_not_found(session_factory):
    with session_factory() as session:
        owner = get_or_create_user(session, 10, "Owner")
        stranger = get_or_create_user(session, 11, "Stranger")
        task = task_service.create_task(session, owner, TaskCreate(title="Private"), CREATED)
        session.commit()
        with pytest.raises(NotFound):
            task_service.complete_task(session, stranger, task.id, datetime(2024, 1, 10, 12, 0))


def test_toggle_reverts_then_recompletes(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task = task_service.create_task(session, user, TaskCreate(title="Run"), CREATED)
        first = task_service.toggle_task(session, user, task.id, datetime(2024, 1, 10, 12, 0))
        assert isinstance(first, CompletionResult)
        second = task_service.toggle_task(session, user, task.id, datetime(2024, 1, 10, 13, 0))
        assert isinstance(second, RevertResult)
        assert second.points_removed == 15
        session.commit()
        assert (user.points, user.xp) == (0, 15)
        assert task.points_awarded == 0 and task.completed_at is None
        assert task.updated_at == datetime(2024, 1, 10, 13, 0)
        third = task_service.toggle_task(session, user, task.id, datetime(2024, 1, 10, 14, 0))
        session.commit()
        assert third.points_earned == 15
        assert user.total_tasks_completed == 2


def test_delete_keeps_points(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task = task_service.create_task(session, user, TaskCreate(title="Call mom"), CREATED)
        task_service.complete_task(session, user, task.id, datetime(2024, 1, 10, 12, 0))
        task_service.delete_task(session, user, task.id)
        session.commit()
        assert session.scalars(select(Task)).all() == []
        assert user.points == 15


def test_sweep_service_penalizes_once(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        user.points = 20
        task_service.create_task(session, user, TaskCreate(title="Late"), CREATED)
        task_service.create_task(session, user, TaskCreate(title="Later", category="monthly"), CREATED)
        session.commit()

    now = datetime(2024, 1, 11, 9, 0)
    assert sweep_overdue(now, factory=session_factory) == 1
    assert sweep_overdue(now, factory=session_factory) == 0

    with session_factory() as session:
        user = session.scalars(select(User)).one()
        assert user.points == 15
        assert user.xp == 0
        late = session.scalars(select(Task).where(Task.title == "Late")).one()
        assert late.is_overdue
        assert late.updated_at == now


def test_progress_leaderboard_and_stats(session_factory):
    reference = datetime(2024, 1, 10, 12, 0)
    with session_factory() as session:
        first = get_or_create_user(session, 10, "First")
        second = get_or_create_user(session, 11, "Second")
        done = task_service.create_task(session, first, TaskCreate(title="One"), CREATED)
        task_service.create_task(session, first, TaskCreate(title="Two"), CREATED)
        task_service.create_task(session, first, TaskCreate(title="Three", category=TaskCategory.WEEKLY), CREATED)
        task_service.complete_task(session, first, done.id, reference)
        session.commit()

        progress = progress_for_user(session, first.id, reference)
        assert (progress.daily_pct, progress.weekly_pct, progress.overall_pct) == (50, 0, 33)

        board = leaderboard(session, limit=5)
        assert [(entry.rank, entry.name, entry.points) for entry in board] == [(1, "First", 15), (2, "Second", 0)]

        stats = stats_for_user(session, first)
        assert stats.points == 15
        assert stats.level_title == "Beginner"
        assert stats.xp_needed == 85


def test_daily_digest_lists_overdue_and_due_today(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        task_service.create_task(session, user, TaskCreate(title="Yesterday"), datetime(2024, 1, 9, 7, 0))
        task_service.create_task(session, user, TaskCreate(title="Stretch"), CREATED)
        session.commit()

    reference = datetime(2024, 1, 10, 8, 0)
    assert sweep_overdue(reference, factory=session_factory) == 1

    with session_factory() as session:
        user = session.scalars(select(User)).one()
        digest = build_daily_digest(session, user, reference)
    lines = digest.splitlines()
    assert lines[0] == "Today's Focus:"
    assert lines[1:5] == ["Overdue:", "  Yesterday", "Due Today:", "  Stretch"]
    assert "Level 1" in lines[-1]


def test_calendar_includes_week_started_in_previous_month(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 10, "Tester")
        weekly = task_service.create_task(
            session, user, TaskCreate(title="Review budget", category="weekly"), datetime(2024, 1, 28, 9, 0)
        )
        task_service.complete_task(session, user, weekly.id, datetime(2024, 1, 29, 12, 0))
        session.commit()
        days = calendar_for_user(session, user.id, datetime(2024, 2, 1))

    assert len(days) == 29
    assert days[0].assignments.weekly and days[0].completions.weekly
    assert days[2].completions.weekly
    assert not days[3].assignments.weekly
