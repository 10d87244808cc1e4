from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..engine import compute_progress, get_leaderboard, month_calendar, user_stats
from ..models import Task, User
from ..periods import month_end, month_start, week_end, week_start
from ..schemas import CalendarDay, LeaderboardEntry, Progress, UserStats
from .task_service import to_task_snapshot
from .user_service import to_user_snapshot


def progress_for_user(session: Session, user_id: int, reference: datetime) -> Progress:
    # the weekly window can start in the previous month
    since = min(week_start(reference), month_start(reference))
    stmt = select(Task).where(Task.user_id == user_id, Task.created_at >= since)
    tasks = [to_task_snapshot(task) for task in session.scalars(stmt)]
    return compute_progress(tasks, reference)


def leaderboard(session: Session, limit: int = 10) -> List[LeaderboardEntry]:
    stmt = select(User).order_by(User.points.desc(), User.id).limit(limit)
    return get_leaderboard([to_user_snapshot(user) for user in session.scalars(stmt)], limit)


def stats_for_user(session: Session, user: User) -> UserStats:
    return user_stats(to_user_snapshot(user))


def calendar_for_user(session: Session, user_id: int, month: datetime) -> List[CalendarDay]:
    # weeks at either edge of the month reach into the neighbouring months
    stmt = select(Task).where(
        Task.user_id == user_id,
        Task.created_at.between(week_start(month_start(month)), week_end(month_end(month))),
    )
    tasks = [to_task_snapshot(task) for task in session.scalars(stmt)]
    return month_calendar(tasks, month)
