"""Gamification engine: pure operations over task and user snapshots.

Nothing here touches the database. Each operation returns new snapshots and
the caller persists them as a single write.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, List, Mapping, Optional, Sequence

from .badges import evaluate_badges
from .errors import AlreadyCompleted, NotFound
from .models import TaskCategory
from .periods import compute_deadline, end_of_day, in_window, month_end, month_start, start_of_day, week_end, week_start
from .schemas import (
    CalendarDay,
    CategoryFlags,
    CompletionOutcome,
    CompletionResult,
    LeaderboardEntry,
    PeriodProgress,
    Progress,
    RevertResult,
    SweepResult,
    TaskSnapshot,
    UserSnapshot,
    UserStats,
)
from .scoring import (
    apply_points,
    deduct_points,
    level_progress,
    level_title,
    overdue_penalty,
    points_for_task,
    round_half_up,
    update_streak,
)

log = logging.getLogger(__name__)

__all__ = [
    "award_completion",
    "compute_deadline",
    "compute_progress",
    "get_leaderboard",
    "month_calendar",
    "revert_completion",
    "sweep_overdue",
    "user_stats",
]


def award_completion(
    task: Optional[TaskSnapshot],
    user: Optional[UserSnapshot],
    completed_at: datetime,
    user_tasks: Iterable[TaskSnapshot] = (),
) -> CompletionOutcome:
    if task is None or user is None or task.user_id != user.id:
        raise NotFound("Task or user not found")
    if task.completed or task.points_awarded:
        raise AlreadyCompleted(task.id)

    points = points_for_task(task, completed_at)
    task = replace(task, completed=True, completed_at=completed_at, points_awarded=points, is_overdue=False)

    leveling = apply_points(user.level, user.xp, points)
    achievements = replace(
        user.achievements, total_tasks_completed=user.achievements.total_tasks_completed + 1
    )
    user = replace(
        user,
        points=user.points + points,
        xp=leveling.xp,
        level=leveling.level,
        achievements=achievements,
        streak=update_streak(user.streak, completed_at),
    )
    if leveling.leveled_up:
        log.info("User %s reached level %s (%s)", user.id, user.level, level_title(user.level))

    week_tasks = [task if other.id == task.id else other for other in user_tasks]
    if not any(other.id == task.id for other in week_tasks):
        week_tasks.append(task)
    user, new_badges = evaluate_badges(user, task, completed_at, week_tasks)

    result = CompletionResult(
        points_earned=points,
        leveled_up=leveling.leveled_up,
        new_level=user.level,
        new_badges=tuple(badge.id for badge in new_badges),
        current_streak=user.streak.current,
        total_points=user.points,
    )
    return CompletionOutcome(task=task, user=user, result=result)


def revert_completion(task: Optional[TaskSnapshot], user: Optional[UserSnapshot]) -> RevertResult:
    """Undo a completion: the task reopens and its points leave the balance.

    XP, level, streak, counters and badges stay as they are.
    """
    if task is None or user is None or task.user_id != user.id:
        raise NotFound("Task or user not found")
    if not task.completed and not task.points_awarded:
        return RevertResult(task=task, user=user, points_removed=0)
    removed = min(task.points_awarded, user.points)
    user = replace(user, points=deduct_points(user.points, task.points_awarded))
    task = replace(task, completed=False, completed_at=None, points_awarded=0)
    return RevertResult(task=task, user=user, points_removed=removed)


def is_sweepable(task: TaskSnapshot, now: datetime) -> bool:
    return not task.completed and not task.is_overdue and task.deadline < now


def penalize_overdue(task: TaskSnapshot, user: UserSnapshot) -> tuple[TaskSnapshot, UserSnapshot]:
    penalty = overdue_penalty(task.category)
    log.info("Task %s is overdue; deducting %s points from user %s", task.id, penalty, user.id)
    return replace(task, is_overdue=True), replace(user, points=deduct_points(user.points, penalty))


def sweep_overdue(
    tasks: Sequence[TaskSnapshot], users: Mapping[int, UserSnapshot], now: datetime
) -> SweepResult:
    users = dict(users)
    updated_tasks: List[TaskSnapshot] = []
    processed = 0
    for task in tasks:
        if not is_sweepable(task, now):
            updated_tasks.append(task)
            continue
        owner = users.get(task.user_id)
        if owner is None:
            raise NotFound(f"Owner of task {task.id} not found")
        task, users[owner.id] = penalize_overdue(task, owner)
        updated_tasks.append(task)
        processed += 1
    return SweepResult(processed_count=processed, tasks=tuple(updated_tasks), users=tuple(users.values()))


def percent(completed: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(100 * completed / total)


def _period(tasks: Sequence[TaskSnapshot]) -> PeriodProgress:
    completed = sum(1 for task in tasks if task.completed)
    return PeriodProgress(completed=completed, total=len(tasks), percent=percent(completed, len(tasks)))


def compute_progress(tasks: Iterable[TaskSnapshot], reference: datetime) -> Progress:
    windows = {
        TaskCategory.DAILY: (start_of_day(reference), end_of_day(reference)),
        TaskCategory.WEEKLY: (week_start(reference), week_end(reference)),
        TaskCategory.MONTHLY: (month_start(reference), month_end(reference)),
    }
    buckets: dict[TaskCategory, List[TaskSnapshot]] = {category: [] for category in windows}
    for task in tasks:
        start, end = windows[task.category]
        if in_window(task.created_at, start, end):
            buckets[task.category].append(task)
    everything = [task for bucket in buckets.values() for task in bucket]
    return Progress(
        daily=_period(buckets[TaskCategory.DAILY]),
        weekly=_period(buckets[TaskCategory.WEEKLY]),
        monthly=_period(buckets[TaskCategory.MONTHLY]),
        overall=_period(everything),
    )


def get_leaderboard(users: Iterable[UserSnapshot], limit: int = 10) -> List[LeaderboardEntry]:
    ranked = sorted(users, key=lambda user: user.points, reverse=True)[:limit]
    return [
        LeaderboardEntry(
            rank=index,
            name=user.name,
            points=user.points,
            level=user.level,
            level_title=level_title(user.level),
            badge_count=len(user.badges),
        )
        for index, user in enumerate(ranked, start=1)
    ]


def user_stats(user: Optional[UserSnapshot]) -> UserStats:
    if user is None:
        raise NotFound("User not found")
    progress = level_progress(user.level, user.xp)
    return UserStats(
        points=user.points,
        level=user.level,
        level_title=level_title(user.level),
        xp=user.xp,
        xp_progress=progress.xp_into_level,
        xp_needed=progress.xp_needed,
        xp_for_next_level=progress.level_span,
        badges=user.badges,
        achievements=user.achievements,
        streak=user.streak,
    )


def _calendar_day(tasks_by_category: Mapping[TaskCategory, List[TaskSnapshot]], day: datetime) -> CalendarDay:
    windows = {
        TaskCategory.DAILY: (start_of_day(day), end_of_day(day)),
        TaskCategory.WEEKLY: (week_start(day), week_end(day)),
        TaskCategory.MONTHLY: (month_start(day), month_end(day)),
    }
    assigned = {}
    done = {}
    for category, (start, end) in windows.items():
        members = [task for task in tasks_by_category[category] if in_window(task.created_at, start, end)]
        assigned[category.value] = bool(members)
        done[category.value] = bool(members) and all(task.completed for task in members)
    return CalendarDay(
        day=day.date(),
        assignments=CategoryFlags(**assigned),
        completions=CategoryFlags(**done),
        is_streak_day=done[TaskCategory.DAILY.value],
    )


def month_calendar(tasks: Iterable[TaskSnapshot], month: datetime) -> List[CalendarDay]:
    """Per-day assignment and completion flags for the month containing ``month``.

    Tasks belong to a day, week or month by ``created_at``, like progress.
    A streak day is one whose daily tasks exist and are all completed.
    """
    tasks_by_category: dict[TaskCategory, List[TaskSnapshot]] = {category: [] for category in TaskCategory}
    for task in tasks:
        tasks_by_category[task.category].append(task)
    first, last = month_start(month), month_end(month)
    return [
        _calendar_day(tasks_by_category, first + timedelta(days=offset))
        for offset in range((last.date() - first.date()).days + 1)
    ]
