"""Badge catalog and the evaluator that decides which badges a completion unlocks.

The catalog is process-wide read-only configuration. Earned badges live on
the user snapshot as :class:`EarnedBadgeRecord` entries and are never revoked.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from .models import TaskCategory
from .periods import in_window, week_end, week_start
from .schemas import EarnedBadgeRecord, TaskSnapshot, UserSnapshot
from .scoring import is_early_bird

log = logging.getLogger(__name__)

EARLY_BIRD = "early_bird"
CONSISTENCY_KING = "consistency_king"
WEEKLY_CHAMPION = "weekly_champion"
TASK_MASTER = "task_master"
PERFECT_WEEK = "perfect_week"
SPEED_DEMON = "speed_demon"


@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    name: str
    description: str
    icon: str
    requirement: int
    active: bool = True


def _catalog(*definitions: BadgeDefinition) -> Mapping[str, BadgeDefinition]:
    return MappingProxyType({definition.id: definition for definition in definitions})


BADGES = _catalog(
    BadgeDefinition(EARLY_BIRD, "Early Bird", "Complete a task before 10 AM", "🌅", 1),
    BadgeDefinition(CONSISTENCY_KING, "Consistency King", "Complete daily tasks for 7 days in a row", "👑", 7),
    BadgeDefinition(WEEKLY_CHAMPION, "Weekly Champion", "Complete all weekly tasks in a week", "🏆", 1),
    BadgeDefinition(TASK_MASTER, "Task Master", "Complete 100 tasks", "🎯", 100),
    # declared for display; no evaluator unlocks these yet
    BadgeDefinition(PERFECT_WEEK, "Perfect Week", "Complete all tasks for a full week", "⭐", 1, active=False),
    BadgeDefinition(SPEED_DEMON, "Speed Demon", "Complete 10 tasks in one day", "⚡", 10, active=False),
)


def grant_badge(user: UserSnapshot, badge_id: str, unlocked_at: datetime) -> Tuple[UserSnapshot, bool]:
    if user.has_badge(badge_id) or not BADGES[badge_id].active:
        return user, False
    record = EarnedBadgeRecord(badge_id=badge_id, unlocked_at=unlocked_at)
    return replace(user, badges=user.badges + (record,)), True


def weekly_champion_reached(week_tasks: Iterable[TaskSnapshot], reference: datetime) -> bool:
    """True when every weekly task created in ``reference``'s week is completed."""
    start, end = week_start(reference), week_end(reference)
    weekly = [
        task for task in week_tasks
        if task.category == TaskCategory.WEEKLY and in_window(task.created_at, start, end)
    ]
    return bool(weekly) and all(task.completed for task in weekly)


def evaluate_badges(
    user: UserSnapshot,
    task: TaskSnapshot,
    completed_at: datetime,
    week_tasks: Iterable[TaskSnapshot] = (),
) -> Tuple[UserSnapshot, Tuple[BadgeDefinition, ...]]:
    """Update achievement counters for this completion and grant new badges.

    Must run after points, level, streak and the completed-task counter have
    been updated. ``week_tasks`` are the owner's tasks, with ``task`` in its
    completed state.
    """
    achievements = user.achievements
    earned: list[str] = []

    def grant(badge_id: str) -> None:
        nonlocal user
        user, added = grant_badge(user, badge_id, completed_at)
        if added:
            earned.append(badge_id)

    if is_early_bird(completed_at):
        achievements = replace(achievements, early_bird_count=achievements.early_bird_count + 1)
        if achievements.early_bird_count >= BADGES[EARLY_BIRD].requirement:
            grant(EARLY_BIRD)

    achievements = replace(
        achievements, consistency_streak=max(achievements.consistency_streak, user.streak.current)
    )
    if user.streak.current >= BADGES[CONSISTENCY_KING].requirement:
        grant(CONSISTENCY_KING)

    if achievements.total_tasks_completed >= BADGES[TASK_MASTER].requirement:
        grant(TASK_MASTER)

    if task.category == TaskCategory.WEEKLY and weekly_champion_reached(week_tasks, completed_at):
        achievements = replace(achievements, weekly_champion_weeks=achievements.weekly_champion_weeks + 1)
        grant(WEEKLY_CHAMPION)

    user = replace(user, achievements=achievements)
    for badge_id in earned:
        log.info("User %s unlocked badge %s", user.id, badge_id)
    return user, tuple(BADGES[badge_id] for badge_id in earned)
