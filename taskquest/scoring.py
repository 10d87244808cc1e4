from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType

from .models import TaskCategory
from .periods import days_between
from .schemas import StreakState, TaskSnapshot

# Configurable constants
BASE_POINTS = MappingProxyType({
    TaskCategory.DAILY: 10,
    TaskCategory.WEEKLY: 50,
    TaskCategory.MONTHLY: 200,
})
OVERDUE_PENALTIES = MappingProxyType({
    TaskCategory.DAILY: 5,
    TaskCategory.WEEKLY: 25,
    TaskCategory.MONTHLY: 100,
})
ON_TIME_MULTIPLIER = Decimal("1.5")
EARLY_BIRD_MULTIPLIER = Decimal("1.2")
EARLY_BIRD_HOUR = 10
LEVEL_STEP = 100
LEVEL_TITLES = MappingProxyType({
    1: "Beginner",
    2: "Novice",
    3: "Task Master",
    4: "Productivity Pro",
    5: "Efficiency Expert",
    6: "Goal Crusher",
    7: "Achievement Hunter",
    8: "Legendary Organizer",
    9: "Productivity Guru",
    10: "Task Overlord",
})


@dataclass
class PointsBreakdown:
    base: int
    multipliers: dict[str, Decimal]
    total: int


@dataclass(frozen=True)
class LevelResult:
    level: int
    xp: int
    leveled_up: bool


@dataclass(frozen=True)
class LevelProgress:
    xp_into_level: int
    xp_needed: int
    level_span: int


def round_half_up(value: Decimal | float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_early_bird(completed_at: datetime) -> bool:
    return completed_at.hour < EARLY_BIRD_HOUR


def is_on_time(deadline: datetime | None, completed_at: datetime) -> bool:
    return deadline is not None and completed_at <= deadline


def compute_points(category: TaskCategory | str, deadline: datetime | None, completed_at: datetime) -> PointsBreakdown:
    category = TaskCategory(category)
    base = BASE_POINTS[category]
    multipliers: dict[str, Decimal] = {}
    # on-time first, then early-bird
    multipliers["on_time"] = ON_TIME_MULTIPLIER if is_on_time(deadline, completed_at) else Decimal(1)
    multipliers["early_bird"] = EARLY_BIRD_MULTIPLIER if is_early_bird(completed_at) else Decimal(1)
    value = Decimal(base)
    for factor in multipliers.values():
        value *= factor
    return PointsBreakdown(base=base, multipliers=multipliers, total=round_half_up(value))


def calculate_points(category: TaskCategory | str, deadline: datetime | None, completed_at: datetime) -> int:
    return compute_points(category, deadline, completed_at).total


def points_for_task(task: TaskSnapshot, completed_at: datetime) -> int:
    """Points a completion of ``task`` is worth, or 0 if it already paid out."""
    if task.points_awarded:
        return 0
    return calculate_points(task.category, task.deadline, completed_at)


def overdue_penalty(category: TaskCategory | str) -> int:
    return OVERDUE_PENALTIES[TaskCategory(category)]


def deduct_points(balance: int, amount: int) -> int:
    return max(0, balance - amount)


def xp_for_next_level(level: int) -> int:
    return level * LEVEL_STEP


def apply_points(level: int, xp: int, points: int) -> LevelResult:
    """Add ``points`` to the xp total and check for a level-up.

    Only one level can be gained per call, even when the award would
    cover several thresholds.
    """
    xp += points
    if xp >= xp_for_next_level(level):
        return LevelResult(level=level + 1, xp=xp, leveled_up=True)
    return LevelResult(level=level, xp=xp, leveled_up=False)


def level_title(level: int) -> str:
    if level >= 10:
        return f"Task Overlord Level {level - 9}"
    return LEVEL_TITLES.get(level, f"Level {level} Master")


def level_progress(level: int, xp: int) -> LevelProgress:
    floor_xp = (level - 1) * LEVEL_STEP
    ceiling_xp = xp_for_next_level(level)
    return LevelProgress(
        xp_into_level=xp - floor_xp,
        xp_needed=ceiling_xp - xp,
        level_span=ceiling_xp - floor_xp,
    )


def update_streak(streak: StreakState, completed_at: datetime) -> StreakState:
    today = completed_at.date()
    previous = streak.last_completion_date
    current = streak.current
    if previous is None:
        current = 1
    else:
        gap = days_between(previous, today)
        if gap <= 0:
            return replace(streak, longest=max(streak.longest, current))
        current = current + 1 if gap == 1 else 1
    return StreakState(current=current, longest=max(streak.longest, current), last_completion_date=today)
