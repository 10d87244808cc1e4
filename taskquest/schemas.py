from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple

from .errors import ValidationError
from .models import TaskCategory

TITLE_MAX_LENGTH = 200


@dataclass
class TaskCreate:
    title: str
    category: TaskCategory = TaskCategory.DAILY
    deadline: Optional[datetime] = None

    def __post_init__(self) -> None:
        title = (self.title or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(f"Task title cannot be more than {TITLE_MAX_LENGTH} characters")
        try:
            self.category = TaskCategory(self.category)
        except ValueError as exc:
            raise ValidationError("Category must be daily, weekly, or monthly") from exc
        self.title = title


@dataclass(frozen=True)
class TaskSnapshot:
    id: int
    user_id: int
    title: str
    category: TaskCategory
    created_at: datetime
    deadline: datetime
    completed: bool = False
    completed_at: Optional[datetime] = None
    points_awarded: int = 0
    is_overdue: bool = False


@dataclass(frozen=True)
class Achievements:
    early_bird_count: int = 0
    total_tasks_completed: int = 0
    weekly_champion_weeks: int = 0
    consistency_streak: int = 0
    perfect_days: int = 0


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_completion_date: Optional[date] = None


@dataclass(frozen=True)
class EarnedBadgeRecord:
    badge_id: str
    unlocked_at: datetime


@dataclass(frozen=True)
class UserSnapshot:
    id: int
    name: str
    points: int = 0
    level: int = 1
    xp: int = 0
    badges: Tuple[EarnedBadgeRecord, ...] = ()
    achievements: Achievements = field(default_factory=Achievements)
    streak: StreakState = field(default_factory=StreakState)

    def has_badge(self, badge_id: str) -> bool:
        return any(record.badge_id == badge_id for record in self.badges)


@dataclass(frozen=True)
class CompletionResult:
    points_earned: int
    leveled_up: bool
    new_level: int
    new_badges: Tuple[str, ...]
    current_streak: int
    total_points: int


@dataclass(frozen=True)
class CompletionOutcome:
    task: TaskSnapshot
    user: UserSnapshot
    result: CompletionResult


@dataclass(frozen=True)
class RevertResult:
    task: TaskSnapshot
    user: UserSnapshot
    points_removed: int


@dataclass(frozen=True)
class SweepResult:
    processed_count: int
    tasks: Tuple[TaskSnapshot, ...]
    users: Tuple[UserSnapshot, ...]


@dataclass(frozen=True)
class PeriodProgress:
    completed: int
    total: int
    percent: int


@dataclass(frozen=True)
class Progress:
    daily: PeriodProgress
    weekly: PeriodProgress
    monthly: PeriodProgress
    overall: PeriodProgress

    @property
    def daily_pct(self) -> int:
        return self.daily.percent

    @property
    def weekly_pct(self) -> int:
        return self.weekly.percent

    @property
    def monthly_pct(self) -> int:
        return self.monthly.percent

    @property
    def overall_pct(self) -> int:
        return self.overall.percent


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    points: int
    level: int
    level_title: str
    badge_count: int


@dataclass(frozen=True)
class UserStats:
    points: int
    level: int
    level_title: str
    xp: int
    xp_progress: int
    xp_needed: int
    xp_for_next_level: int
    badges: Tuple[EarnedBadgeRecord, ...]
    achievements: Achievements
    streak: StreakState


@dataclass(frozen=True)
class CategoryFlags:
    daily: bool = False
    weekly: bool = False
    monthly: bool = False


@dataclass(frozen=True)
class CalendarDay:
    """One day of the month view.

    ``completions`` is only true for a category that has tasks assigned and
    all of them completed.
    """

    day: date
    assignments: CategoryFlags
    completions: CategoryFlags
    is_streak_day: bool
