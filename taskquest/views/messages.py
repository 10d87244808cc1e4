from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..badges import BADGES
from ..models import Task
from ..schemas import CalendarDay, CategoryFlags, CompletionResult, LeaderboardEntry, Progress, RevertResult, UserStats
from ..scoring import level_title
from .formatting import bullet_list, format_task_card, progress_bar


def welcome_message(name: str) -> str:
    return (
        f"Welcome, {name}!\n"
        "Use /add to create a daily, weekly or monthly task, /tasks to list them, "
        "/done <id> to complete one and /stats to see your progress."
    )


def level_up_message(level: int) -> str:
    return f"Level up! You reached Level {level}: {level_title(level)}."


def badge_line(badge_id: str) -> str:
    badge = BADGES[badge_id]
    return f"{badge.icon} {badge.name}: {badge.description}"


def completion_message(result: CompletionResult) -> str:
    lines = [f"Done. Earned {result.points_earned} points (total {result.total_points})."]
    if result.leveled_up:
        lines.append(level_up_message(result.new_level))
    for badge_id in result.new_badges:
        lines.append(f"New badge! {badge_line(badge_id)}")
    lines.append(f"Streak: 🔁 {result.current_streak} day(s)")
    return "\n".join(lines)


def revert_message(result: RevertResult) -> str:
    if not result.points_removed:
        return "Task marked as incomplete."
    return f"Task marked as incomplete. {result.points_removed} points removed."


def task_list(tasks: Iterable[Task], reference: Optional[datetime] = None) -> str:
    rendered = [format_task_card(task, reference) for task in tasks]
    return "\n\n".join(rendered) if rendered else "No tasks found."


def progress_lines(progress: Progress) -> List[str]:
    periods = (
        ("Daily", progress.daily),
        ("Weekly", progress.weekly),
        ("Monthly", progress.monthly),
        ("Overall", progress.overall),
    )
    return [
        f"{label:<8} {progress_bar(period.percent / 100)} {period.percent}% ({period.completed}/{period.total})"
        for label, period in periods
    ]


def stats_overview(stats: UserStats, progress: Progress) -> str:
    lines = [
        f"Level {stats.level}: {stats.level_title}",
        f"{progress_bar(stats.xp_progress / stats.xp_for_next_level)} {stats.xp_progress}/{stats.xp_for_next_level} XP",
        f"Points: {stats.points}",
        f"Streak: {stats.streak.current} (longest {stats.streak.longest})",
        f"Tasks completed: {stats.achievements.total_tasks_completed}",
        "Progress:",
    ]
    lines.extend(progress_lines(progress))
    if stats.badges:
        lines.append("Badges:")
        lines.append(bullet_list(badge_line(record.badge_id) for record in stats.badges))
    return "\n".join(lines)


def leaderboard_message(entries: Sequence[LeaderboardEntry]) -> str:
    if not entries:
        return "Leaderboard is empty."
    lines = ["Leaderboard:"]
    for entry in entries:
        lines.append(
            f"{entry.rank}. {entry.name}: {entry.points} pts, Lv {entry.level} ({entry.level_title}), "
            f"{entry.badge_count} badge(s)"
        )
    return "\n".join(lines)


def today_digest(
    overdue: List[str],
    due_today: List[str],
    progress: Progress,
    level: int,
    xp_progress: Tuple[int, int],
    streak: int,
) -> str:
    current_xp, level_span = xp_progress
    parts = ["Today's Focus:"]
    if overdue:
        parts.append("Overdue:")
        parts.extend(f"  {item}" for item in overdue)
    if due_today:
        parts.append("Due Today:")
        parts.extend(f"  {item}" for item in due_today)
    parts.extend(progress_lines(progress))
    parts.append(f"Level {level}, {current_xp}/{level_span} XP, streak {streak}")
    return "\n".join(parts)


def _calendar_cell(assigned: bool, done: bool) -> str:
    if not assigned:
        return "·"
    return "✅" if done else "⬜"


def _calendar_cells(assignments: CategoryFlags, completions: CategoryFlags) -> str:
    return " ".join(
        f"{label}{_calendar_cell(getattr(assignments, name), getattr(completions, name))}"
        for label, name in (("D", "daily"), ("W", "weekly"), ("M", "monthly"))
    )


def calendar_message(month: datetime, days: Sequence[CalendarDay]) -> str:
    lines = [f"Calendar {month:%B %Y}:"]
    for day in days:
        streak = " 🔥" if day.is_streak_day else ""
        lines.append(f"{day.day:%a %d} {_calendar_cells(day.assignments, day.completions)}{streak}")
    streak_days = sum(1 for day in days if day.is_streak_day)
    lines.append(f"Streak days: {streak_days}")
    return "\n".join(lines)
