from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from humanize import naturaldelta

from ..models import Task, TaskCategory

CATEGORY_EMOJI = {
    TaskCategory.DAILY: "📅",
    TaskCategory.WEEKLY: "🗓️",
    TaskCategory.MONTHLY: "📆",
}


def category_badge(category: TaskCategory) -> str:
    return f"{CATEGORY_EMOJI[category]} {category.value.capitalize()}"


def status_mark(task: Task) -> str:
    if task.completed:
        return "✅"
    if task.is_overdue:
        return "⏰"
    return "⬜"


def progress_bar(ratio: float, width: int = 10) -> str:
    ratio = max(0.0, min(1.0, ratio))
    filled = int(round(ratio * width))
    return "▓" * filled + "░" * (width - filled)


def format_deadline(deadline: datetime, reference: datetime) -> str:
    delta = naturaldelta(deadline - reference)
    if deadline < reference:
        return f"Due: {deadline:%Y-%m-%d %H:%M} ({delta} ago)"
    return f"Due: {deadline:%Y-%m-%d %H:%M} (in {delta})"


def format_task_card(task: Task, reference: Optional[datetime] = None) -> str:
    lines = [f"{status_mark(task)} #{task.id} {task.title}"]
    details = [category_badge(TaskCategory(task.category))]
    if task.completed and task.points_awarded:
        details.append(f"+{task.points_awarded} pts")
    lines.append(" | ".join(details))
    if not task.completed and reference is not None:
        lines.append(format_deadline(task.deadline, reference))
    return "\n".join(lines)


def bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)
