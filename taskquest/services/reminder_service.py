from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from ..models import User
from ..scoring import level_progress
from ..views.messages import today_digest
from .analytics_service import progress_for_user
from .task_service import overdue_tasks, tasks_due_today


def build_daily_digest(session: Session, user: User, reference: datetime) -> str:
    overdue = [task.title for task in overdue_tasks(session, user.id)]
    due_today = [task.title for task in tasks_due_today(session, user.id, reference)]
    progress = progress_for_user(session, user.id, reference)
    level = level_progress(user.level, user.xp)
    xp_progress = (level.xp_into_level, level.level_span)
    return today_digest(overdue[:3], due_today[:5], progress, user.level, xp_progress, user.current_streak)
