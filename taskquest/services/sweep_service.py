from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..db import session_scope
from ..engine import is_sweepable, penalize_overdue
from ..models import Task, User
from .task_service import apply_task_snapshot, to_task_snapshot
from .user_service import apply_user_snapshot, to_user_snapshot

log = logging.getLogger(__name__)


def overdue_candidates(session: Session, now: datetime) -> Sequence[int]:
    stmt = select(Task.id).where(
        Task.completed.is_(False),
        Task.is_overdue.is_(False),
        Task.deadline < now,
    ).order_by(Task.id)
    return session.scalars(stmt).all()


def penalize_task(session: Session, task_id: int, now: datetime) -> bool:
    """Mark one task overdue and charge its owner; False if already handled."""
    task = session.scalars(select(Task).where(Task.id == task_id).with_for_update()).first()
    if task is None:
        return False
    snapshot = to_task_snapshot(task)
    if not is_sweepable(snapshot, now):
        return False
    user = session.scalars(select(User).where(User.id == task.user_id).with_for_update()).first()
    task_snapshot, user_snapshot = penalize_overdue(snapshot, to_user_snapshot(user))
    apply_task_snapshot(session, task, task_snapshot, now)
    apply_user_snapshot(session, user, user_snapshot)
    return True


def sweep_overdue(now: datetime, factory: sessionmaker | None = None) -> int:
    """Penalize every task whose deadline passed while still open.

    Each task and its owner are updated in their own transaction, so a
    failure leaves already processed tasks intact and a rerun skips them.
    """
    with session_scope(factory) as session:
        candidates = overdue_candidates(session, now)
    processed = 0
    for task_id in candidates:
        try:
            with session_scope(factory) as session:
                if penalize_task(session, task_id, now):
                    processed += 1
        except Exception:
            log.exception("Failed to process overdue task %s", task_id)
    log.info("Overdue sweep processed %s of %s candidate tasks", processed, len(candidates))
    return processed
