from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence, Union

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..engine import award_completion, revert_completion
from ..errors import AlreadyCompleted, NotFound
from ..models import Task, TaskCategory, User
from ..periods import compute_deadline, end_of_day, start_of_day, week_end, week_start
from ..schemas import CompletionResult, RevertResult, TaskCreate, TaskSnapshot
from .user_service import apply_user_snapshot, to_user_snapshot

log = logging.getLogger(__name__)


def to_task_snapshot(task: Task) -> TaskSnapshot:
    return TaskSnapshot(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        category=TaskCategory(task.category),
        created_at=task.created_at,
        deadline=task.deadline,
        completed=bool(task.completed),
        completed_at=task.completed_at,
        points_awarded=task.points_awarded or 0,
        is_overdue=bool(task.is_overdue),
    )


def apply_task_snapshot(session: Session, task: Task, snapshot: TaskSnapshot, updated_at: datetime) -> Task:
    task.completed = snapshot.completed
    task.completed_at = snapshot.completed_at
    task.points_awarded = snapshot.points_awarded
    task.is_overdue = snapshot.is_overdue
    task.updated_at = updated_at
    session.add(task)
    return task


def list_tasks(
    session: Session,
    user_id: int,
    category: Optional[TaskCategory] = None,
    limit: int = 20,
    page: int = 1,
) -> Sequence[Task]:
    stmt = select(Task).where(Task.user_id == user_id)
    if category is not None:
        stmt = stmt.where(Task.category == category)
    stmt = stmt.order_by(Task.created_at.desc(), Task.id.desc()).offset((page - 1) * limit).limit(limit)
    return session.scalars(stmt).all()


def get_task(session: Session, user_id: int, task_id: int) -> Task | None:
    stmt = select(Task).where(Task.user_id == user_id, Task.id == task_id)
    return session.scalars(stmt).first()


def require_task(session: Session, user_id: int, task_id: int) -> Task:
    task = get_task(session, user_id, task_id)
    if task is None:
        raise NotFound(f"Task {task_id} not found")
    return task


def create_task(session: Session, user: User, data: TaskCreate, created_at: datetime) -> Task:
    deadline = data.deadline or compute_deadline(data.category, created_at)
    task = Task(
        user_id=user.id,
        title=data.title,
        category=data.category,
        deadline=deadline,
        created_at=created_at,
        updated_at=created_at,
    )
    session.add(task)
    session.flush()
    return task


def delete_task(session: Session, user: User, task_id: int) -> None:
    # awarded points stay with the user
    session.delete(require_task(session, user.id, task_id))


def weekly_tasks_for(session: Session, user_id: int, reference: datetime) -> Sequence[Task]:
    stmt = select(Task).where(
        Task.user_id == user_id,
        Task.category == TaskCategory.WEEKLY,
        Task.created_at.between(week_start(reference), week_end(reference)),
    )
    return session.scalars(stmt).all()


def complete_task(session: Session, user: User, task_id: int, reference: datetime) -> CompletionResult:
    """Award a completion and stage task, user and badge rows in ``session``.

    The caller's transaction commits everything together.
    """
    session.refresh(user, with_for_update=True)
    task = require_task(session, user.id, task_id)
    week_tasks = [to_task_snapshot(t) for t in weekly_tasks_for(session, user.id, reference)]
    outcome = award_completion(to_task_snapshot(task), to_user_snapshot(user), reference, week_tasks)

    claimed = session.execute(
        update(Task)
        .where(Task.id == task.id, Task.completed.is_(False), Task.points_awarded == 0)
        .values(
            completed=True,
            completed_at=reference,
            points_awarded=outcome.task.points_awarded,
            is_overdue=False,
            updated_at=reference,
        )
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise AlreadyCompleted(task.id)
    apply_task_snapshot(session, task, outcome.task, reference)
    apply_user_snapshot(session, user, outcome.user)
    session.flush()
    log.info("User %s completed task %s for %s points", user.id, task.id, outcome.result.points_earned)
    return outcome.result


def revert_task(session: Session, user: User, task_id: int, reference: datetime) -> RevertResult:
    session.refresh(user, with_for_update=True)
    task = require_task(session, user.id, task_id)
    result = revert_completion(to_task_snapshot(task), to_user_snapshot(user))
    apply_task_snapshot(session, task, result.task, reference)
    apply_user_snapshot(session, user, result.user)
    session.flush()
    return result


def toggle_task(session: Session, user: User, task_id: int, reference: datetime) -> Union[CompletionResult, RevertResult]:
    task = require_task(session, user.id, task_id)
    if task.completed:
        return revert_task(session, user, task_id, reference)
    return complete_task(session, user, task_id, reference)


def overdue_tasks(session: Session, user_id: int) -> Sequence[Task]:
    stmt = select(Task).where(
        Task.user_id == user_id,
        Task.completed.is_(False),
        Task.is_overdue.is_(True),
    ).order_by(Task.deadline)
    return session.scalars(stmt).all()


def tasks_due_today(session: Session, user_id: int, reference: datetime) -> Sequence[Task]:
    stmt = select(Task).where(
        Task.user_id == user_id,
        Task.completed.is_(False),
        Task.deadline.between(start_of_day(reference), end_of_day(reference)),
    ).order_by(Task.deadline)
    return session.scalars(stmt).all()
