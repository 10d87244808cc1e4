from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import EarnedBadge, User
from ..schemas import Achievements, EarnedBadgeRecord, StreakState, UserSnapshot


def get_or_create_user(session: Session, telegram_id: int, name: str) -> User:
    stmt = select(User).where(User.telegram_id == telegram_id)
    user = session.scalars(stmt).first()
    if user:
        return user
    user = User(telegram_id=telegram_id, name=name[:50])
    session.add(user)
    session.flush()
    return user


def list_users(session: Session) -> Sequence[User]:
    return session.scalars(select(User).order_by(User.id)).all()


def to_user_snapshot(user: User) -> UserSnapshot:
    return UserSnapshot(
        id=user.id,
        name=user.name,
        points=user.points or 0,
        level=user.level or 1,
        xp=user.xp or 0,
        badges=tuple(EarnedBadgeRecord(badge_id=b.badge_id, unlocked_at=b.unlocked_at) for b in user.badges),
        achievements=Achievements(
            early_bird_count=user.early_bird_count or 0,
            total_tasks_completed=user.total_tasks_completed or 0,
            weekly_champion_weeks=user.weekly_champion_weeks or 0,
            consistency_streak=user.consistency_streak or 0,
            perfect_days=user.perfect_days or 0,
        ),
        streak=StreakState(
            current=user.current_streak or 0,
            longest=user.longest_streak or 0,
            last_completion_date=user.last_completion_date,
        ),
    )


def apply_user_snapshot(session: Session, user: User, snapshot: UserSnapshot) -> User:
    """Copy engine output back onto the ORM row; new badges become rows."""
    user.points = snapshot.points
    user.level = snapshot.level
    user.xp = snapshot.xp
    achievements = snapshot.achievements
    user.early_bird_count = achievements.early_bird_count
    user.total_tasks_completed = achievements.total_tasks_completed
    user.weekly_champion_weeks = achievements.weekly_champion_weeks
    user.consistency_streak = achievements.consistency_streak
    user.perfect_days = achievements.perfect_days
    user.current_streak = snapshot.streak.current
    user.longest_streak = snapshot.streak.longest
    user.last_completion_date = snapshot.streak.last_completion_date
    earned = {badge.badge_id for badge in user.badges}
    for record in snapshot.badges:
        if record.badge_id not in earned:
            user.badges.append(EarnedBadge(badge_id=record.badge_id, unlocked_at=record.unlocked_at))
    session.add(user)
    return user
