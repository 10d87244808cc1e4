import os

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "TEST_TOKEN")
os.environ.setdefault("OWNER_TELEGRAM_ID", "1")
os.environ.setdefault("TZ", "Europe/Zurich")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from taskquest.db import Base, engine
from taskquest.models import TaskCategory
from taskquest.periods import compute_deadline
from taskquest.schemas import TaskSnapshot, UserSnapshot


@pytest.fixture(autouse=True, scope="session")
def create_schema():
    Base.metadata.create_all(bind=engine)


@pytest.fixture
def session_factory():
    test_engine = create_engine("sqlite://", future=True)
    Base.metadata.create_all(test_engine)
    return sessionmaker(bind=test_engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def file_session_factory(tmp_path):
    test_engine = create_engine(f"sqlite:///{tmp_path / 'taskquest.sqlite'}", future=True)
    Base.metadata.create_all(test_engine)
    yield sessionmaker(bind=test_engine, autoflush=False, expire_on_commit=False, future=True)
    test_engine.dispose()


@pytest.fixture
def make_task():
    def factory(task_id=1, category=TaskCategory.DAILY, created_at=datetime(2024, 1, 10, 7, 0), user_id=1, **kwargs):
        deadline = kwargs.pop("deadline", None) or compute_deadline(category, created_at)
        return TaskSnapshot(
            id=task_id,
            user_id=user_id,
            title=f"Task {task_id}",
            category=category,
            created_at=created_at,
            deadline=deadline,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_user():
    def factory(user_id=1, name="Tester", **kwargs):
        return UserSnapshot(id=user_id, name=name, **kwargs)

    return factory
