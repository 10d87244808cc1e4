import asyncio
import inspect
from datetime import datetime

from sqlalchemy import select
from telegram.error import TelegramError

from taskquest.jobs.scheduler import create_scheduler
from taskquest.models import Task, User
from taskquest.schemas import TaskCreate
from taskquest.services import task_service
from taskquest.services.user_service import get_or_create_user


class StubBot:
    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)

    async def send_message(self, chat_id, text, **kwargs):
        if chat_id in self.failing:
            raise TelegramError("Forbidden: bot was blocked by the user")
        self.sent.append((chat_id, text))


class StubApplication:
    def __init__(self, bot):
        self.bot = bot


def seed(session_factory):
    with session_factory() as session:
        user = get_or_create_user(session, 42, "Tester")
        user.points = 20
        task_service.create_task(session, user, TaskCreate(title="Water plants"), datetime(2024, 1, 9, 7, 0))
        get_or_create_user(session, 99, "Gone")
        session.commit()


def test_jobs_are_registered():
    async def scenario():
        scheduler = create_scheduler("Europe/Zurich")
        scheduler.schedule_overdue_sweep(5)
        scheduler.schedule_daily_digest(StubApplication(StubBot()))
        return scheduler.scheduler.get_job("overdue_sweep"), scheduler.scheduler.get_job("daily_digest")

    sweep_job, digest_job = asyncio.run(scenario())
    assert sweep_job is not None
    assert inspect.iscoroutinefunction(digest_job.func)


def test_overdue_sweep_job(session_factory):
    seed(session_factory)

    async def scenario():
        scheduler = create_scheduler("Europe/Zurich", session_factory=session_factory)
        return scheduler._run_overdue_sweep(), scheduler._run_overdue_sweep()

    assert asyncio.run(scenario()) == (1, 0)
    with session_factory() as session:
        assert session.scalars(select(Task)).one().is_overdue
        assert session.scalars(select(User).where(User.telegram_id == 42)).one().points == 15


def test_daily_digest_job_sends_to_each_user(session_factory):
    seed(session_factory)
    bot = StubBot(failing=[99])

    async def scenario():
        scheduler = create_scheduler("Europe/Zurich", session_factory=session_factory)
        scheduler._run_overdue_sweep()
        return await scheduler._send_daily_digest(StubApplication(bot))

    assert asyncio.run(scenario()) == 1
    assert [chat_id for chat_id, _ in bot.sent] == [42]
    text = bot.sent[0][1]
    assert text.startswith("Today's Focus:")
    assert "  Water plants" in text
