from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from telegram.error import TelegramError

from ..db import session_scope
from ..periods import local_now
from ..services.reminder_service import build_daily_digest
from ..services.sweep_service import sweep_overdue
from ..services.user_service import list_users

log = logging.getLogger(__name__)


class Scheduler:
    def __init__(self, timezone: str, session_factory=None) -> None:
        self.timezone = timezone
        self.session_factory = session_factory
        self.scheduler = AsyncIOScheduler(timezone=timezone)

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()

    def schedule_overdue_sweep(self, minutes: int = 15) -> None:
        self.scheduler.add_job(
            self._run_overdue_sweep,
            IntervalTrigger(minutes=minutes),
            id="overdue_sweep",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def schedule_daily_digest(self, application, hour: int = 8) -> None:
        self.scheduler.add_job(
            self._send_daily_digest,
            CronTrigger(hour=hour, minute=0),
            args=[application],
            id="daily_digest",
            replace_existing=True,
        )

    def _run_overdue_sweep(self) -> int:
        return sweep_overdue(local_now(self.timezone), factory=self.session_factory)

    async def _send_daily_digest(self, application) -> int:
        reference = local_now(self.timezone)
        with session_scope(self.session_factory) as session:
            digests = [(user.telegram_id, build_daily_digest(session, user, reference)) for user in list_users(session)]
        sent = 0
        for chat_id, text in digests:
            try:
                await application.bot.send_message(chat_id=chat_id, text=text)
            except TelegramError:
                log.exception("Failed to send daily digest to %s", chat_id)
                continue
            sent += 1
        log.info("Daily digest sent to %s of %s users", sent, len(digests))
        return sent


def create_scheduler(timezone: str, session_factory=None) -> Scheduler:
    return Scheduler(timezone=timezone, session_factory=session_factory)
