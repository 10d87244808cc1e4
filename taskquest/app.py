from __future__ import annotations

import asyncio
import logging

from telegram.ext import Application, ApplicationBuilder, CallbackQueryHandler, CommandHandler

from .db import Base, engine
from .handlers import admin as admin_handler
from .handlers import start, stats, tasks
from .handlers.common import callback_router
from .jobs.scheduler import create_scheduler
from .settings import get_settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def build_application(settings) -> Application:
    application = ApplicationBuilder().token(settings.telegram_token).build()

    application.add_handler(CommandHandler("start", start.start))
    application.add_handler(tasks.conversation_handler)
    application.add_handler(CommandHandler("tasks", tasks.list_tasks))
    application.add_handler(CommandHandler("task", tasks.card))
    application.add_handler(CommandHandler("done", tasks.done))
    application.add_handler(CommandHandler("undo", tasks.undo_command))
    application.add_handler(CommandHandler("delete", tasks.delete))
    application.add_handler(CommandHandler("stats", stats.stats))
    application.add_handler(CommandHandler("leaderboard", stats.leaders))
    application.add_handler(CommandHandler("calendar", stats.calendar))
    application.add_handler(CommandHandler("admin", admin_handler.admin))
    application.add_handler(CallbackQueryHandler(callback_router.dispatch, pattern=r"^task:"))

    scheduler = create_scheduler(settings.timezone)
    scheduler.start()
    scheduler.schedule_overdue_sweep(settings.overdue_sweep_minutes)
    scheduler.schedule_daily_digest(application)
    application.bot_data["scheduler"] = scheduler

    return application


async def main() -> None:
    settings = get_settings()
    init_db()
    app = build_application(settings)
    log.info("Starting taskquest bot")
    await app.initialize()
    await app.start()
    await app.updater.start_polling()
    await asyncio.Event().wait()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
