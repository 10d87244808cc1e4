from __future__ import annotations

from datetime import datetime

from telegram import Update
from telegram.ext import ContextTypes

from ..db import session_scope
from ..services.analytics_service import calendar_for_user, leaderboard, progress_for_user, stats_for_user
from ..services.user_service import get_or_create_user
from ..settings import get_settings
from ..views.messages import calendar_message, leaderboard_message, stats_overview
from .common import display_name, reference_now


async def stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    tg_user = update.effective_user
    with session_scope() as session:
        user = get_or_create_user(session, tg_user.id, display_name(tg_user))
        overview = stats_for_user(session, user)
        progress = progress_for_user(session, user.id, reference_now())
    await update.message.reply_text(stats_overview(overview, progress))


async def leaders(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args
    limit = int(args[0]) if args and args[0].isdigit() else get_settings().leaderboard_limit
    with session_scope() as session:
        entries = leaderboard(session, limit=max(1, limit))
    await update.message.reply_text(leaderboard_message(entries))


async def calendar(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args
    month = reference_now()
    if args:
        try:
            month = datetime.strptime(args[0], "%Y-%m")
        except ValueError:
            await update.message.reply_text("Usage: /calendar [YYYY-MM]")
            return
    tg_user = update.effective_user
    with session_scope() as session:
        user = get_or_create_user(session, tg_user.id, display_name(tg_user))
        days = calendar_for_user(session, user.id, month)
    await update.message.reply_text(calendar_message(month, days))
