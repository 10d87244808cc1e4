from __future__ import annotations

from typing import List

from telegram import Update
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes, ConversationHandler, MessageHandler, filters

from ..db import session_scope
from ..errors import GamificationError
from ..keyboards import category_keyboard, task_action_keyboard
from ..models import TaskCategory
from ..schemas import TaskCreate
from ..services import task_service
from ..services.user_service import get_or_create_user
from ..views.formatting import format_task_card
from ..views.messages import completion_message, revert_message, task_list
from .common import callback_router, display_name, parse_task_id, reference_now

ASK_TITLE, ASK_CATEGORY = range(2)


async def add_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    await update.message.reply_text("Title?")
    return ASK_TITLE


async def receive_title(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["title"] = update.message.text.strip()
    await update.message.reply_text("Category?", reply_markup=category_keyboard())
    return ASK_CATEGORY


def _create(update: Update, context: ContextTypes.DEFAULT_TYPE, category: str) -> str:
    tg_user = update.effective_user
    try:
        data = TaskCreate(title=context.user_data.get("title", ""), category=category)
        with session_scope() as session:
            user = get_or_create_user(session, tg_user.id, display_name(tg_user))
            task = task_service.create_task(session, user, data, reference_now())
            text = f"Task created.\n{format_task_card(task, reference_now())}"
    except GamificationError as exc:
        return str(exc)
    finally:
        context.user_data.clear()
    return text


async def receive_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    await update.message.reply_text(_create(update, context, update.message.text.strip().lower()))
    return ConversationHandler.END


async def receive_category_button(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    category = query.data.split(":")[-1]
    await query.edit_message_text(_create(update, context, category))
    return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.clear()
    await update.message.reply_text("Cancelled.")
    return ConversationHandler.END


async def list_tasks(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    category = None
    if context.args:
        try:
            category = TaskCategory(context.args[0].lower())
        except ValueError:
            await update.message.reply_text("Usage: /tasks [daily|weekly|monthly]")
            return
    tg_user = update.effective_user
    with session_scope() as session:
        user = get_or_create_user(session, tg_user.id, display_name(tg_user))
        tasks = task_service.list_tasks(session, user.id, category=category)
        text = task_list(tasks, reference_now())
    await update.message.reply_text(text)


def complete(telegram_id: int, name: str, task_id: int) -> str:
    try:
        with session_scope() as session:
            user = get_or_create_user(session, telegram_id, name)
            result = task_service.complete_task(session, user, task_id, reference_now())
    except GamificationError as exc:
        return str(exc)
    return completion_message(result)


def undo(telegram_id: int, name: str, task_id: int) -> str:
    try:
        with session_scope() as session:
            user = get_or_create_user(session, telegram_id, name)
            result = task_service.revert_task(session, user, task_id, reference_now())
    except GamificationError as exc:
        return str(exc)
    return revert_message(result)


def remove(telegram_id: int, name: str, task_id: int) -> str:
    try:
        with session_scope() as session:
            user = get_or_create_user(session, telegram_id, name)
            task_service.delete_task(session, user, task_id)
    except GamificationError as exc:
        return str(exc)
    return "Task deleted."


async def _run_with_id(update: Update, context: ContextTypes.DEFAULT_TYPE, action, usage: str) -> None:
    task_id = parse_task_id(context.args)
    if task_id is None:
        await update.message.reply_text(usage)
        return
    tg_user = update.effective_user
    await update.message.reply_text(action(tg_user.id, display_name(tg_user), task_id))


async def done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _run_with_id(update, context, complete, "Usage: /done <task_id>")


async def undo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _run_with_id(update, context, undo, "Usage: /undo <task_id>")


async def delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _run_with_id(update, context, remove, "Usage: /delete <task_id>")


async def card(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    task_id = parse_task_id(context.args)
    if task_id is None:
        await update.message.reply_text("Usage: /task <task_id>")
        return
    tg_user = update.effective_user
    with session_scope() as session:
        user = get_or_create_user(session, tg_user.id, display_name(tg_user))
        task = task_service.get_task(session, user.id, task_id)
        if task is None:
            text, markup = "Task not found.", None
        else:
            text = format_task_card(task, reference_now())
            markup = task_action_keyboard(task.id, task.completed)
    await update.message.reply_text(text, reply_markup=markup)


def _button(action):
    async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE, parts: List[str]) -> None:
        query = update.callback_query
        await query.answer()
        tg_user = update.effective_user
        await query.edit_message_text(action(tg_user.id, display_name(tg_user), int(parts[2])))

    return handler


callback_router.register("task:done", _button(complete))
callback_router.register("task:undo", _button(undo))
callback_router.register("task:delete", _button(remove))


conversation_handler = ConversationHandler(
    entry_points=[CommandHandler("add", add_entry)],
    states={
        ASK_TITLE: [MessageHandler(filters.TEXT & ~filters.COMMAND, receive_title)],
        ASK_CATEGORY: [
            CallbackQueryHandler(receive_category_button, pattern=r"^add:category:"),
            MessageHandler(filters.TEXT & ~filters.COMMAND, receive_category),
        ],
    },
    fallbacks=[CommandHandler("cancel", cancel)],
)
