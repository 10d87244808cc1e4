from __future__ import annotations

from typing import Iterable

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from .models import TaskCategory


def chunked(iterable: Iterable, size: int) -> list[list]:
    row: list = []
    result: list[list] = []
    for item in iterable:
        row.append(item)
        if len(row) == size:
            result.append(row)
            row = []
    if row:
        result.append(row)
    return result


def category_keyboard() -> InlineKeyboardMarkup:
    buttons = [
        InlineKeyboardButton(category.value.capitalize(), callback_data=f"add:category:{category.value}")
        for category in TaskCategory
    ]
    return InlineKeyboardMarkup([buttons])


def task_action_keyboard(task_id: int, completed: bool) -> InlineKeyboardMarkup:
    if completed:
        buttons = [InlineKeyboardButton("Undo", callback_data=f"task:undo:{task_id}")]
    else:
        buttons = [InlineKeyboardButton("Done", callback_data=f"task:done:{task_id}")]
    buttons.append(InlineKeyboardButton("Delete", callback_data=f"task:delete:{task_id}"))
    return InlineKeyboardMarkup(chunked(buttons, 2))
