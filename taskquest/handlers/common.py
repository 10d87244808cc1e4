from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from typing import Callable, Dict, List, Optional, Sequence

from telegram import Update
from telegram.ext import ContextTypes

from ..periods import local_now
from ..settings import get_settings


@dataclass
class CallbackRoute:
    prefix: str
    handler: Callable[[Update, ContextTypes.DEFAULT_TYPE, List[str]], object]


class CallbackRouter:
    def __init__(self) -> None:
        self.routes: Dict[str, CallbackRoute] = {}

    def register(
        self, prefix: str, handler: Callable[[Update, ContextTypes.DEFAULT_TYPE, List[str]], object]
    ) -> None:
        self.routes[prefix] = CallbackRoute(prefix=prefix, handler=handler)

    async def dispatch(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.callback_query or not update.callback_query.data:
            return
        parts = update.callback_query.data.split(":")
        prefix = ":".join(parts[:2]) if len(parts) > 2 else parts[0]
        route = self.routes.get(prefix)
        if not route:
            return
        await route.handler(update, context, parts)


callback_router = CallbackRouter()


def reference_now() -> datetime:
    return local_now(get_settings().timezone)


def display_name(tg_user) -> str:
    return tg_user.full_name or tg_user.username or "Stranger"


def parse_task_id(args: Optional[Sequence[str]]) -> Optional[int]:
    if not args or not args[0].lstrip("#").isdigit():
        return None
    return int(args[0].lstrip("#"))
