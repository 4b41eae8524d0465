"""
security/action_guard.py
-------------------------
Single in-flight action guard.
A second guarded action started while one is still pending is rejected
immediately, never queued. The guard is released when the action ends,
whether it succeeded or failed.
"""

from collections import defaultdict
from contextlib import contextmanager
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from utils.exceptions import ActionInProgressError
from utils.logger import get_logger

logger = get_logger(__name__)


class ActionGuard:
    """
    Usage:
        guard = ActionGuard()
        with guard.hold("autopay"):
            ...  # a concurrent hold() raises ActionInProgressError
    """

    def __init__(self):
        self.pending: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.pending is not None

    @contextmanager
    def hold(self, action_id: str):
        if self.pending is not None:
            raise ActionInProgressError(self.pending)
        self.pending = action_id
        try:
            yield self
        finally:
            self.pending = None


# One guard per Telegram user: {user_id: ActionGuard}
_user_guards: dict[int, ActionGuard] = defaultdict(ActionGuard)


def guard_for(user_id: int) -> ActionGuard:
    return _user_guards[user_id]


def single_flight(action_id: str):
    """
    Decorator that lets a user run only one guarded handler at a time.

    Usage:
        @single_flight("autopay")
        async def autopay_command(update, context):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
            user = update.effective_user
            if not user:
                return

            guard = guard_for(user.id)
            if guard.busy:
                logger.warning(f"⏳ User {user.id} started '{action_id}' while '{guard.pending}' is pending")
                await update.message.reply_text(
                    f"⏳ Still working on your last request ({guard.pending}). Please wait."
                )
                return

            with guard.hold(action_id):
                return await func(update, context, *args, **kwargs)

        return wrapper
    return decorator
