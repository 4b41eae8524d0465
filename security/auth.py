"""
security/auth.py
-----------------
Whitelist check for the Telegram bot.
Every ledger belongs to one Telegram user, so only whitelisted users
may read or move money through the bot.
"""

from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

from config import ALLOWED_USER_IDS
from utils.logger import get_logger

logger = get_logger(__name__)


def is_allowed(user_id: int, allowed_ids: list[int] = ALLOWED_USER_IDS) -> bool:
    """An empty whitelist allows everyone (dev mode)."""
    return not allowed_ids or user_id in allowed_ids


def authorized_only(func: Callable):
    """
    Decorator that restricts a handler to whitelisted users only.

    Usage:
        @authorized_only
        async def my_handler(update, context):
            ...
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not is_allowed(user.id):
            logger.warning(
                f"🚫 Unauthorized access attempt: user_id={user.id}, "
                f"username={user.username}, name={user.first_name}"
            )
            await update.effective_message.reply_text(
                "⛔ Sorry, this bot is private. Ask the owner to add your /myid to the whitelist."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
