"""
security/rate_limiter.py
-------------------------
Sliding-window rate limit on bot commands, per Telegram user.
"""

import time
from collections import defaultdict
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)

# In-memory storage for rate tracking: {user_id: [timestamp1, timestamp2, ...]}
_user_timestamps: dict[int, list[float]] = defaultdict(list)


def register_hit(
    user_id: int,
    now: Optional[float] = None,
    limit: int = RATE_LIMIT_MESSAGES,
    window: int = RATE_LIMIT_WINDOW_SECONDS,
) -> bool:
    """
    Record a command from ``user_id`` if the window allows it.

    Returns:
        False when the user already sent ``limit`` commands within the
        last ``window`` seconds (the hit is not recorded then).
    """
    now = time.time() if now is None else now
    cutoff = now - window
    recent = [t for t in _user_timestamps[user_id] if t > cutoff]
    _user_timestamps[user_id] = recent

    if len(recent) >= limit:
        return False
    recent.append(now)
    return True


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max commands per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not register_hit(user.id):
            logger.warning(f"⚠️ Rate limit hit for user {user.id}")
            await update.effective_message.reply_text(
                f"⚠️ Too many commands. Please wait up to {RATE_LIMIT_WINDOW_SECONDS}s and try again."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
