"""
utils/logger.py
---------------
Centralized logging configuration.
All modules should use `get_logger(__name__)` to obtain a logger instance.
Code that works on one user's ledger can use `get_user_logger` so every
line carries the Telegram user id.
"""

import logging
import sys

from config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False


class _UserAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[user {self.extra['user_id']}] {msg}", kwargs


def _init_logging() -> None:
    """Configure the root logger once, at LOG_LEVEL from config."""
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(handler)
    # httpx logs every Telegram poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.
    """
    _init_logging()
    return logging.getLogger(name)


def get_user_logger(name: str, user_id) -> logging.LoggerAdapter:
    """Like get_logger, with every message prefixed by ``[user <id>]``."""
    return _UserAdapter(get_logger(name), {"user_id": user_id})
