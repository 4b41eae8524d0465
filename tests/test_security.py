"""
Tests for the handler guards: single in-flight action, whitelist and
rate limiting.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from security import action_guard, rate_limiter
from security.action_guard import ActionGuard, single_flight
from security.auth import is_allowed
from utils.exceptions import ActionInProgressError


def _update(user_id: int = 1):
    update = MagicMock()
    update.effective_user.id = user_id
    update.message.reply_text = AsyncMock()
    return update


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    monkeypatch.setattr(action_guard, "_user_guards", action_guard.defaultdict(ActionGuard))
    monkeypatch.setattr(rate_limiter, "_user_timestamps", rate_limiter.defaultdict(list))


# =============================================================================
# ActionGuard
# =============================================================================


class TestActionGuard:

    def test_second_hold_rejected(self):
        guard = ActionGuard()
        with guard.hold("autopay"):
            with pytest.raises(ActionInProgressError) as exc_info:
                with guard.hold("undo"):
                    pass
        assert exc_info.value.pending_action == "autopay"
        assert exc_info.value.code == "ACTION_IN_PROGRESS"

    def test_released_after_failure(self):
        guard = ActionGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("autopay"):
                raise RuntimeError("store down")
        assert not guard.busy
        with guard.hold("autopay"):
            assert guard.pending == "autopay"

    def test_single_flight_rejects_reentry(self):
        calls = []

        @single_flight("autopay")
        async def handler(update, context):
            calls.append("start")
            inner = await handler(update, context)
            calls.append(inner)
            return "done"

        update = _update()
        assert asyncio.run(handler(update, None)) == "done"
        assert calls == ["start", None]
        update.message.reply_text.assert_awaited_once()
        assert "autopay" in update.message.reply_text.await_args[0][0]
        assert not action_guard.guard_for(1).busy

    def test_guards_are_per_user(self):
        @single_flight("autopay")
        async def handler(update, context):
            return update.effective_user.id

        with action_guard.guard_for(1).hold("autopay"):
            assert asyncio.run(handler(_update(2), None)) == 2
            assert asyncio.run(handler(_update(1), None)) is None


# =============================================================================
# Whitelist and rate limit
# =============================================================================


class TestAccess:

    def test_empty_whitelist_allows_everyone(self):
        assert is_allowed(99, [])

    def test_whitelist(self):
        assert is_allowed(1, [1, 2])
        assert not is_allowed(3, [1, 2])

    def test_rate_limit_window(self):
        assert rate_limiter.register_hit(1, now=0.0, limit=2, window=60)
        assert rate_limiter.register_hit(1, now=1.0, limit=2, window=60)
        assert not rate_limiter.register_hit(1, now=2.0, limit=2, window=60)
        assert rate_limiter.register_hit(2, now=2.0, limit=2, window=60)
        assert rate_limiter.register_hit(1, now=61.0, limit=2, window=60)
