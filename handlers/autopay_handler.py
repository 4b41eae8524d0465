"""
handlers/autopay_handler.py
----------------------------
Handles /autopay: pays every due obligation that has a funding source
and deposits due income. Only one run per user can be in flight.
"""

from datetime import date

from telegram import Update
from telegram.ext import ContextTypes

from security.action_guard import single_flight
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services import ledger_services
from utils.exceptions import BotLedgerError
from utils.formatting import format_result
from utils.logger import get_logger

logger = get_logger(__name__)


@authorized_only
@rate_limited
@single_flight("autopay")
async def autopay_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /autopay - process everything that is due today or overdue."""
    user = update.effective_user
    await update.message.reply_text("⚙️ Processing due payments...")

    try:
        result = ledger_services.for_user(user.id).autopay.run(date.today())
    except BotLedgerError as e:
        logger.error(f"Auto-pay run failed for user {user.id}: {e}")
        await update.message.reply_text(f"❌ Auto-pay could not start: {e.message}")
        return

    if not result.processed and not result.failed:
        await update.message.reply_text("✅ Nothing is due. All caught up!")
        return

    logger.info(f"User {user.id} auto-pay: {result}")
    await update.message.reply_text(format_result(result), parse_mode="Markdown")
