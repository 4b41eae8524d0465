"""
handlers/start_handler.py
--------------------------
Handles /start, /help and /myid.
Registers the user and shows available commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from repositories.user_repo import UserRepository
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
user_repo = UserRepository()

HELP_TEXT = """
🤖 *Welcome to BotLedger!*
Recurring income, loan and card payments, paid on time 💶

*📊 Overview:*
/obligations - Urgent and upcoming obligations
/income - Predicted income (e.g. /income 12)
/alerts - Show or change the alert window (e.g. /alerts 5 45)

*🔁 Schedules:*
/schedules - List all schedules
/add\\_income - Add recurring income
/add\\_payment - Add a recurring payment for a loan, card or fund
/pause <id> - Pause a schedule
/resume <id> - Resume a schedule
/delete\\_schedule <id> - Delete a schedule
/undo <id> - Undo a schedule's last payment

*⚙️ Auto-pay:*
/autopay - Pay everything due today or overdue

/myid - Show your Telegram ID
"""


@authorized_only
@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - register user and show welcome message."""
    user = update.effective_user
    user_repo.ensure_user(user.id, user.first_name)
    logger.info(f"User {user.id} ({user.first_name}) started the bot.")

    await update.message.reply_text(
        f"Hi {user.first_name}! 👋\n"
        f"I track your recurring income and payments and pay what is due.\n\n"
        f"Send /obligations to see what is coming up, or /help for all commands."
    )


@authorized_only
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")


async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show the user's Telegram ID for whitelisting."""
    user = update.effective_user
    await update.message.reply_text(
        f"🆔 Your Telegram ID: `{user.id}`\n"
        f"Add it to `ALLOWED_USER_IDS` in `.env` to give this account access.",
        parse_mode="Markdown",
    )
