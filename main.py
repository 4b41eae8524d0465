"""
main.py
-------
Entry point for the BotLedger Telegram bot.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Configure and start the Telegram bot with all handlers.

There are no scheduled jobs: auto-payments only run when the user sends
/autopay.
"""

from telegram import BotCommand, Update
from telegram.ext import Application, CommandHandler, ContextTypes

from config import TELEGRAM_BOT_TOKEN
from db.connection import close_pool, init_pool
from db.init_db import create_tables
from handlers.autopay_handler import autopay_command
from handlers.obligations_handler import alerts_command, income_command, obligations_command
from handlers.schedule_handler import (
    add_income_command,
    add_payment_command,
    delete_schedule_command,
    pause_command,
    resume_command,
    schedules_command,
    undo_command,
)
from handlers.start_handler import help_command, myid_command, start_command
from utils.logger import get_logger

logger = get_logger(__name__)

COMMANDS = [
    ("start", "🚀 Start the bot", start_command),
    ("help", "📖 Show help", help_command),
    ("obligations", "🚨 Urgent and upcoming obligations", obligations_command),
    ("income", "💰 Predicted income", income_command),
    ("alerts", "🔔 Show or change the alert window", alerts_command),
    ("schedules", "🔁 List schedules", schedules_command),
    ("add_income", "➕ Add recurring income", add_income_command),
    ("add_payment", "➕ Add recurring payment", add_payment_command),
    ("pause", "⏸️ Pause a schedule", pause_command),
    ("resume", "▶️ Resume a schedule", resume_command),
    ("delete_schedule", "🗑️ Delete a schedule", delete_schedule_command),
    ("undo", "↩️ Undo a schedule's last payment", undo_command),
    ("autopay", "⚙️ Process due payments", autopay_command),
    ("myid", "🆔 Your Telegram ID", myid_command),
]


async def set_bot_commands(application: Application) -> None:
    """Register bot commands menu in Telegram on startup."""
    await application.bot.set_my_commands([BotCommand(name, text) for name, text, _ in COMMANDS])
    logger.info("Bot commands menu registered successfully.")


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors no handler caught and tell the user something went wrong."""
    logger.error("Unhandled error while processing an update", exc_info=context.error)
    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text("❌ Something went wrong. Please try again later.")


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Database setup ─────────────────────────────────
    logger.info("Initializing database...")
    init_pool()
    create_tables()

    # ── 2. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = Application.builder().token(TELEGRAM_BOT_TOKEN).post_init(set_bot_commands).build()

    # ── 3. Register command handlers ──────────────────────
    for name, _, callback in COMMANDS:
        app.add_handler(CommandHandler(name, callback))
    app.add_error_handler(on_error)

    # ── 4. Start polling ──────────────────────────────────
    logger.info("🚀 BotLedger is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])

    # ── 5. Cleanup on shutdown ────────────────────────────
    close_pool()
    logger.info("BotLedger stopped.")


if __name__ == "__main__":
    main()
