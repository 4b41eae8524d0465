"""
handlers/obligations_handler.py
--------------------------------
Handles the dashboard views: /obligations, /income and /alerts.
Delegates all logic to ObligationService and the recurrence engine.
"""

from datetime import date

from telegram import Update
from telegram.ext import ContextTypes

from config import ALERT_DEFAULT_DAYS, ALERT_UPCOMING_DAYS, PREDICTION_COUNT
from models.obligation import AlertSettings
from repositories.user_repo import UserRepository
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services import ledger_services, recurrence_engine
from utils.exceptions import BotLedgerError
from utils.formatting import format_dashboard, format_predictions
from utils.logger import get_logger

logger = get_logger(__name__)
user_repo = UserRepository()

DEFAULT_SETTINGS = AlertSettings(default_days=ALERT_DEFAULT_DAYS, upcoming_days=ALERT_UPCOMING_DAYS)


@authorized_only
@rate_limited
async def obligations_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /obligations - urgent and upcoming obligations."""
    user = update.effective_user
    try:
        settings = user_repo.get_alert_settings(user.id, DEFAULT_SETTINGS)
        services = ledger_services.for_user(user.id)
        urgent, upcoming = services.obligations.dashboard(date.today(), settings, PREDICTION_COUNT)
    except BotLedgerError as e:
        logger.error(f"Dashboard failed for user {user.id}: {e}")
        await update.message.reply_text(f"❌ {e.message}")
        return

    await update.message.reply_text(
        format_dashboard(urgent, upcoming, settings.default_days), parse_mode="Markdown"
    )


@authorized_only
@rate_limited
async def income_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /income [count] - next predicted income deposits.
    Usage: /income 12
    """
    user = update.effective_user
    count = PREDICTION_COUNT
    if context.args:
        try:
            count = max(1, int(context.args[0]))
        except ValueError:
            await update.message.reply_text("⚠️ Usage: /income [count]\nExample: /income 12")
            return

    try:
        schedules = ledger_services.for_user(user.id).schedules.list_all()
    except BotLedgerError as e:
        logger.error(f"Income prediction failed for user {user.id}: {e}")
        await update.message.reply_text(f"❌ {e.message}")
        return

    predictions = recurrence_engine.predict_income(schedules, date.today(), count)
    await update.message.reply_text(format_predictions(predictions), parse_mode="Markdown")


@authorized_only
@rate_limited
async def alerts_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /alerts [warning_days] [upcoming_days] - show or change the alert window.
    Usage: /alerts 5 45
    """
    user = update.effective_user

    if not context.args:
        settings = user_repo.get_alert_settings(user.id, DEFAULT_SETTINGS)
        await update.message.reply_text(
            f"🔔 Urgent within *{settings.default_days}* days, "
            f"upcoming within *{settings.upcoming_days}* days.\n"
            f"Change with /alerts <warning\\_days> <upcoming\\_days>",
            parse_mode="Markdown",
        )
        return

    try:
        warning_days = int(context.args[0])
        upcoming_days = int(context.args[1]) if len(context.args) > 1 else max(warning_days, DEFAULT_SETTINGS.upcoming_days)
    except ValueError:
        await update.message.reply_text("⚠️ Day counts must be whole numbers.\nExample: /alerts 5 45")
        return

    try:
        user_repo.ensure_user(user.id, user.first_name)
        settings = user_repo.set_alert_settings(user.id, AlertSettings(warning_days, upcoming_days))
    except BotLedgerError as e:
        await update.message.reply_text(f"⚠️ {e.message}")
        return

    await update.message.reply_text(
        f"✅ Alerts updated: urgent within {settings.default_days} days, "
        f"upcoming within {settings.upcoming_days} days."
    )
