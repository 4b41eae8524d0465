"""
handlers/schedule_handler.py
-----------------------------
Handles recurrence schedule commands: listing, creating, pausing,
resuming, deleting and undoing the last realized occurrence.
Delegates all logic to ScheduleService and AutoPayService.
"""

from datetime import date

from telegram import Update
from telegram.ext import ContextTypes
from telegram.helpers import escape_markdown

from models.obligation import OBLIGATION_POLICY
from security.action_guard import single_flight
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services import ledger_services
from utils.exceptions import BotLedgerError, NotFoundError
from utils.formatting import format_schedule, format_schedules, money
from utils.logger import get_logger
from utils.parsing import parse_income_command, parse_payment_command, parse_target

logger = get_logger(__name__)

ADD_INCOME_HELP = (
    "📝 *Add recurring income*\n\n"
    "*Format:*\n"
    "`/add_income Name | amount | frequency | source | next date | end`\n\n"
    "*Examples:*\n"
    "• `/add_income Salary | 2500 | monthly | bank:main`\n"
    "• `/add_income Freelance | 400 | biweekly | cash | 2026-11-07 | count:6`\n\n"
    "*Frequency:* weekly, biweekly, monthly, bimonthly\n"
    "*Source:* cash, bank:<id>, card:<id>\n"
    "*End:* until:YYYY-MM-DD, count:N (default: no end)"
)

ADD_PAYMENT_HELP = (
    "📝 *Add recurring payment*\n\n"
    "*Format:*\n"
    "`/add_payment kind:id | amount | frequency | source | next date | end`\n\n"
    "*Examples:*\n"
    "• `/add_payment loan:car | 320 | monthly | bank:main | 2026-11-05`\n"
    "• `/add_payment fund:holiday | 100 | monthly | cash | 2026-11-01 | until:2027-06-01`\n\n"
    "*Kind:* loan, card, fund"
)


def _schedule_id_arg(context: ContextTypes.DEFAULT_TYPE):
    return context.args[0].strip() if context.args else None


@authorized_only
@rate_limited
async def schedules_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /schedules - list all schedules, paused ones included."""
    user = update.effective_user
    try:
        schedules = ledger_services.for_user(user.id).schedules.list_all()
    except BotLedgerError as e:
        logger.error(f"Listing schedules failed for user {user.id}: {e}")
        await update.message.reply_text(f"❌ {e.message}")
        return
    await update.message.reply_text(format_schedules(schedules), parse_mode="Markdown")


@authorized_only
@rate_limited
async def add_income_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_income - create a recurring income schedule."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text(ADD_INCOME_HELP, parse_mode="Markdown")
        return

    try:
        schedule = parse_income_command(" ".join(context.args), date.today())
        saved = ledger_services.for_user(user.id).schedules.create(schedule)
    except BotLedgerError as e:
        await update.message.reply_text(f"⚠️ {e.message}")
        return

    await update.message.reply_text(f"✅ Income schedule added:\n{format_schedule(saved)}", parse_mode="Markdown")


@authorized_only
@rate_limited
async def add_payment_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_payment - create a recurring payment for a loan, card or fund."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text(ADD_PAYMENT_HELP, parse_mode="Markdown")
        return

    text = " ".join(context.args)
    try:
        services = ledger_services.for_user(user.id)
        kind, target_id = parse_target(text.split("|")[0])
        record = services.accounts.get_record(OBLIGATION_POLICY[kind].collection, target_id)
        if record is None:
            raise NotFoundError(kind.value.replace("_", " ").title(), target_id)
        existing = services.schedules.find_for_obligation(kind, target_id)
        if existing is not None:
            await update.message.reply_text(
                f"⚠️ {escape_markdown(existing.name)} is already paid by schedule `{existing.id}`.",
                parse_mode="Markdown",
            )
            return
        schedule = parse_payment_command(text, date.today(), name=record.get("name"))
        saved = services.schedules.create(schedule)
    except BotLedgerError as e:
        await update.message.reply_text(f"⚠️ {e.message}")
        return

    await update.message.reply_text(f"✅ Payment schedule added:\n{format_schedule(saved)}", parse_mode="Markdown")


async def _toggle(update: Update, context: ContextTypes.DEFAULT_TYPE, pause: bool) -> None:
    command = "pause" if pause else "resume"
    schedule_id = _schedule_id_arg(context)
    if not schedule_id:
        await update.message.reply_text(f"⚠️ Usage: /{command} <schedule id>")
        return

    try:
        schedule = ledger_services.for_user(update.effective_user.id).schedules.toggle(schedule_id, pause)
    except BotLedgerError as e:
        await update.message.reply_text(f"⚠️ {e.message}")
        return

    verb = "paused ⏸️" if pause else "resumed ▶️"
    await update.message.reply_text(f"{schedule.name} {verb}")


@authorized_only
@rate_limited
async def pause_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pause <id>."""
    await _toggle(update, context, pause=True)


@authorized_only
@rate_limited
async def resume_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /resume <id>."""
    await _toggle(update, context, pause=False)


@authorized_only
@rate_limited
async def delete_schedule_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /delete_schedule <id> - delete a schedule (its history is kept).
    Usage: /delete_schedule 3f2a...
    """
    schedule_id = _schedule_id_arg(context)
    if not schedule_id:
        await update.message.reply_text("⚠️ Usage: /delete_schedule <schedule id>")
        return

    try:
        deleted = ledger_services.for_user(update.effective_user.id).schedules.delete(schedule_id)
    except BotLedgerError as e:
        await update.message.reply_text(f"❌ {e.message}")
        return

    if deleted:
        await update.message.reply_text("🗑️ Schedule deleted.")
    else:
        await update.message.reply_text("⚠️ No schedule with that id.")


@authorized_only
@rate_limited
@single_flight("undo")
async def undo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /undo <id> - reverse the last payment or deposit of a schedule.
    Usage: /undo 3f2a...
    """
    schedule_id = _schedule_id_arg(context)
    if not schedule_id:
        await update.message.reply_text("⚠️ Usage: /undo <schedule id>")
        return

    try:
        occurrence = ledger_services.for_user(update.effective_user.id).autopay.undo_last_payment(schedule_id)
    except NotFoundError as e:
        await update.message.reply_text(f"🤷 {e.message}")
        return
    except BotLedgerError as e:
        logger.error(f"Undo failed for schedule {schedule_id}: {e}")
        await update.message.reply_text(f"❌ {e.message}")
        return

    await update.message.reply_text(
        f"↩️ Undid {money(occurrence.amount)} from {occurrence.due_date.isoformat()}. "
        f"The schedule is due again on that date."
    )
