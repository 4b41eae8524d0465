"""
utils/formatting.py
-------------------
Telegram Markdown rendering of obligations, predictions, schedules and
batch results. User-provided names are escaped.
"""

from typing import Iterable

from telegram.helpers import escape_markdown

from config import DEFAULT_CURRENCY
from models.obligation import Obligation, ObligationKind
from models.processing import ProcessingResult
from models.schedule import (
    OccurrenceCount,
    PredictedOccurrence,
    RecurrenceSchedule,
    UntilDate,
)
from services import recurrence_engine

_KIND_ICONS = {
    ObligationKind.LOAN: "🏦",
    ObligationKind.CREDIT_CARD: "💳",
    ObligationKind.RESERVED_FUND: "🗂️",
    ObligationKind.PREDICTED_INCOME: "💰",
}


def money(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    return f"{amount:,.2f} {currency}"


def when(days_until: int) -> str:
    """Human form of a signed day count."""
    if days_until < 0:
        return f"{-days_until} day(s) overdue"
    if days_until == 0:
        return "due today"
    if days_until == 1:
        return "tomorrow"
    return f"in {days_until} days"


def format_obligation(o: Obligation) -> str:
    icon = "🔴" if o.is_overdue else _KIND_ICONS[o.kind]
    line = f"{icon} {escape_markdown(o.name)}: {money(o.amount)} ({when(o.days_until)}, {o.due_date.isoformat()})"
    if o.funding_error:
        line += "\n    ⚠️ " + escape_markdown(o.funding_error)
    elif o.funding_source is not None:
        line += f"\n    ↳ auto from {escape_markdown(str(o.funding_source))}"
    return line


def format_dashboard(urgent: list[Obligation], upcoming: list[Obligation], warning_days: int) -> str:
    if not urgent and not upcoming:
        return "✅ Nothing due. No obligations in your alert window."

    lines = []
    if urgent:
        lines.append(f"🚨 *Urgent* (overdue or within {warning_days} days)")
        lines.extend(format_obligation(o) for o in urgent)
    if upcoming:
        if lines:
            lines.append("")
        lines.append("📅 *Upcoming*")
        lines.extend(format_obligation(o) for o in upcoming)
    return "\n".join(lines)


def format_predictions(predictions: Iterable[PredictedOccurrence]) -> str:
    predictions = list(predictions)
    if not predictions:
        return "💤 No upcoming income. Add a schedule with /add_income."

    total = sum(p.amount for p in predictions)
    lines = ["💰 *Upcoming income*"]
    for p in predictions:
        lines.append(f"• {p.date.isoformat()} {escape_markdown(p.name)}: {money(p.amount)} ({when(p.days_until)})")
    lines.append(f"\nTotal: {money(total)}")
    return "\n".join(lines)


def format_termination(schedule: RecurrenceSchedule) -> str:
    termination = schedule.termination
    if isinstance(termination, UntilDate):
        return f"until {termination.end.isoformat()}"
    if isinstance(termination, OccurrenceCount):
        return f"{schedule.occurrences_completed}/{termination.total} done"
    return "no end"


def format_schedule(schedule: RecurrenceSchedule) -> str:
    if not schedule.is_active:
        status = "⏸️"
    elif recurrence_engine.is_exhausted(schedule):
        status = "🏁"
    else:
        status = "✅"

    target = "income" if schedule.is_income else f"{schedule.obligation_kind.value}:{schedule.obligation_id}"
    source = schedule.funding_source if schedule.funding_source is not None else "no source"
    return (
        f"{status} `{schedule.id}` {escape_markdown(schedule.name)}: {money(schedule.amount)} {schedule.frequency.value}\n"
        f"    next {schedule.next_date.isoformat()}, {format_termination(schedule)}, "
        f"{escape_markdown(target)}, {escape_markdown(str(source))}"
    )


def format_schedules(schedules: list[RecurrenceSchedule]) -> str:
    if not schedules:
        return "📭 No schedules yet. Use /add_income or /add_payment."
    return "🔁 *Your schedules*\n\n" + "\n".join(format_schedule(s) for s in schedules)


def format_result(result: ProcessingResult) -> str:
    """Both counts are always shown, followed by every failure reason."""
    lines = [f"⚙️ Auto-pay: ✅ {result.processed_count} processed, ❌ {result.failed_count} failed"]
    for p in result.processed:
        lines.append(f"✅ {escape_markdown(p.name)}: {money(p.amount)} via {escape_markdown(p.funding_source)}")
    for f in result.failed:
        lines.append(f"❌ {escape_markdown(f.name)}: {escape_markdown(f.reason)}")
    if result.processed:
        lines.append(f"\nTotal moved: {money(result.total_amount)}")
    return "\n".join(lines)
