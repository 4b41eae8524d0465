"""
services/obligation_service.py
------------------------------
Merges loans, credit cards, reserved funds and predicted income into one
urgency-ranked list of obligations.

The aggregation functions are pure: they take raw records and a fixed
``today`` and return new Obligation objects. ObligationService gathers the
raw records from the ledger for them.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from models import payment_source
from models.obligation import (
    OBLIGATION_POLICY,
    AlertSettings,
    Obligation,
    ObligationKind,
)
from models.schedule import RecurrenceSchedule
from repositories.account_repo import AccountRepository
from services import recurrence_engine
from services.schedule_service import ScheduleService
from utils.dates import iso, to_date
from utils.exceptions import InsufficientDataError
from utils.logger import get_logger

logger = get_logger(__name__)

# Tie-break order for obligations due on the same day.
_KIND_ORDER = {
    ObligationKind.LOAN: 0,
    ObligationKind.CREDIT_CARD: 1,
    ObligationKind.RESERVED_FUND: 2,
    ObligationKind.PREDICTED_INCOME: 3,
}


@dataclass
class ObligationSources:
    """Raw inputs of one aggregation run."""

    loans: list[dict] = field(default_factory=list)
    credit_cards: list[dict] = field(default_factory=list)
    reserved_funds: list[dict] = field(default_factory=list)
    schedules: list[RecurrenceSchedule] = field(default_factory=list)
    prediction_count: int = 8


def normalize_id(value) -> Optional[str]:
    """
    Canonical string form of a record id.

    Objects and dicts contribute their ``id`` (or ``value``) field,
    primitives are cast to str, missing ids become None.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        inner = value.get("id", value.get("value"))
        return None if inner is None else str(inner)
    if isinstance(value, (str, int, float)):
        return str(value)
    for attr in ("id", "value"):
        inner = getattr(value, attr, None)
        if inner is not None:
            return str(inner)
    return None


def _amount(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _funding(record: dict, name: str) -> tuple:
    """(funding_source, funding_error) read from a raw record."""
    try:
        ref = payment_source.from_record(
            record.get("connected_payment_source"),
            record.get("connected_payment_source_id"),
        )
        return ref, None
    except InsufficientDataError as e:
        logger.warning(f"Funding source of '{name}' is malformed: {e}")
        return None, e.message


def _from_record(kind: ObligationKind, record: dict, today: date) -> Optional[Obligation]:
    """Build an obligation from a loan, card or fund record, if it is due-dated and owed."""
    policy = OBLIGATION_POLICY[kind]
    due_date = to_date(record.get(policy.due_field))
    # Legacy loans only carry due_date; a cleared due field means nothing is due.
    if kind == ObligationKind.LOAN and policy.due_field not in record:
        due_date = to_date(record.get("due_date"))
    if due_date is None:
        return None

    balance = _amount(record.get(policy.balance_field))
    payment_amount = _amount(record.get("payment_amount"))
    outstanding = balance if balance is not None else payment_amount
    if outstanding is None or outstanding <= 0:
        return None

    name = record.get("name") or kind.value.replace("_", " ").title()
    funding_source, funding_error = _funding(record, name)
    return Obligation(
        kind=kind,
        source_id=normalize_id(record.get("id")),
        name=name,
        amount=payment_amount if payment_amount else outstanding,
        due_date=due_date,
        days_until=recurrence_engine.days_until(due_date, today),
        payment_amount=payment_amount if payment_amount else None,
        balance=balance,
        funding_source=funding_source,
        funding_error=funding_error,
        schedule_id=normalize_id(record.get("schedule_id")),
        frequency=record.get("frequency"),
    )


def build_obligations(sources: ObligationSources, today: date) -> list[Obligation]:
    """Unclassified obligations from every source, in source order."""
    obligations: list[Obligation] = []

    for kind, records in ((ObligationKind.LOAN, sources.loans),
                          (ObligationKind.CREDIT_CARD, sources.credit_cards),
                          (ObligationKind.RESERVED_FUND, sources.reserved_funds)):
        for record in records:
            obligation = _from_record(kind, record, today)
            if obligation is not None:
                obligations.append(obligation)

    by_id = {s.id: s for s in sources.schedules}
    for predicted in recurrence_engine.predict_income(sources.schedules, today, sources.prediction_count):
        if predicted.amount <= 0:
            continue
        schedule = by_id.get(predicted.schedule_id)
        obligations.append(Obligation(
            kind=ObligationKind.PREDICTED_INCOME,
            source_id=normalize_id(predicted.schedule_id),
            name=predicted.name,
            amount=predicted.amount,
            due_date=predicted.date,
            days_until=predicted.days_until,
            payment_amount=predicted.amount,
            funding_source=schedule.funding_source if schedule and schedule.auto_pay else None,
            schedule_id=normalize_id(predicted.schedule_id),
            frequency=predicted.frequency.value,
        ))

    return obligations


def rank_key(obligation: Obligation) -> tuple:
    """Most overdue first; ties break on kind, name, then id."""
    return (obligation.days_until, _KIND_ORDER[obligation.kind], obligation.name, obligation.source_id or "")


def is_urgent(days_until: int, warning_days: int) -> bool:
    """Overdue, or due within the warning window."""
    return days_until < 0 or 0 <= days_until <= warning_days


def aggregate(
    sources: ObligationSources, warning_days: int, upcoming_days: int, today: date
) -> list[Obligation]:
    """
    Ranked obligations for the dashboard.

    Overdue obligations are always kept and always urgent. Future ones are
    kept when urgent or due within ``upcoming_days``. The result is ordered
    by days until due, most overdue first.
    """
    ranked = []
    for obligation in build_obligations(sources, today):
        obligation.urgent = is_urgent(obligation.days_until, warning_days)
        if obligation.days_until < 0 or obligation.urgent or obligation.days_until <= upcoming_days:
            ranked.append(obligation)

    ranked.sort(key=rank_key)
    return ranked


def partition(obligations: Iterable[Obligation]) -> tuple[list[Obligation], list[Obligation]]:
    """Split a ranked list into (urgent, upcoming), keeping the order."""
    urgent, upcoming = [], []
    for obligation in obligations:
        (urgent if obligation.urgent else upcoming).append(obligation)
    return urgent, upcoming


class ObligationService:
    """
    Reads the user's records and schedules and runs the aggregation.

    Payment schedules are the source of truth for the records they pay:
    their next date, amount and funding source are laid over the record.
    A paused or exhausted schedule hides its record's due date.
    """

    def __init__(self, accounts: AccountRepository, schedules: ScheduleService):
        self.accounts = accounts
        self.schedules = schedules

    def gather_sources(self, prediction_count: int = 8) -> ObligationSources:
        schedules = self.schedules.list_all()
        records = {
            ObligationKind.LOAN: self.accounts.list_loans(),
            ObligationKind.CREDIT_CARD: self.accounts.list_credit_cards(),
            ObligationKind.RESERVED_FUND: self.accounts.list_reserved_funds(),
        }

        for schedule in schedules:
            if schedule.is_income:
                continue
            target = next(
                (r for r in records.get(schedule.obligation_kind, [])
                 if normalize_id(r.get("id")) == schedule.obligation_id),
                None,
            )
            if target is None:
                logger.warning(f"Schedule #{schedule.id} pays missing {schedule.obligation_kind.value} "
                               f"#{schedule.obligation_id}")
                continue
            _overlay_schedule(target, schedule)

        return ObligationSources(
            loans=records[ObligationKind.LOAN],
            credit_cards=records[ObligationKind.CREDIT_CARD],
            reserved_funds=records[ObligationKind.RESERVED_FUND],
            schedules=schedules,
            prediction_count=prediction_count,
        )

    def obligations(self, today: date, settings: AlertSettings, prediction_count: int = 8) -> list[Obligation]:
        sources = self.gather_sources(prediction_count)
        return aggregate(sources, settings.default_days, settings.upcoming_days, today)

    def dashboard(self, today: date, settings: AlertSettings,
                  prediction_count: int = 8) -> tuple[list[Obligation], list[Obligation]]:
        return partition(self.obligations(today, settings, prediction_count))

    def due_income(self, today: date) -> list[Obligation]:
        """Funded income schedules whose next deposit is due today or earlier."""
        due = []
        for schedule in self.schedules.list_active():
            if not schedule.is_income or not schedule.auto_pay or schedule.funding_source is None:
                continue
            if schedule.next_date > today or recurrence_engine.is_exhausted(schedule):
                continue
            due.append(Obligation(
                kind=ObligationKind.PREDICTED_INCOME,
                source_id=schedule.id,
                name=schedule.name,
                amount=schedule.amount,
                due_date=schedule.next_date,
                days_until=recurrence_engine.days_until(schedule.next_date, today),
                urgent=True,
                payment_amount=schedule.amount,
                funding_source=schedule.funding_source,
                schedule_id=schedule.id,
                frequency=schedule.frequency.value,
            ))
        return due


def _overlay_schedule(record: dict, schedule: RecurrenceSchedule) -> None:
    """Lay a payment schedule's state over the record it pays."""
    due_field = OBLIGATION_POLICY[schedule.obligation_kind].due_field
    if not schedule.is_active or recurrence_engine.is_exhausted(schedule):
        record[due_field] = None
        return

    record[due_field] = iso(schedule.next_date)
    record["payment_amount"] = schedule.amount
    record["schedule_id"] = schedule.id
    record["frequency"] = schedule.frequency.value
    record.update(payment_source.to_record(schedule.funding_source if schedule.auto_pay else None))
