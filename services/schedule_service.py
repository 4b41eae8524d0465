"""
services/schedule_service.py
----------------------------
Business logic for recurrence schedules: validated CRUD, pause/resume,
occurrence realization and its compensating undo.
"""

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from models.obligation import ObligationKind
from models.payment_source import BankAccount, Cash, CreditCard
from models.schedule import (
    Indefinite,
    OccurrenceCount,
    RecurrenceSchedule,
    UntilDate,
    parse_frequency,
)
from models.transaction import Occurrence
from repositories.schedule_repo import ScheduleRepository
from repositories.transaction_repo import TransactionRepository
from services import recurrence_engine
from utils.exceptions import NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

# Fields a caller may patch through update(); counters and lifecycle
# fields only move through the dedicated operations below.
_PATCHABLE_FIELDS = {
    "name", "amount", "frequency", "next_date", "termination",
    "funding_source", "obligation_kind", "obligation_id", "auto_pay", "notes",
}


class ScheduleService:
    """
    Owns the user's schedules and their completion counters.

    Responsibilities:
        - Validate and persist schedule definitions.
        - Pause and resume (the only exposed state transition).
        - Realize occurrences and keep the back-reference needed for undo.
    """

    def __init__(self, repo: ScheduleRepository, transactions: TransactionRepository):
        self.repo = repo
        self.transactions = transactions

    # ── CRUD ──────────────────────────────────────────────

    def create(self, schedule: RecurrenceSchedule) -> RecurrenceSchedule:
        """
        Validate and store a new schedule.

        Raises:
            ValidationError: The definition is malformed; nothing is written.
        """
        schedule.id = None
        schedule.version = 0
        schedule.frequency = parse_frequency(schedule.frequency)
        validate(schedule)
        saved = self.repo.save(schedule)
        logger.info(f"Created schedule '{saved.name}' #{saved.id} ({saved.frequency.value})")
        return saved

    def get(self, schedule_id: str) -> RecurrenceSchedule:
        """
        Raises:
            NotFoundError: Unknown schedule id.
        """
        schedule = self.repo.get_by_id(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        return schedule

    def update(self, schedule_id: str, **changes) -> RecurrenceSchedule:
        """
        Apply a field patch to a schedule.

        Raises:
            NotFoundError: Unknown schedule id.
            ValidationError: Unknown field, or the patched schedule is invalid.
        """
        unknown = set(changes) - _PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        current = self.get(schedule_id)
        if "frequency" in changes:
            changes["frequency"] = parse_frequency(changes["frequency"])
        patched = replace(current, **changes)
        # An exhausted UntilDate schedule is already past its end date.
        validate(patched, check_end="next_date" in changes or "termination" in changes)
        return self.repo.save(patched)

    def delete(self, schedule_id: str) -> bool:
        """Delete a schedule. Its occurrence history stays in the ledger."""
        return self.repo.delete(schedule_id)

    def toggle(self, schedule_id: str, pause: bool) -> RecurrenceSchedule:
        """
        Pause or resume a schedule.

        Args:
            pause: True to pause, False to resume.
        """
        schedule = self.get(schedule_id)
        schedule.is_active = not pause
        schedule.paused_at = datetime.now() if pause else None
        saved = self.repo.save(schedule)
        logger.info(f"{'Paused' if pause else 'Resumed'} schedule '{saved.name}' #{saved.id}")
        return saved

    def list_active(self) -> list[RecurrenceSchedule]:
        return self.repo.get_all(active_only=True)

    def list_all(self) -> list[RecurrenceSchedule]:
        return self.repo.get_all()

    def find_for_obligation(self, kind: ObligationKind, obligation_id: str) -> Optional[RecurrenceSchedule]:
        """The schedule that pays a given loan, card or fund, if any."""
        for schedule in self.repo.get_all():
            if schedule.obligation_kind == kind and schedule.obligation_id == str(obligation_id):
                return schedule
        return None

    # ── OCCURRENCES ───────────────────────────────────────

    def complete_occurrence(
        self,
        schedule: RecurrenceSchedule,
        transaction_id: Optional[str],
        amount: float,
        funding_delta: float = 0.0,
        target_collection: Optional[str] = None,
        target_id: Optional[str] = None,
        target_field: Optional[str] = None,
        target_delta: float = 0.0,
    ) -> Occurrence:
        """
        Realize the schedule's current occurrence.

        Increments the completion counter, advances ``next_date`` by one
        period and stores the back-reference to the generated transaction.

        Returns:
            The stored Occurrence.
        """
        realized_date = schedule.next_date
        schedule.occurrences_completed += 1
        schedule.next_date = recurrence_engine.next_occurrence(realized_date, schedule.frequency)
        self.repo.save(schedule)

        occurrence = self.transactions.add_occurrence(Occurrence(
            schedule_id=schedule.id,
            due_date=realized_date,
            sequence=schedule.occurrences_completed,
            transaction_id=transaction_id,
            amount=amount,
            funding_source=schedule.funding_source,
            funding_delta=funding_delta,
            target_collection=target_collection,
            target_id=target_id,
            target_field=target_field,
            target_delta=target_delta,
        ))

        if recurrence_engine.is_exhausted(schedule):
            logger.info(f"Schedule '{schedule.name}' #{schedule.id} is now exhausted")
        return occurrence

    def last_occurrence(self, schedule_id: str) -> Occurrence:
        """
        The most recent realized occurrence that can be undone.

        Raises:
            NotFoundError: Unknown schedule, or no back-reference to a
                generated transaction.
        """
        self.get(schedule_id)
        occurrence = self.transactions.latest_occurrence(schedule_id)
        if occurrence is None or not occurrence.transaction_id:
            raise NotFoundError(
                "Occurrence", schedule_id,
                message=f"Schedule #{schedule_id} has no realized occurrence to undo",
            )
        return occurrence

    def undo_last_occurrence(self, schedule_id: str) -> Occurrence:
        """
        Roll back the latest realized occurrence of a schedule.

        Decrements the completion counter by one, moves ``next_date`` back
        to the realized date and marks the back-reference undone. The
        caller must reverse the transaction and balance deltas recorded on
        the returned Occurrence.

        Raises:
            NotFoundError: No back-reference exists; nothing is changed.
        """
        occurrence = self.last_occurrence(schedule_id)
        schedule = self.get(schedule_id)

        schedule.occurrences_completed = max(0, schedule.occurrences_completed - 1)
        schedule.next_date = occurrence.due_date
        self.repo.save(schedule)
        self.transactions.mark_occurrence_undone(occurrence)

        logger.info(
            f"Undid occurrence {occurrence.due_date} of '{schedule.name}' #{schedule.id} "
            f"({schedule.occurrences_completed} completed)"
        )
        return occurrence


def validate(schedule: RecurrenceSchedule, check_end: bool = True) -> None:
    """
    Check a schedule definition before it is written.

    Args:
        check_end: Reject an UntilDate end earlier than the next date.

    Raises:
        ValidationError: On the first problem found.
    """
    if not schedule.name or not str(schedule.name).strip():
        raise ValidationError("A name is required", field="name")
    if schedule.amount is None or schedule.amount <= 0:
        raise ValidationError("Amount must be positive", field="amount")
    if not isinstance(schedule.next_date, date):
        raise ValidationError("A next date is required", field="next_date")
    if schedule.occurrences_completed < 0:
        raise ValidationError("Completed occurrences cannot be negative", field="occurrences_completed")

    termination = schedule.termination
    if isinstance(termination, UntilDate):
        if not isinstance(termination.end, date):
            raise ValidationError("An end date is required", field="termination")
        if check_end and termination.end < schedule.next_date:
            raise ValidationError("End date is before the next date", field="termination")
    elif isinstance(termination, OccurrenceCount):
        if termination.total < 1:
            raise ValidationError("Occurrence count must be at least 1", field="termination")
    elif not isinstance(termination, Indefinite):
        raise ValidationError(f"Unknown termination policy {termination!r}", field="termination")

    if not isinstance(schedule.obligation_kind, ObligationKind):
        raise ValidationError(f"Unknown obligation kind {schedule.obligation_kind!r}", field="obligation_kind")
    if schedule.obligation_kind != ObligationKind.PREDICTED_INCOME and not schedule.obligation_id:
        raise ValidationError("A payment schedule must reference what it pays", field="obligation_id")

    source = schedule.funding_source
    if source is not None and not isinstance(source, (Cash, BankAccount, CreditCard)):
        raise ValidationError(f"Unknown funding source {source!r}", field="funding_source")
    if isinstance(source, (BankAccount, CreditCard)) and not source.id:
        raise ValidationError("Funding source is missing its account id", field="funding_source")
