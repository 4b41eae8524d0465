"""
repositories/schedule_repo.py
-----------------------------
Data access layer for recurrence schedules.
Maps RecurrenceSchedule objects to and from `schedules` ledger records.
"""

from datetime import datetime
from typing import Optional

from models import payment_source
from models.obligation import ObligationKind
from models.schedule import (
    Indefinite,
    OccurrenceCount,
    RecurrenceSchedule,
    TerminationPolicy,
    UntilDate,
    parse_frequency,
)
from repositories.ledger_store import LedgerStore
from utils.dates import iso, to_date, to_datetime
from utils.exceptions import ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

COLLECTION = "schedules"


class ScheduleRepository:
    """Repository for CRUD operations on schedule records."""

    def __init__(self, store: LedgerStore):
        self.store = store

    # ── CREATE / UPDATE ───────────────────────────────────

    def save(self, schedule: RecurrenceSchedule, check_version: bool = True) -> RecurrenceSchedule:
        """
        Insert or replace a schedule.

        Args:
            schedule: The schedule to persist. New schedules get an id.
            check_version: Reject the write if the stored record changed
                since ``schedule`` was loaded.

        Returns:
            The same object with `id`, `version` and timestamps populated.
        """
        now = datetime.now()
        if schedule.created_at is None:
            schedule.created_at = now
        schedule.updated_at = now

        expected = schedule.version if check_version else None
        stored = self.store.put(COLLECTION, self._schedule_to_record(schedule), expected_version=expected)
        schedule.id = stored["id"]
        schedule.version = stored["version"]
        logger.info(f"Saved schedule '{schedule.name}' #{schedule.id} (v{schedule.version})")
        return schedule

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, schedule_id: str) -> Optional[RecurrenceSchedule]:
        record = self.store.get(COLLECTION, str(schedule_id))
        return self._record_to_schedule(record) if record else None

    def get_all(self, active_only: bool = False) -> list[RecurrenceSchedule]:
        """
        Get the user's schedules ordered by next date.

        Args:
            active_only: If True, skip paused schedules.
        """
        schedules = [self._record_to_schedule(r) for r in self.store.list(COLLECTION)]
        if active_only:
            schedules = [s for s in schedules if s.is_active]
        return sorted(schedules, key=lambda s: (s.next_date, s.name))

    # ── DELETE ────────────────────────────────────────────

    def delete(self, schedule_id: str) -> bool:
        deleted = self.store.delete(COLLECTION, str(schedule_id))
        if deleted:
            logger.info(f"Deleted schedule #{schedule_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _schedule_to_record(s: RecurrenceSchedule) -> dict:
        record = {
            "id": s.id,
            "name": s.name,
            "amount": s.amount,
            "frequency": s.frequency.value,
            "next_date": iso(s.next_date),
            "recurring_duration_type": s.termination.duration_type,
            "recurring_until_date": iso(s.termination.end) if isinstance(s.termination, UntilDate) else None,
            "recurring_occurrences_total": s.termination.total if isinstance(s.termination, OccurrenceCount) else None,
            "recurring_occurrences_completed": s.occurrences_completed,
            "is_active": s.is_active,
            "obligation_kind": s.obligation_kind.value,
            "obligation_id": s.obligation_id,
            "auto_pay": s.auto_pay,
            "notes": s.notes,
            "paused_at": iso(s.paused_at),
            "created_at": iso(s.created_at),
            "updated_at": iso(s.updated_at),
        }
        record.update(payment_source.to_record(s.funding_source))
        return record

    @staticmethod
    def _record_to_schedule(record: dict) -> RecurrenceSchedule:
        """Convert a ledger record to a RecurrenceSchedule domain object."""
        return RecurrenceSchedule(
            id=record["id"],
            name=record.get("name") or "Unnamed",
            amount=float(record.get("amount") or 0),
            frequency=parse_frequency(record.get("frequency")),
            next_date=to_date(record.get("next_date")),
            termination=termination_from_record(record),
            occurrences_completed=int(record.get("recurring_occurrences_completed") or 0),
            is_active=bool(record.get("is_active", True)),
            funding_source=payment_source.from_record(
                record.get("connected_payment_source"),
                record.get("connected_payment_source_id"),
            ),
            obligation_kind=ObligationKind(record.get("obligation_kind") or ObligationKind.PREDICTED_INCOME.value),
            obligation_id=record.get("obligation_id"),
            auto_pay=bool(record.get("auto_pay", True)),
            notes=record.get("notes"),
            paused_at=to_datetime(record.get("paused_at")),
            created_at=to_datetime(record.get("created_at")),
            updated_at=to_datetime(record.get("updated_at")),
            version=int(record.get("version") or 0),
        )


def termination_from_record(record: dict) -> TerminationPolicy:
    """
    Build the termination policy from the recurring_* record fields.

    Raises:
        ValidationError: Unknown duration type or missing bound.
    """
    duration_type = record.get("recurring_duration_type") or "indefinite"

    if duration_type == "indefinite":
        return Indefinite()
    if duration_type == "until_date":
        end = to_date(record.get("recurring_until_date"))
        if end is None:
            raise ValidationError("An end date is required for 'until_date'", field="recurring_until_date")
        return UntilDate(end)
    if duration_type == "occurrences":
        total = record.get("recurring_occurrences_total")
        if total in (None, ""):
            raise ValidationError("A total is required for 'occurrences'", field="recurring_occurrences_total")
        return OccurrenceCount(int(total))

    raise ValidationError(f"Unknown duration type '{duration_type}'", field="recurring_duration_type")
