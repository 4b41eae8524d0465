"""
models/schedule.py
------------------
Domain model for recurrence schedules (recurring income and payments).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from models.obligation import ObligationKind
from models.payment_source import PaymentSourceRef
from utils.exceptions import ValidationError


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"


@dataclass(frozen=True)
class Indefinite:
    """Recurs until deleted or paused."""

    duration_type = "indefinite"


@dataclass(frozen=True)
class UntilDate:
    """Recurs up to and including ``end``."""

    end: date
    duration_type = "until_date"


@dataclass(frozen=True)
class OccurrenceCount:
    """Recurs ``total`` times in all."""

    total: int
    duration_type = "occurrences"


TerminationPolicy = Union[Indefinite, UntilDate, OccurrenceCount]


@dataclass
class RecurrenceSchedule:
    """
    A recurring income or payment definition.

    Attributes:
        name: Friendly name (e.g. 'Salary', 'Car loan').
        amount: Amount realized on every occurrence.
        frequency: How often the schedule recurs.
        next_date: Date of the next occurrence.
        termination: When the schedule stops producing occurrences.
        occurrences_completed: Occurrences realized so far.
        is_active: False while paused; paused schedules are not predicted.
        funding_source: Account debited (payments) or credited (income).
        obligation_kind: What an occurrence realizes.
        obligation_id: Loan, card or fund record paid by this schedule.
        auto_pay: Whether due occurrences are processed automatically.
        id: Ledger record id (None for new schedules).
    """
    name: str
    amount: float
    frequency: Frequency
    next_date: date
    termination: TerminationPolicy = field(default_factory=Indefinite)
    occurrences_completed: int = 0
    is_active: bool = True
    funding_source: Optional[PaymentSourceRef] = None
    obligation_kind: ObligationKind = ObligationKind.PREDICTED_INCOME
    obligation_id: Optional[str] = None
    auto_pay: bool = True
    notes: Optional[str] = None
    id: Optional[str] = None
    paused_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @property
    def is_income(self) -> bool:
        return self.obligation_kind == ObligationKind.PREDICTED_INCOME

    def __str__(self) -> str:
        status = "✅" if self.is_active else "⏸️"
        return (
            f"{status} #{self.id} {self.name}: {self.amount:.2f} "
            f"({self.frequency.value}) - Next: {self.next_date}"
        )


@dataclass(frozen=True)
class PredictedOccurrence:
    """One future occurrence of a schedule."""

    date: date
    days_until: int
    schedule_id: Optional[str]
    name: str
    amount: float
    frequency: Frequency
    auto_pay: bool = True


def parse_frequency(value) -> Frequency:
    """
    Raises:
        ValidationError: Unknown frequency.
    """
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown frequency '{value}'", field="frequency") from None
