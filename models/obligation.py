"""
models/obligation.py
--------------------
Derived, transient view of an amount owed by or to the user.
Obligations are rebuilt from raw records on every read and never persisted.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from models.payment_source import PaymentSourceRef


class ObligationKind(str, Enum):
    LOAN = "loan"
    CREDIT_CARD = "credit_card"
    RESERVED_FUND = "reserved_fund"
    PREDICTED_INCOME = "predicted_income"


@dataclass(frozen=True)
class ObligationPolicy:
    """
    How realizing an obligation moves money.

    Attributes:
        is_deposit: True when the funding source receives the amount
            (income), False when it pays it out.
        collection: Ledger collection holding the target balance record,
            or None when there is no target balance to reduce.
        balance_field: Field of the target record that is reduced.
        due_field: Field of the target record that holds its due date.
    """
    is_deposit: bool
    collection: Optional[str]
    balance_field: Optional[str]
    due_field: Optional[str]


OBLIGATION_POLICY: dict[ObligationKind, ObligationPolicy] = {
    ObligationKind.LOAN: ObligationPolicy(False, "loans", "balance", "next_payment_date"),
    ObligationKind.CREDIT_CARD: ObligationPolicy(False, "credit_cards", "balance", "due_date"),
    ObligationKind.RESERVED_FUND: ObligationPolicy(False, "reserved_funds", "amount", "due_date"),
    ObligationKind.PREDICTED_INCOME: ObligationPolicy(True, None, None, None),
}


@dataclass
class AlertSettings:
    """
    Warning window used for urgency classification.

    Attributes:
        default_days: Obligations due within this many days are urgent.
        upcoming_days: Non-urgent obligations are listed up to this horizon.
    """
    default_days: int = 7
    upcoming_days: int = 30


@dataclass
class Obligation:
    """
    One obligation in the ranked dashboard list.

    Attributes:
        kind: Source kind of the obligation.
        source_id: Canonical string id of the source record (or None).
        name: Display name.
        amount: Amount shown to the user (payment amount or balance).
        due_date: Date the obligation falls due.
        days_until: due_date - today in whole days (negative = overdue).
        urgent: Overdue, or due within the warning window.
        payment_amount: Configured recurring payment amount, if any.
        balance: Outstanding balance of the source record, if any.
        funding_source: Where an automated payment is drawn from.
        schedule_id: Recurrence schedule that produced this obligation.
        frequency: Recurrence of a non-scheduled record (e.g. a loan).
        funding_error: Why a configured funding source could not be read.
    """
    kind: ObligationKind
    source_id: Optional[str]
    name: str
    amount: float
    due_date: date
    days_until: int
    urgent: bool = False
    payment_amount: Optional[float] = None
    balance: Optional[float] = None
    funding_source: Optional[PaymentSourceRef] = None
    schedule_id: Optional[str] = None
    frequency: Optional[str] = None
    funding_error: Optional[str] = None

    @property
    def is_overdue(self) -> bool:
        return self.days_until < 0

    @property
    def is_due(self) -> bool:
        """Due today or overdue."""
        return self.days_until <= 0

    @property
    def has_auto_payment(self) -> bool:
        return self.funding_source is not None or self.funding_error is not None

    @property
    def policy(self) -> ObligationPolicy:
        return OBLIGATION_POLICY[self.kind]

    def __str__(self) -> str:
        if self.days_until < 0:
            when = f"{-self.days_until}d overdue"
        elif self.days_until == 0:
            when = "today"
        else:
            when = f"in {self.days_until}d"
        return f"{self.name}: {self.amount:.2f} ({when})"
