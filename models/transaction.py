"""
models/transaction.py
---------------------
Audit records produced when an obligation is realized.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from models.obligation import ObligationKind
from models.payment_source import PaymentSourceRef


@dataclass
class LedgerTransaction:
    """
    One payment or deposit written to the ledger.

    Attributes:
        obligation_kind: Kind of obligation that was realized.
        obligation_id: Canonical id of the loan/card/fund (None for income).
        amount: Amount moved.
        date: Processing date.
        funding_source: Account the amount was drawn from / deposited to.
        funding_prior_balance / funding_new_balance: Funding balance around
            the mutation.
        target_prior_balance / target_new_balance: Obligation balance around
            the mutation (None when there is no target balance).
        schedule_id: Schedule that produced the obligation, if any.
        status: 'active' or 'undone'.
    """
    obligation_kind: ObligationKind
    obligation_id: Optional[str]
    name: str
    amount: float
    date: date
    funding_source: PaymentSourceRef
    funding_prior_balance: float
    funding_new_balance: float
    target_prior_balance: Optional[float] = None
    target_new_balance: Optional[float] = None
    schedule_id: Optional[str] = None
    description: Optional[str] = None
    status: str = "active"
    auto_generated: bool = True
    undone_at: Optional[datetime] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def type(self) -> str:
        return "income" if self.obligation_kind == ObligationKind.PREDICTED_INCOME else "payment"

    @property
    def funding_delta(self) -> float:
        return round(self.funding_new_balance - self.funding_prior_balance, 2)

    @property
    def target_delta(self) -> float:
        if self.target_prior_balance is None or self.target_new_balance is None:
            return 0.0
        return round(self.target_new_balance - self.target_prior_balance, 2)


@dataclass
class Occurrence:
    """
    Back-reference from a realized schedule occurrence to the transaction it
    generated. Undo needs this record to know what to reverse.

    Attributes:
        schedule_id: Owning schedule.
        due_date: The occurrence date that was realized.
        sequence: Value of the completion counter after realization.
        transaction_id: Generated ledger transaction.
        funding_delta / target_delta: Exact balance changes applied.
    """
    schedule_id: str
    due_date: date
    sequence: int
    transaction_id: Optional[str]
    amount: float
    funding_source: Optional[PaymentSourceRef] = None
    funding_delta: float = 0.0
    target_collection: Optional[str] = None
    target_id: Optional[str] = None
    target_field: Optional[str] = None
    target_delta: float = 0.0
    status: str = "active"
    id: Optional[str] = None
    created_at: Optional[datetime] = None
