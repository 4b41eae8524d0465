"""
models/payment_source.py
------------------------
Funding source references for automated payments.

A reference is a lookup key, never an owner of the balance: it is resolved
against current balances at processing time, since balances may have moved
since the schedule was created.
"""

from dataclasses import dataclass
from typing import Optional, Union

from utils.exceptions import InsufficientDataError


@dataclass(frozen=True)
class Cash:
    """Cash in hand (a single balance per user)."""

    tag = "cash"

    @property
    def account_id(self) -> Optional[str]:
        return None

    def __str__(self) -> str:
        return "Cash in hand"


@dataclass(frozen=True)
class BankAccount:
    """A bank account, identified by its record id."""

    id: str
    tag = "bank_account"

    @property
    def account_id(self) -> Optional[str]:
        return self.id

    def __str__(self) -> str:
        return f"Bank account #{self.id}"


@dataclass(frozen=True)
class CreditCard:
    """A credit card used as a funding source (payments become charges)."""

    id: str
    tag = "credit_card"

    @property
    def account_id(self) -> Optional[str]:
        return self.id

    def __str__(self) -> str:
        return f"Credit card #{self.id}"


PaymentSourceRef = Union[Cash, BankAccount, CreditCard]

# Record tags accepted for cash; older rows used 'cash_in_hand'.
_CASH_TAGS = {"cash", "cash_in_hand"}
_BANK_TAGS = {"bank_account", "bank"}
_CARD_TAGS = {"credit_card", "card"}


def from_record(method: Optional[str], method_id=None) -> Optional[PaymentSourceRef]:
    """
    Build a reference from the (connected_payment_source,
    connected_payment_source_id) pair stored on a record.

    Returns:
        The reference, or None when no source is configured.

    Raises:
        InsufficientDataError: Unknown tag, or an account variant without id.
    """
    if method is None or method == "":
        return None

    tag = str(method).strip().lower()
    if tag in _CASH_TAGS:
        return Cash()

    account_id = None if method_id in (None, "") else str(method_id)
    if tag in _BANK_TAGS:
        if account_id is None:
            raise InsufficientDataError("Bank account source has no account id")
        return BankAccount(account_id)
    if tag in _CARD_TAGS:
        if account_id is None:
            raise InsufficientDataError("Credit card source has no card id")
        return CreditCard(account_id)

    raise InsufficientDataError(f"Unknown payment source '{method}'")


def to_record(ref: Optional[PaymentSourceRef]) -> dict:
    """Flatten a reference back into its two record fields."""
    if ref is None:
        return {"connected_payment_source": None, "connected_payment_source_id": None}
    return {
        "connected_payment_source": ref.tag,
        "connected_payment_source_id": ref.account_id,
    }
