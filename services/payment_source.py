"""
services/payment_source.py
--------------------------
Resolves a funding source reference to the balance it points at.

Resolution is a pure lookup against an AccountSnapshots set. The returned
BalanceHandle applies charges and deposits following the balance policy
table and writes the new value back into the snapshot, so later items of
the same batch see it.
"""

from dataclasses import dataclass
from typing import Optional

from models.account import CASH_KEY, AccountSnapshots
from models.payment_source import BankAccount, Cash, CreditCard, PaymentSourceRef
from repositories.account_repo import BANK_ACCOUNTS, CASH, CREDIT_CARDS
from utils.exceptions import InsufficientDataError, NotFoundError


@dataclass(frozen=True)
class BalancePolicy:
    """
    increases_on_charge: True for debt-style holders (a credit card's balance
    grows when it pays for something), False for asset holders.
    """
    increases_on_charge: bool


BALANCE_POLICY: dict[type, BalancePolicy] = {
    Cash: BalancePolicy(increases_on_charge=False),
    BankAccount: BalancePolicy(increases_on_charge=False),
    CreditCard: BalancePolicy(increases_on_charge=True),
}


def apply_delta(balance: float, delta: float) -> float:
    """Add ``delta`` to a balance, clamping the result at zero."""
    return max(0.0, round(balance + delta, 2))


class BalanceHandle:
    """Mutable view of one funding source inside a snapshot set."""

    def __init__(self, ref: PaymentSourceRef, snapshots: AccountSnapshots,
                 collection: str, record_id: str, name: str):
        self.ref = ref
        self.collection = collection
        self.record_id = record_id
        self.name = name
        self._snapshots = snapshots
        self.policy = BALANCE_POLICY[type(ref)]

    @property
    def balance(self) -> float:
        if isinstance(self.ref, Cash):
            return self._snapshots.cash
        if isinstance(self.ref, BankAccount):
            return self._snapshots.bank_accounts[self.record_id]
        return self._snapshots.credit_cards[self.record_id]

    @property
    def version(self) -> Optional[int]:
        return self._snapshots.version_of(self.collection, self.record_id)

    def set_balance(self, value: float, version: Optional[int] = None) -> None:
        """Write a new balance (and record version) into the snapshot."""
        value = round(value, 2)
        if isinstance(self.ref, Cash):
            self._snapshots.cash = value
        elif isinstance(self.ref, BankAccount):
            self._snapshots.bank_accounts[self.record_id] = value
        else:
            self._snapshots.credit_cards[self.record_id] = value
        if version is not None:
            self._snapshots.versions[(self.collection, self.record_id)] = version

    def charge_delta(self, amount: float) -> float:
        """Signed balance change of paying ``amount`` out of this source."""
        return amount if self.policy.increases_on_charge else -amount

    def deposit_delta(self, amount: float) -> float:
        """Signed balance change of receiving ``amount`` into this source."""
        return -amount if self.policy.increases_on_charge else amount

    def __repr__(self) -> str:
        return f"BalanceHandle({self.ref!r}, balance={self.balance:.2f})"


def resolve(ref: Optional[PaymentSourceRef], snapshots: AccountSnapshots) -> BalanceHandle:
    """
    Resolve a funding reference against current balances.

    Raises:
        InsufficientDataError: ``ref`` is missing or malformed.
        NotFoundError: The referenced account is not in the snapshot set.
    """
    if ref is None:
        raise InsufficientDataError("No funding source configured")

    if isinstance(ref, Cash):
        return BalanceHandle(ref, snapshots, CASH, CASH_KEY, "Cash in hand")

    if isinstance(ref, BankAccount):
        if not ref.id:
            raise InsufficientDataError("Bank account source has no account id")
        if ref.id not in snapshots.bank_accounts:
            raise NotFoundError("Bank account", ref.id)
        name = snapshots.names.get((BANK_ACCOUNTS, ref.id), str(ref))
        return BalanceHandle(ref, snapshots, BANK_ACCOUNTS, ref.id, name)

    if isinstance(ref, CreditCard):
        if not ref.id:
            raise InsufficientDataError("Credit card source has no card id")
        if ref.id not in snapshots.credit_cards:
            raise NotFoundError("Credit card", ref.id)
        name = snapshots.names.get((CREDIT_CARDS, ref.id), str(ref))
        return BalanceHandle(ref, snapshots, CREDIT_CARDS, ref.id, name)

    raise InsufficientDataError(f"Unknown funding source {ref!r}")
