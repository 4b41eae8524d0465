"""
repositories/account_repo.py
----------------------------
Data access layer for balance holders (cash, bank accounts, credit cards)
and the obligation source records (loans, credit cards, reserved funds).
"""

from typing import Optional

from models.account import CASH_KEY, AccountSnapshots
from models.payment_source import BankAccount, Cash, CreditCard, PaymentSourceRef
from repositories.ledger_store import LedgerStore
from utils.logger import get_logger

logger = get_logger(__name__)

CASH = "cash"
BANK_ACCOUNTS = "bank_accounts"
CREDIT_CARDS = "credit_cards"
LOANS = "loans"
RESERVED_FUNDS = "reserved_funds"


def balance_location(ref: PaymentSourceRef) -> tuple[str, str]:
    """(collection, record_id) holding the balance of a funding source."""
    if isinstance(ref, Cash):
        return CASH, CASH_KEY
    if isinstance(ref, BankAccount):
        return BANK_ACCOUNTS, ref.id
    if isinstance(ref, CreditCard):
        return CREDIT_CARDS, ref.id
    raise TypeError(f"Unsupported payment source {ref!r}")


class AccountRepository:
    """Reads and writes balances and obligation source records."""

    def __init__(self, store: LedgerStore):
        self.store = store

    # ── SNAPSHOTS ─────────────────────────────────────────

    def load_snapshots(self) -> AccountSnapshots:
        """Read every funding source balance of the user in one pass."""
        snapshots = AccountSnapshots()

        cash = self.store.get(CASH, CASH_KEY)
        if cash:
            snapshots.cash = float(cash.get("balance") or 0)
            snapshots.versions[(CASH, CASH_KEY)] = cash["version"]

        for collection, target in ((BANK_ACCOUNTS, snapshots.bank_accounts),
                                   (CREDIT_CARDS, snapshots.credit_cards)):
            for record in self.store.list(collection):
                target[record["id"]] = float(record.get("balance") or 0)
                snapshots.versions[(collection, record["id"])] = record["version"]
                snapshots.names[(collection, record["id"])] = record.get("name") or record["id"]

        return snapshots

    # ── BALANCES ──────────────────────────────────────────

    def read_balance(self, collection: str, record_id: str, field: str = "balance") -> tuple[float, int]:
        """
        Read the current balance and version of a record.

        Returns:
            (balance, version); a missing cash record reads as (0.0, 0).
        """
        record = self.store.get(collection, record_id)
        if record is None:
            return 0.0, 0
        return float(record.get(field) or 0), record["version"]

    def write_balance(
        self,
        collection: str,
        record_id: str,
        new_balance: float,
        expected_version: Optional[int],
        field: str = "balance",
        **extra,
    ) -> int:
        """
        Write a balance back as a whole new value.

        Args:
            expected_version: Version read just before the mutation.
            extra: Additional fields to set on the record (e.g. dates).

        Returns:
            The record's new version.
        """
        record = self.store.get(collection, record_id) or {"id": record_id}
        record[field] = round(new_balance, 2)
        record.update(extra)
        stored = self.store.put(collection, record, expected_version=expected_version)
        logger.info(f"{collection}/{record_id} {field} -> {record[field]:.2f}")
        return stored["version"]

    # ── SOURCE RECORDS ────────────────────────────────────

    def get_record(self, collection: str, record_id: str) -> Optional[dict]:
        return self.store.get(collection, str(record_id))

    def list_loans(self) -> list[dict]:
        return self.store.list(LOANS)

    def list_credit_cards(self) -> list[dict]:
        return self.store.list(CREDIT_CARDS)

    def list_reserved_funds(self) -> list[dict]:
        return self.store.list(RESERVED_FUNDS)
