"""
repositories/transaction_repo.py
--------------------------------
Data access layer for ledger transactions and the occurrence
back-references that link a schedule to the transactions it generated.
"""

from datetime import datetime
from typing import Optional

from models import payment_source
from models.obligation import ObligationKind
from models.transaction import LedgerTransaction, Occurrence
from repositories.ledger_store import LedgerStore
from utils.dates import iso, to_date, to_datetime
from utils.exceptions import NotFoundError
from utils.logger import get_logger

logger = get_logger(__name__)

TRANSACTIONS = "transactions"
OCCURRENCES = "occurrences"


class TransactionRepository:
    """Repository for transactions and occurrence records."""

    def __init__(self, store: LedgerStore):
        self.store = store

    # ── TRANSACTIONS ──────────────────────────────────────

    def add(self, txn: LedgerTransaction) -> LedgerTransaction:
        """Persist a new transaction and populate its `id`."""
        txn.created_at = txn.created_at or datetime.now()
        stored = self.store.put(TRANSACTIONS, self._transaction_to_record(txn))
        txn.id = stored["id"]
        logger.info(f"Recorded {txn.type} #{txn.id}: {txn.amount:.2f} for '{txn.name}'")
        return txn

    def get_by_id(self, transaction_id: str) -> Optional[LedgerTransaction]:
        record = self.store.get(TRANSACTIONS, str(transaction_id))
        return self._record_to_transaction(record) if record else None

    def get_all(self, status: Optional[str] = None) -> list[LedgerTransaction]:
        txns = [self._record_to_transaction(r) for r in self.store.list(TRANSACTIONS)]
        if status:
            txns = [t for t in txns if t.status == status]
        return sorted(txns, key=lambda t: (t.date, t.created_at or datetime.min), reverse=True)

    def mark_undone(self, transaction_id: str) -> LedgerTransaction:
        """
        Flag a transaction as undone (kept for the audit trail).

        Raises:
            NotFoundError: Unknown transaction id.
        """
        record = self.store.get(TRANSACTIONS, str(transaction_id))
        if record is None:
            raise NotFoundError("Transaction", transaction_id)
        record["status"] = "undone"
        record["undone_at"] = iso(datetime.now())
        self.store.put(TRANSACTIONS, record, expected_version=record["version"])
        return self._record_to_transaction(record)

    # ── OCCURRENCES ───────────────────────────────────────

    def add_occurrence(self, occurrence: Occurrence) -> Occurrence:
        occurrence.created_at = occurrence.created_at or datetime.now()
        stored = self.store.put(OCCURRENCES, self._occurrence_to_record(occurrence))
        occurrence.id = stored["id"]
        return occurrence

    def latest_occurrence(self, schedule_id: str) -> Optional[Occurrence]:
        """The most recent active occurrence of a schedule, or None."""
        candidates = [
            r for r in self.store.list(OCCURRENCES)
            if r.get("schedule_id") == str(schedule_id) and r.get("status") == "active"
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda r: (int(r.get("sequence") or 0), r.get("created_at") or ""))
        return self._record_to_occurrence(latest)

    def mark_occurrence_undone(self, occurrence: Occurrence) -> None:
        record = self.store.get(OCCURRENCES, occurrence.id)
        if record is None:
            raise NotFoundError("Occurrence", occurrence.id)
        record["status"] = "undone"
        self.store.put(OCCURRENCES, record, expected_version=record["version"])
        occurrence.status = "undone"

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _transaction_to_record(t: LedgerTransaction) -> dict:
        record = {
            "id": t.id,
            "type": t.type,
            "obligation_kind": t.obligation_kind.value,
            "obligation_id": t.obligation_id,
            "name": t.name,
            "amount": t.amount,
            "date": iso(t.date),
            "funding_prior_balance": t.funding_prior_balance,
            "funding_new_balance": t.funding_new_balance,
            "target_prior_balance": t.target_prior_balance,
            "target_new_balance": t.target_new_balance,
            "schedule_id": t.schedule_id,
            "description": t.description,
            "status": t.status,
            "auto_generated": t.auto_generated,
            "undone_at": iso(t.undone_at),
            "created_at": iso(t.created_at),
        }
        record.update(payment_source.to_record(t.funding_source))
        return record

    @staticmethod
    def _record_to_transaction(r: dict) -> LedgerTransaction:
        return LedgerTransaction(
            id=r["id"],
            obligation_kind=ObligationKind(r["obligation_kind"]),
            obligation_id=r.get("obligation_id"),
            name=r.get("name") or "",
            amount=float(r["amount"]),
            date=to_date(r.get("date")),
            funding_source=payment_source.from_record(
                r.get("connected_payment_source"), r.get("connected_payment_source_id")
            ),
            funding_prior_balance=float(r.get("funding_prior_balance") or 0),
            funding_new_balance=float(r.get("funding_new_balance") or 0),
            target_prior_balance=r.get("target_prior_balance"),
            target_new_balance=r.get("target_new_balance"),
            schedule_id=r.get("schedule_id"),
            description=r.get("description"),
            status=r.get("status") or "active",
            auto_generated=bool(r.get("auto_generated", True)),
            undone_at=to_datetime(r.get("undone_at")),
            created_at=to_datetime(r.get("created_at")),
        )

    @staticmethod
    def _occurrence_to_record(o: Occurrence) -> dict:
        record = {
            "id": o.id,
            "schedule_id": o.schedule_id,
            "due_date": iso(o.due_date),
            "sequence": o.sequence,
            "transaction_id": o.transaction_id,
            "amount": o.amount,
            "funding_delta": o.funding_delta,
            "target_collection": o.target_collection,
            "target_id": o.target_id,
            "target_field": o.target_field,
            "target_delta": o.target_delta,
            "status": o.status,
            "created_at": iso(o.created_at),
        }
        record.update(payment_source.to_record(o.funding_source))
        return record

    @staticmethod
    def _record_to_occurrence(r: dict) -> Occurrence:
        return Occurrence(
            id=r["id"],
            schedule_id=r["schedule_id"],
            due_date=to_date(r.get("due_date")),
            sequence=int(r.get("sequence") or 0),
            transaction_id=r.get("transaction_id"),
            amount=float(r.get("amount") or 0),
            funding_source=payment_source.from_record(
                r.get("connected_payment_source"), r.get("connected_payment_source_id")
            ),
            funding_delta=float(r.get("funding_delta") or 0),
            target_collection=r.get("target_collection"),
            target_id=r.get("target_id"),
            target_field=r.get("target_field"),
            target_delta=float(r.get("target_delta") or 0),
            status=r.get("status") or "active",
            created_at=to_datetime(r.get("created_at")),
        )
