"""
services/autopay_service.py
---------------------------
Executes due obligations against their funding sources.

A batch is processed strictly one item at a time. Each item reads the
balances it touches right before writing them back with a version check,
so two payments drawing from the same cash balance never overwrite each
other. Failures are recorded per item and never stop the batch.
"""

from datetime import date
from typing import Iterable, Optional

from models.account import AccountSnapshots
from models.obligation import Obligation, ObligationKind
from models.processing import FailedPayment, ProcessedPayment, ProcessingResult
from models.schedule import Frequency, OccurrenceCount, UntilDate
from models.transaction import LedgerTransaction, Occurrence
from repositories.account_repo import CREDIT_CARDS, AccountRepository, balance_location
from repositories.schedule_repo import termination_from_record
from repositories.transaction_repo import TransactionRepository
from services import payment_source, recurrence_engine
from services.obligation_service import ObligationService, build_obligations, rank_key
from services.schedule_service import ScheduleService
from utils.dates import iso
from utils.exceptions import BotLedgerError, InsufficientDataError, NotFoundError
from utils.logger import get_user_logger


def payment_amount(obligation: Obligation) -> float:
    """
    Configured recurring amount, otherwise the full outstanding balance.

    Raises:
        InsufficientDataError: Neither is a positive number.
    """
    if obligation.payment_amount and obligation.payment_amount > 0:
        return round(obligation.payment_amount, 2)
    if obligation.balance and obligation.balance > 0:
        return round(obligation.balance, 2)
    raise InsufficientDataError(f"No payment amount or outstanding balance for '{obligation.name}'")


class AutoPayService:
    """
    Runs auto-payment batches and undoes scheduled payments.

    Usage:
        result = service.run(date.today())
        print(result)   # "2 processed, 1 failed"
    """

    def __init__(
        self,
        accounts: AccountRepository,
        schedules: ScheduleService,
        transactions: TransactionRepository,
        obligations: ObligationService,
    ):
        self.accounts = accounts
        self.schedules = schedules
        self.transactions = transactions
        self.obligations = obligations
        self.log = get_user_logger(__name__, accounts.store.user_id)

    # ── BATCH ─────────────────────────────────────────────

    def collect_due(self, today: date) -> list[Obligation]:
        """
        Obligations due today or earlier that have an automatic payment,
        plus income deposits that are due.
        """
        sources = self.obligations.gather_sources()
        due = [
            o for o in build_obligations(sources, today)
            if o.kind != ObligationKind.PREDICTED_INCOME and o.is_due and o.has_auto_payment
        ]
        due.extend(self.obligations.due_income(today))
        for obligation in due:
            obligation.urgent = True
        due.sort(key=rank_key)
        return due

    def run(self, today: date) -> ProcessingResult:
        """Load balances, collect what is due and process it."""
        snapshots = self.accounts.load_snapshots()
        due = self.collect_due(today)
        self.log.info(f"Auto-pay run: {len(due)} due item(s)")
        return self.process_overdue(due, snapshots, today)

    def process_overdue(
        self, obligations: Iterable[Obligation], snapshots: AccountSnapshots, today: date
    ) -> ProcessingResult:
        """
        Pay (or deposit) each obligation in order.

        Args:
            obligations: Due obligations, processed in the given order.
            snapshots: Balances of the user's funding sources. Updated in
                place as items are processed.
            today: Processing date written on the transactions.

        Returns:
            A ProcessingResult holding one entry per input item.
        """
        result = ProcessingResult()

        for obligation in obligations:
            try:
                result.processed.append(self._process_one(obligation, snapshots, today))
            except BotLedgerError as e:
                self.log.warning(f"Auto-pay failed for '{obligation.name}': {e.message}")
                result.failed.append(FailedPayment(
                    id=obligation.source_id, name=obligation.name, reason=e.message, code=e.code,
                ))
            except Exception as e:
                self.log.exception(f"Unexpected auto-pay error for '{obligation.name}'")
                result.failed.append(FailedPayment(
                    id=obligation.source_id, name=obligation.name, reason=str(e), code="UNEXPECTED",
                ))

        self.log.info(f"Auto-pay batch done: {result} ({result.total_amount:.2f} moved)")
        return result

    def _process_one(self, obligation: Obligation, snapshots: AccountSnapshots, today: date) -> ProcessedPayment:
        amount = payment_amount(obligation)
        if obligation.funding_error:
            raise InsufficientDataError(obligation.funding_error)
        handle = payment_source.resolve(obligation.funding_source, snapshots)
        policy = obligation.policy

        # Validate everything that can fail before the first balance moves.
        target = None
        target_extra = {}
        if policy.collection:
            if not obligation.source_id:
                raise InsufficientDataError(f"'{obligation.name}' has no record id")
            target = self.accounts.get_record(policy.collection, obligation.source_id)
            if target is None:
                raise NotFoundError(obligation.kind.value.replace("_", " ").title(), obligation.source_id)
            target_extra = {"last_payment_date": iso(today), "last_auto_payment_date": iso(today)}
            if not obligation.schedule_id:
                target_extra.update(_advance_record(target, policy.due_field, obligation))

        schedule = self.schedules.get(obligation.schedule_id) if obligation.schedule_id else None

        # Funding source: read, apply, write back whole.
        funding_prior, version = self.accounts.read_balance(handle.collection, handle.record_id)
        delta = handle.deposit_delta(amount) if policy.is_deposit else handle.charge_delta(amount)
        funding_new = payment_source.apply_delta(funding_prior, delta)
        new_version = self.accounts.write_balance(handle.collection, handle.record_id, funding_new, version)
        handle.set_balance(funding_new, new_version)

        # Target record: reduce its balance field.
        target_prior = target_new = None
        if target is not None:
            target_prior = float(target.get(policy.balance_field) or 0)
            target_new = payment_source.apply_delta(target_prior, -amount)
            target_version = self.accounts.write_balance(
                policy.collection, obligation.source_id, target_new, target["version"],
                field=policy.balance_field, **target_extra,
            )
            if policy.collection == CREDIT_CARDS and obligation.source_id in snapshots.credit_cards:
                snapshots.credit_cards[obligation.source_id] = target_new
                snapshots.versions[(CREDIT_CARDS, obligation.source_id)] = target_version

        verb = "Auto-deposit" if policy.is_deposit else "Auto-payment"
        txn = self.transactions.add(LedgerTransaction(
            obligation_kind=obligation.kind,
            obligation_id=None if obligation.kind == ObligationKind.PREDICTED_INCOME else obligation.source_id,
            name=obligation.name,
            amount=amount,
            date=today,
            funding_source=handle.ref,
            funding_prior_balance=funding_prior,
            funding_new_balance=funding_new,
            target_prior_balance=target_prior,
            target_new_balance=target_new,
            schedule_id=obligation.schedule_id,
            description=f"{verb} for {obligation.name} ({handle.name})",
        ))

        if schedule is not None:
            self.schedules.complete_occurrence(
                schedule,
                transaction_id=txn.id,
                amount=amount,
                funding_delta=round(funding_new - funding_prior, 2),
                target_collection=policy.collection,
                target_id=obligation.source_id if target is not None else None,
                target_field=policy.balance_field,
                target_delta=round(target_new - target_prior, 2) if target is not None else 0.0,
            )

        self.log.info(f"{verb} '{obligation.name}': {amount:.2f} via {handle.name} "
                    f"({funding_prior:.2f} -> {funding_new:.2f})")
        return ProcessedPayment(
            id=obligation.source_id,
            name=obligation.name,
            amount=amount,
            funding_source=handle.name,
            transaction_id=txn.id,
            schedule_id=obligation.schedule_id,
        )

    # ── UNDO ──────────────────────────────────────────────

    def undo_last_payment(self, schedule_id: str) -> Occurrence:
        """
        Reverse the most recent payment or deposit a schedule produced.

        The funding and target balances get back exactly the deltas that
        were applied, the transaction is marked undone and the schedule's
        counter and next date roll back by one occurrence.

        Raises:
            NotFoundError: Unknown schedule, or nothing to undo. No state
                is changed in that case.
        """
        occurrence = self.schedules.last_occurrence(schedule_id)
        txn = self.transactions.get_by_id(occurrence.transaction_id)
        if txn is None:
            raise NotFoundError("Transaction", occurrence.transaction_id)

        if occurrence.funding_source is not None and occurrence.funding_delta:
            collection, record_id = balance_location(occurrence.funding_source)
            self._reverse(collection, record_id, "balance", occurrence.funding_delta)
        if occurrence.target_collection and occurrence.target_id and occurrence.target_delta:
            self._reverse(occurrence.target_collection, occurrence.target_id,
                          occurrence.target_field or "balance", occurrence.target_delta)

        self.transactions.mark_undone(txn.id)
        self.schedules.undo_last_occurrence(schedule_id)
        self.log.info(f"Undid {txn.type} #{txn.id} of schedule #{schedule_id}")
        return occurrence

    def _reverse(self, collection: str, record_id: str, field: str, delta: float) -> None:
        balance, version = self.accounts.read_balance(collection, record_id, field=field)
        self.accounts.write_balance(
            collection, record_id, payment_source.apply_delta(balance, -delta), version, field=field,
        )


def _advance_record(record: dict, due_field: Optional[str], obligation: Obligation) -> dict:
    """
    Field updates that move a paid record without a schedule to its next
    due date, so the same installment is never collected twice.

    Loans and cards without a frequency recur monthly. A reserved fund
    without one is a one-off and loses its due date. The due date is also
    cleared once the recurring period has ended.
    """
    frequency = obligation.frequency
    if not frequency and obligation.kind != ObligationKind.RESERVED_FUND:
        frequency = Frequency.MONTHLY
    if not frequency:
        return {due_field: None}

    next_due = recurrence_engine.next_occurrence(obligation.due_date, frequency)
    termination = termination_from_record(record)
    updates = {}

    if isinstance(termination, OccurrenceCount):
        completed = int(record.get("recurring_occurrences_completed") or 0) + 1
        updates["recurring_occurrences_completed"] = completed
        if completed >= termination.total:
            next_due = None
    elif isinstance(termination, UntilDate) and next_due > termination.end:
        next_due = None

    updates[due_field] = iso(next_due)
    return updates
