"""
services/ledger_services.py
---------------------------
Wires the repositories and services of one user around a ledger store.
"""

from dataclasses import dataclass

from repositories.account_repo import AccountRepository
from repositories.ledger_store import LedgerStore, PostgresLedgerStore
from repositories.schedule_repo import ScheduleRepository
from repositories.transaction_repo import TransactionRepository
from services.autopay_service import AutoPayService
from services.obligation_service import ObligationService
from services.schedule_service import ScheduleService


@dataclass
class LedgerServices:
    store: LedgerStore
    accounts: AccountRepository
    transactions: TransactionRepository
    schedules: ScheduleService
    obligations: ObligationService
    autopay: AutoPayService


def for_store(store: LedgerStore) -> LedgerServices:
    accounts = AccountRepository(store)
    transactions = TransactionRepository(store)
    schedules = ScheduleService(ScheduleRepository(store), transactions)
    obligations = ObligationService(accounts, schedules)
    autopay = AutoPayService(accounts, schedules, transactions, obligations)
    return LedgerServices(store, accounts, transactions, schedules, obligations, autopay)


def for_user(telegram_id: int) -> LedgerServices:
    """Services over the Postgres ledger of a Telegram user."""
    return for_store(PostgresLedgerStore(telegram_id))
