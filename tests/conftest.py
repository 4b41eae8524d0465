"""
Pytest fixtures for the BotLedger test suite.

Provides:
- An in-memory ledger store per test (no PostgreSQL needed)
- The service bundle wired around it
- A fixed "today" and record factories
"""

from datetime import date

import pytest

from models.obligation import ObligationKind
from models.schedule import Frequency, RecurrenceSchedule
from repositories.ledger_store import InMemoryLedgerStore
from services import ledger_services

TODAY = date(2025, 3, 15)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(user_id=42)


@pytest.fixture
def services(store):
    return ledger_services.for_store(store)


@pytest.fixture
def seed(store):
    """Insert a raw record: seed("loans", id="car", balance=500, ...)."""
    def _seed(collection: str, **fields) -> dict:
        return store.put(collection, fields)
    return _seed


@pytest.fixture
def make_schedule():
    """Build an unsaved schedule with sensible defaults."""
    def _make(**overrides) -> RecurrenceSchedule:
        values = dict(
            name="Salary",
            amount=2500.0,
            frequency=Frequency.MONTHLY,
            next_date=TODAY,
            obligation_kind=ObligationKind.PREDICTED_INCOME,
        )
        values.update(overrides)
        return RecurrenceSchedule(**values)
    return _make
