"""
models/account.py
-----------------
Point-in-time balances of every funding source a user owns.
"""

from dataclasses import dataclass, field
from typing import Optional


CASH_KEY = "cash"


@dataclass
class AccountSnapshots:
    """
    Balances keyed by account id, one mapping per balance holder type.

    Attributes:
        cash: Cash in hand.
        bank_accounts: Bank account id -> balance.
        credit_cards: Credit card id -> outstanding debt.
        versions: (collection, record_id) -> record version at load time.
        names: (collection, record_id) -> display name.
    """
    cash: float = 0.0
    bank_accounts: dict[str, float] = field(default_factory=dict)
    credit_cards: dict[str, float] = field(default_factory=dict)
    versions: dict[tuple[str, str], int] = field(default_factory=dict)
    names: dict[tuple[str, str], str] = field(default_factory=dict)

    def version_of(self, collection: str, record_id: str) -> Optional[int]:
        return self.versions.get((collection, record_id))
