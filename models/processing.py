"""
models/processing.py
--------------------
Outcome of one auto-payment batch. Built fresh per run, never persisted.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ProcessedPayment:
    id: Optional[str]
    name: str
    amount: float
    funding_source: str
    transaction_id: Optional[str] = None
    schedule_id: Optional[str] = None


@dataclass
class FailedPayment:
    id: Optional[str]
    name: str
    reason: str
    code: Optional[str] = None


@dataclass
class ProcessingResult:
    """Both lists always cover every input item."""

    processed: list[ProcessedPayment] = field(default_factory=list)
    failed: list[FailedPayment] = field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return len(self.processed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def total_amount(self) -> float:
        return round(sum(p.amount for p in self.processed), 2)

    def __str__(self) -> str:
        return f"{self.processed_count} processed, {self.failed_count} failed"
