"""
utils/exceptions.py
-------------------
Typed exception hierarchy for the obligations core.

Every error carries a machine-readable ``code`` so handlers and batch
results can report failures without parsing message text.

    BotLedgerError
    ├── ValidationError
    ├── NotFoundError
    ├── InsufficientDataError
    ├── PersistenceError
    │   └── ConcurrentModificationError
    └── ActionInProgressError
"""

from typing import Optional


class BotLedgerError(Exception):
    """Base class for all domain errors."""

    code: str = "BOT_LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BotLedgerError):
    """A schedule definition is malformed. Blocks the write."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(BotLedgerError):
    """A referenced schedule, account or back-reference does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id=None, message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id!r} not found")


class InsufficientDataError(BotLedgerError):
    """A payment amount or funding source cannot be determined."""

    code = "INSUFFICIENT_DATA"


class PersistenceError(BotLedgerError):
    """The ledger store rejected a read or write."""

    code = "PERSISTENCE_ERROR"


class ConcurrentModificationError(PersistenceError):
    """A record changed between read and write (version mismatch)."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, collection: str, record_id: str, expected_version: int):
        self.collection = collection
        self.record_id = record_id
        self.expected_version = expected_version
        super().__init__(
            f"{collection}/{record_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class ActionInProgressError(BotLedgerError):
    """Another guarded action is still running."""

    code = "ACTION_IN_PROGRESS"

    def __init__(self, pending_action: str):
        self.pending_action = pending_action
        super().__init__(f"Another action is in progress: {pending_action}")
