"""
repositories/ledger_store.py
----------------------------
The ledger store: simple get/put/delete/list of JSON records keyed by
(collection, record id), scoped to a single user.

Every record carries a ``version`` that increases on each write. Passing
``expected_version`` to ``put`` turns the write into an optimistic
compare-and-set, which is how concurrent balance updates are detected.
The store promises nothing across records: each call is its own unit of work.
"""

import copy
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import psycopg2
from psycopg2.extras import Json

from db.connection import transaction
from utils.exceptions import ConcurrentModificationError, PersistenceError
from utils.logger import get_logger

logger = get_logger(__name__)

# Keys managed by the store itself, never stored inside the JSON document.
_META_KEYS = ("version",)


def new_record_id() -> str:
    return uuid.uuid4().hex


class LedgerStore(ABC):
    """Per-user record store contract."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[dict]:
        """Return a copy of the record, or None."""

    @abstractmethod
    def list(self, collection: str) -> list[dict]:
        """Return copies of all records in a collection, oldest first."""

    @abstractmethod
    def put(self, collection: str, record: dict, expected_version: Optional[int] = None) -> dict:
        """
        Insert or replace a record as a whole.

        Args:
            collection: Collection name.
            record: The record; an ``id`` is assigned when missing.
            expected_version: When given, the write only succeeds if the
                stored version still equals it (0 = must not exist yet).

        Returns:
            The stored record including its ``id`` and new ``version``.

        Raises:
            ConcurrentModificationError: Version mismatch.
            PersistenceError: The backend rejected the write.
        """

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""


class InMemoryLedgerStore(LedgerStore):
    """Dict-backed store with the same contract (tests and dry runs)."""

    def __init__(self, user_id: int = 0):
        super().__init__(user_id)
        self._collections: dict[str, dict[str, dict]] = {}

    def get(self, collection: str, record_id: str) -> Optional[dict]:
        record = self._collections.get(collection, {}).get(str(record_id))
        return copy.deepcopy(record) if record is not None else None

    def list(self, collection: str) -> list[dict]:
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    def put(self, collection: str, record: dict, expected_version: Optional[int] = None) -> dict:
        records = self._collections.setdefault(collection, {})
        record_id = str(record.get("id") or new_record_id())
        current = records.get(record_id)
        current_version = current["version"] if current else 0

        if expected_version is not None and expected_version != current_version:
            raise ConcurrentModificationError(collection, record_id, expected_version)

        stored = copy.deepcopy(record)
        stored["id"] = record_id
        stored["version"] = current_version + 1
        records[record_id] = stored
        return copy.deepcopy(stored)

    def delete(self, collection: str, record_id: str) -> bool:
        return self._collections.get(collection, {}).pop(str(record_id), None) is not None


class PostgresLedgerStore(LedgerStore):
    """Store backed by the ``ledger_records`` JSONB table."""

    # ── READ ──────────────────────────────────────────────

    def get(self, collection: str, record_id: str) -> Optional[dict]:
        sql = """
            SELECT record_id, data, version FROM ledger_records
            WHERE user_id = %s AND collection = %s AND record_id = %s;
        """
        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (self.user_id, collection, str(record_id)))
                    row = cur.fetchone()
            return self._row_to_record(row) if row else None
        except psycopg2.Error as e:
            logger.error(f"Failed to read {collection}/{record_id}: {e}")
            raise PersistenceError(f"Could not read {collection}/{record_id}") from e

    def list(self, collection: str) -> list[dict]:
        sql = """
            SELECT record_id, data, version FROM ledger_records
            WHERE user_id = %s AND collection = %s
            ORDER BY created_at ASC, record_id ASC;
        """
        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (self.user_id, collection))
                    rows = cur.fetchall()
            return [self._row_to_record(r) for r in rows]
        except psycopg2.Error as e:
            logger.error(f"Failed to list {collection}: {e}")
            raise PersistenceError(f"Could not list {collection}") from e

    # ── WRITE ─────────────────────────────────────────────

    def put(self, collection: str, record: dict, expected_version: Optional[int] = None) -> dict:
        record_id = str(record.get("id") or new_record_id())
        document = {k: v for k, v in record.items() if k not in _META_KEYS}
        document["id"] = record_id
        params = (self.user_id, collection, record_id)

        if expected_version is None:
            sql = """
                INSERT INTO ledger_records (user_id, collection, record_id, data)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, collection, record_id)
                DO UPDATE SET data = EXCLUDED.data,
                              version = ledger_records.version + 1,
                              updated_at = NOW()
                RETURNING version;
            """
            args = (*params, Json(document))
        elif expected_version == 0:
            sql = """
                INSERT INTO ledger_records (user_id, collection, record_id, data)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, collection, record_id) DO NOTHING
                RETURNING version;
            """
            args = (*params, Json(document))
        else:
            sql = """
                UPDATE ledger_records
                SET data = %s, version = version + 1, updated_at = NOW()
                WHERE user_id = %s AND collection = %s AND record_id = %s AND version = %s
                RETURNING version;
            """
            args = (Json(document), *params, expected_version)

        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, args)
                    row = cur.fetchone()
        except psycopg2.Error as e:
            logger.error(f"Failed to write {collection}/{record_id}: {e}")
            raise PersistenceError(f"Could not write {collection}/{record_id}") from e

        if row is None:
            logger.warning(f"Version conflict on {collection}/{record_id} (expected {expected_version})")
            raise ConcurrentModificationError(collection, record_id, expected_version)

        return {**document, "version": row[0]}

    def delete(self, collection: str, record_id: str) -> bool:
        sql = """
            DELETE FROM ledger_records
            WHERE user_id = %s AND collection = %s AND record_id = %s;
        """
        try:
            with transaction() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (self.user_id, collection, str(record_id)))
                    deleted = cur.rowcount > 0
        except psycopg2.Error as e:
            logger.error(f"Failed to delete {collection}/{record_id}: {e}")
            raise PersistenceError(f"Could not delete {collection}/{record_id}") from e
        if deleted:
            logger.info(f"Deleted {collection}/{record_id} for user {self.user_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_record(row: tuple) -> dict:
        """Convert a (record_id, data, version) row to a record dict."""
        record = dict(row[1])
        record["id"] = row[0]
        record["version"] = row[2]
        return record
