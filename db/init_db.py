"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from db.connection import transaction
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Users table: allowed Telegram users and their alert preferences
CREATE TABLE IF NOT EXISTS users (
    id              SERIAL PRIMARY KEY,
    telegram_id     BIGINT UNIQUE NOT NULL,
    first_name      VARCHAR(100),
    currency        VARCHAR(5) DEFAULT 'EUR',
    alert_days      INT NOT NULL DEFAULT 7 CHECK (alert_days >= 0),
    upcoming_days   INT NOT NULL DEFAULT 30 CHECK (upcoming_days >= 0),
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Ledger records: one JSON document per record, keyed by collection + id
-- and scoped per user. Collections: cash, bank_accounts, credit_cards,
-- loans, reserved_funds, schedules, transactions, occurrences.
CREATE TABLE IF NOT EXISTS ledger_records (
    user_id         BIGINT NOT NULL,
    collection      VARCHAR(50) NOT NULL,
    record_id       VARCHAR(64) NOT NULL,
    data            JSONB NOT NULL,
    version         INT NOT NULL DEFAULT 1,
    created_at      TIMESTAMPTZ DEFAULT NOW(),
    updated_at      TIMESTAMPTZ DEFAULT NOW(),
    PRIMARY KEY (user_id, collection, record_id)
);

-- Indexes for faster queries
CREATE INDEX IF NOT EXISTS idx_ledger_collection ON ledger_records(user_id, collection);
CREATE INDEX IF NOT EXISTS idx_ledger_schedule_ref
    ON ledger_records(user_id, (data->>'schedule_id'))
    WHERE collection IN ('occurrences', 'transactions');
"""


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    try:
        with transaction() as conn, conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
    except Exception as e:
        logger.error(f"Failed to initialize schema: {e}")
        raise
    logger.info("Database schema initialized successfully.")


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("✅ Database schema created successfully.")
