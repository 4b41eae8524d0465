"""
repositories/user_repo.py
--------------------------
Data access layer for user records and their alert preferences.
"""

from typing import Optional

import psycopg2

from db.connection import transaction
from models.obligation import AlertSettings
from utils.exceptions import PersistenceError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for CRUD operations on the users table."""

    def ensure_user(self, telegram_id: int, first_name: Optional[str] = None) -> dict:
        """
        Insert a user if they don't exist, or return the existing record.
        Uses PostgreSQL's ON CONFLICT (upsert) for atomicity.

        Args:
            telegram_id: The Telegram user ID.
            first_name: Optional first name from Telegram.

        Returns:
            Dict with user data: {'id', 'telegram_id', 'first_name', 'currency'}.
        """
        sql = """
            INSERT INTO users (telegram_id, first_name)
            VALUES (%s, %s)
            ON CONFLICT (telegram_id) DO UPDATE SET first_name = EXCLUDED.first_name
            RETURNING id, telegram_id, first_name, currency;
        """
        try:
            with transaction() as conn, conn.cursor() as cur:
                cur.execute(sql, (telegram_id, first_name))
                row = cur.fetchone()
        except psycopg2.Error as e:
            logger.error(f"Failed to ensure user {telegram_id}: {e}")
            raise PersistenceError(f"Could not register user {telegram_id}") from e

        return {
            "id": row[0],
            "telegram_id": row[1],
            "first_name": row[2],
            "currency": row[3],
        }

    def get_alert_settings(self, telegram_id: int, defaults: AlertSettings) -> AlertSettings:
        """
        The user's warning window, or ``defaults`` for unknown users.
        """
        sql = "SELECT alert_days, upcoming_days FROM users WHERE telegram_id = %s;"
        try:
            with transaction() as conn, conn.cursor() as cur:
                cur.execute(sql, (telegram_id,))
                row = cur.fetchone()
        except psycopg2.Error as e:
            logger.error(f"Failed to read alert settings of {telegram_id}: {e}")
            raise PersistenceError(f"Could not read alert settings of {telegram_id}") from e

        if row is None:
            return defaults
        return AlertSettings(default_days=row[0], upcoming_days=row[1])

    def set_alert_settings(self, telegram_id: int, settings: AlertSettings) -> AlertSettings:
        """
        Store a new warning window.

        Raises:
            ValidationError: Negative day counts.
        """
        if settings.default_days < 0 or settings.upcoming_days < 0:
            raise ValidationError("Day counts cannot be negative", field="alert_days")

        sql = """
            UPDATE users SET alert_days = %s, upcoming_days = %s
            WHERE telegram_id = %s;
        """
        try:
            with transaction() as conn, conn.cursor() as cur:
                cur.execute(sql, (settings.default_days, settings.upcoming_days, telegram_id))
        except psycopg2.Error as e:
            logger.error(f"Failed to update alert settings of {telegram_id}: {e}")
            raise PersistenceError(f"Could not update alert settings of {telegram_id}") from e

        logger.info(f"User {telegram_id} alert window -> {settings.default_days}/{settings.upcoming_days} days")
        return settings
