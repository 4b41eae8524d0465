"""
utils/dates.py
--------------
Date coercion helpers shared by repositories and services.
"""

from datetime import date, datetime
from typing import Optional


def to_date(value) -> Optional[date]:
    """
    Coerce a stored date value to a ``date``.

    Accepts ``date``/``datetime`` objects and ISO strings (a time part is
    ignored). Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def to_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def iso(value) -> Optional[str]:
    """ISO string for a date/datetime, None passes through."""
    return value.isoformat() if value is not None else None
