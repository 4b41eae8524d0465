"""
utils/parsing.py
----------------
Parsers for structured bot command arguments.

Schedule commands use the pipe-separated format:
    /add_income  Salary | 2500 | monthly | bank:acc1 | 2026-11-01 | count:12
    /add_payment loan:car | 320 | monthly | cash | 2026-11-05 | until:2027-06-05
"""

import re
from datetime import date
from typing import Optional

from models import payment_source
from models.obligation import ObligationKind
from models.payment_source import PaymentSourceRef
from models.schedule import (
    Indefinite,
    OccurrenceCount,
    RecurrenceSchedule,
    TerminationPolicy,
    UntilDate,
    parse_frequency,
)
from utils.exceptions import InsufficientDataError, ValidationError

# Short names accepted on the command line for account variants.
_SOURCE_ALIASES = {
    "cash": "cash",
    "bank": "bank_account",
    "bank_account": "bank_account",
    "card": "credit_card",
    "credit_card": "credit_card",
}

_KIND_ALIASES = {
    "loan": ObligationKind.LOAN,
    "card": ObligationKind.CREDIT_CARD,
    "credit_card": ObligationKind.CREDIT_CARD,
    "fund": ObligationKind.RESERVED_FUND,
    "reserved_fund": ObligationKind.RESERVED_FUND,
}


def parse_amount(text: str) -> float:
    """
    Parse a positive amount, ignoring currency symbols ("€12,50" -> 12.5).

    Raises:
        ValidationError: No positive number found.
    """
    cleaned = re.sub(r"[^\d.,]", "", text or "").replace(",", ".")
    try:
        amount = float(cleaned)
    except ValueError:
        raise ValidationError(f"'{text}' is not an amount", field="amount") from None
    if amount <= 0:
        raise ValidationError("Amount must be positive", field="amount")
    return round(amount, 2)


def parse_date(text: Optional[str], default: Optional[date] = None) -> date:
    """
    Parse an ISO date (YYYY-MM-DD); an empty value gives ``default``.

    Raises:
        ValidationError: Malformed date, or empty with no default.
    """
    if not text or not text.strip():
        if default is None:
            raise ValidationError("A date is required (YYYY-MM-DD)", field="next_date")
        return default
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        raise ValidationError(f"'{text.strip()}' is not a date (YYYY-MM-DD)", field="next_date") from None


def parse_payment_source(text: Optional[str]) -> Optional[PaymentSourceRef]:
    """
    "cash", "bank:<id>" or "card:<id>"; "none" or empty means no source.

    Raises:
        ValidationError: Unknown source or missing account id.
    """
    if not text or text.strip().lower() in ("none", "-"):
        return None

    tag, _, account_id = text.strip().partition(":")
    method = _SOURCE_ALIASES.get(tag.strip().lower())
    if method is None:
        raise ValidationError(f"Unknown payment source '{text.strip()}' (use cash, bank:<id> or card:<id>)",
                              field="funding_source")
    try:
        return payment_source.from_record(method, account_id.strip() or None)
    except InsufficientDataError as e:
        raise ValidationError(e.message, field="funding_source") from e


def parse_termination(text: Optional[str]) -> TerminationPolicy:
    """
    "until:YYYY-MM-DD", "count:N" (or "N times"); empty or "indefinite"
    recurs forever.

    Raises:
        ValidationError: Unrecognized policy.
    """
    if not text or text.strip().lower() in ("indefinite", "forever"):
        return Indefinite()

    value = text.strip().lower()
    if value.startswith("until:"):
        end = parse_date(value[len("until:"):])
        return UntilDate(end)

    match = re.fullmatch(r"(?:count:\s*(\d+)|(\d+)\s*times?)", value)
    if match:
        return OccurrenceCount(int(match.group(1) or match.group(2)))

    raise ValidationError(f"Unknown end rule '{text.strip()}' (use until:YYYY-MM-DD or count:N)",
                          field="termination")


def parse_target(text: str) -> tuple[ObligationKind, str]:
    """
    "loan:<id>", "card:<id>" or "fund:<id>".

    Raises:
        ValidationError: Unknown kind or missing id.
    """
    kind_text, _, target_id = (text or "").strip().partition(":")
    kind = _KIND_ALIASES.get(kind_text.strip().lower())
    if kind is None or not target_id.strip():
        raise ValidationError(f"'{text}' is not a target (use loan:<id>, card:<id> or fund:<id>)",
                              field="obligation_id")
    return kind, target_id.strip()


def split_args(text: str, minimum: int) -> list[str]:
    """
    Split a pipe-separated argument string.

    Raises:
        ValidationError: Fewer than ``minimum`` parts.
    """
    parts = [p.strip() for p in (text or "").split("|")]
    if len(parts) < minimum or not all(parts[:minimum]):
        raise ValidationError(f"Expected at least {minimum} parts separated by '|'")
    return parts


def _optional(parts: list[str], index: int) -> Optional[str]:
    return parts[index] if len(parts) > index and parts[index] else None


def parse_income_command(text: str, today: date) -> RecurrenceSchedule:
    """
    Name | amount | frequency | [source] | [next date] | [end rule]

    The next date defaults to today.
    """
    parts = split_args(text, 3)
    return RecurrenceSchedule(
        name=parts[0],
        amount=parse_amount(parts[1]),
        frequency=parse_frequency(parts[2]),
        funding_source=parse_payment_source(_optional(parts, 3)),
        next_date=parse_date(_optional(parts, 4), default=today),
        termination=parse_termination(_optional(parts, 5)),
        obligation_kind=ObligationKind.PREDICTED_INCOME,
    )


def parse_payment_command(text: str, today: date, name: Optional[str] = None) -> RecurrenceSchedule:
    """
    kind:id | amount | frequency | source | [next date] | [end rule]

    Args:
        name: Display name for the schedule; defaults to the target.
    """
    parts = split_args(text, 4)
    kind, target_id = parse_target(parts[0])
    return RecurrenceSchedule(
        name=name or parts[0],
        amount=parse_amount(parts[1]),
        frequency=parse_frequency(parts[2]),
        funding_source=parse_payment_source(parts[3]),
        next_date=parse_date(_optional(parts, 4), default=today),
        termination=parse_termination(_optional(parts, 5)),
        obligation_kind=kind,
        obligation_id=target_id,
    )
