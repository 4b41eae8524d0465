"""
services/recurrence_engine.py
-----------------------------
Pure date-recurrence arithmetic: next occurrence of a schedule and bounded
enumeration of its future occurrences under a termination policy.

Nothing here touches storage; callers pass the schedules in.
"""

from datetime import date
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from models.schedule import (
    Frequency,
    OccurrenceCount,
    PredictedOccurrence,
    RecurrenceSchedule,
    UntilDate,
    parse_frequency,
)

# relativedelta clamps to the last day of a shorter month (Jan 31 -> Feb 28).
_STEPS = {
    Frequency.WEEKLY: relativedelta(days=7),
    Frequency.BIWEEKLY: relativedelta(days=14),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.BIMONTHLY: relativedelta(months=2),
}

# Upper bound on generated dates per schedule, past ones included.
MAX_ITERATIONS = 10_000


def next_occurrence(current: date, frequency) -> date:
    """
    Date of the occurrence following ``current``.

    Args:
        current: An occurrence date.
        frequency: A Frequency or its string value.

    Raises:
        ValidationError: Unknown frequency.
    """
    return current + _STEPS[parse_frequency(frequency)]


def days_until(target: date, today: date) -> int:
    return (target - today).days


def remaining_occurrences(schedule: RecurrenceSchedule) -> Optional[int]:
    """Occurrences left under an OccurrenceCount policy, None otherwise."""
    if isinstance(schedule.termination, OccurrenceCount):
        return schedule.termination.total - schedule.occurrences_completed
    return None


def is_exhausted(schedule: RecurrenceSchedule) -> bool:
    """
    True when the termination policy allows no further occurrence.
    Exhaustion is derived, never stored.
    """
    remaining = remaining_occurrences(schedule)
    if remaining is not None and remaining <= 0:
        return True
    if isinstance(schedule.termination, UntilDate) and schedule.next_date is not None:
        return schedule.next_date > schedule.termination.end
    return False


def enumerate_occurrences(
    schedule: RecurrenceSchedule, today: date, max_count: int
) -> list[PredictedOccurrence]:
    """
    Future occurrences of a schedule, soonest first.

    Dates before ``today`` are skipped and do not count. The result never
    holds more than ``max_count`` items, never passes an UntilDate end and
    never exceeds the occurrences an OccurrenceCount policy has left.
    Each call recomputes from the schedule's current state.
    """
    if max_count <= 0 or schedule.next_date is None:
        return []

    limit = max_count
    remaining = remaining_occurrences(schedule)
    if remaining is not None:
        if remaining <= 0:
            return []
        limit = min(limit, remaining)

    end = schedule.termination.end if isinstance(schedule.termination, UntilDate) else None
    occurrences: list[PredictedOccurrence] = []
    current = schedule.next_date

    for _ in range(MAX_ITERATIONS):
        if end is not None and current > end:
            break
        delta = days_until(current, today)
        if delta >= 0:
            occurrences.append(PredictedOccurrence(
                date=current,
                days_until=delta,
                schedule_id=schedule.id,
                name=schedule.name,
                amount=schedule.amount,
                frequency=schedule.frequency,
                auto_pay=schedule.auto_pay,
            ))
            if len(occurrences) >= limit:
                break
        current = next_occurrence(current, schedule.frequency)

    return occurrences


def predict(
    schedules: Iterable[RecurrenceSchedule],
    today: date,
    prediction_count: int = 8,
    income_only: bool = False,
) -> list[PredictedOccurrence]:
    """
    Merge the next occurrences of all active schedules.

    Paused schedules are left out. The merged list is ordered by date and
    truncated to ``prediction_count``.
    """
    predictions: list[PredictedOccurrence] = []
    for schedule in schedules:
        if not schedule.is_active:
            continue
        if income_only and not schedule.is_income:
            continue
        predictions.extend(enumerate_occurrences(schedule, today, prediction_count))

    predictions.sort(key=lambda p: (p.date, p.name, p.schedule_id or ""))
    return predictions[:prediction_count]


def predict_income(
    schedules: Iterable[RecurrenceSchedule], today: date, prediction_count: int = 8
) -> list[PredictedOccurrence]:
    """Upcoming income deposits across active income schedules."""
    return predict(schedules, today, prediction_count, income_only=True)
