"""
Tests for date recurrence: next occurrence arithmetic, bounded enumeration
under each termination policy and merged predictions.
"""

from datetime import date, timedelta

import pytest

from models.obligation import ObligationKind
from models.schedule import (
    Frequency,
    Indefinite,
    OccurrenceCount,
    RecurrenceSchedule,
    UntilDate,
)
from services import recurrence_engine
from utils.exceptions import ValidationError


def _schedule(**overrides) -> RecurrenceSchedule:
    values = dict(name="Salary", amount=100.0, frequency=Frequency.WEEKLY, next_date=date(2025, 1, 1), id="s1")
    values.update(overrides)
    return RecurrenceSchedule(**values)


# =============================================================================
# next_occurrence
# =============================================================================


class TestNextOccurrence:

    def test_weekly_adds_seven_days(self):
        d = date(2025, 3, 10)
        assert recurrence_engine.next_occurrence(d, Frequency.WEEKLY) == d + timedelta(days=7)

    def test_biweekly_adds_fourteen_days(self):
        d = date(2025, 12, 25)
        assert recurrence_engine.next_occurrence(d, Frequency.BIWEEKLY) == date(2026, 1, 8)

    def test_monthly_clamps_to_month_end(self):
        assert recurrence_engine.next_occurrence(date(2025, 1, 31), Frequency.MONTHLY) == date(2025, 2, 28)

    def test_monthly_clamps_to_leap_day(self):
        assert recurrence_engine.next_occurrence(date(2024, 1, 31), Frequency.MONTHLY) == date(2024, 2, 29)

    def test_monthly_keeps_day_of_month(self):
        assert recurrence_engine.next_occurrence(date(2025, 3, 15), Frequency.MONTHLY) == date(2025, 4, 15)

    def test_bimonthly_crosses_year_and_clamps(self):
        assert recurrence_engine.next_occurrence(date(2025, 12, 31), Frequency.BIMONTHLY) == date(2026, 2, 28)

    def test_accepts_string_frequency(self):
        assert recurrence_engine.next_occurrence(date(2025, 3, 1), "Monthly") == date(2025, 4, 1)

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValidationError):
            recurrence_engine.next_occurrence(date(2025, 3, 1), "daily")


# =============================================================================
# enumerate_occurrences
# =============================================================================


class TestEnumerateOccurrences:

    def test_indefinite_stops_at_max_count(self):
        schedule = _schedule(termination=Indefinite())
        result = recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 1), 5)
        assert [o.date for o in result] == [date(2025, 1, d) for d in (1, 8, 15, 22, 29)]

    def test_occurrence_count_yields_only_what_is_left(self):
        schedule = _schedule(termination=OccurrenceCount(3), occurrences_completed=2)
        result = recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 1), 10)
        assert len(result) == 1
        assert result[0].date == date(2025, 1, 1)

    def test_exhausted_count_yields_nothing(self):
        schedule = _schedule(termination=OccurrenceCount(3), occurrences_completed=3)
        assert recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 1), 10) == []

    def test_until_date_bound_never_exceeded(self):
        end = date(2025, 6, 1)
        schedule = _schedule(next_date=date(2025, 4, 2), termination=UntilDate(end))
        result = recurrence_engine.enumerate_occurrences(schedule, date(2025, 4, 1), 100)
        assert result
        assert all(o.date <= end for o in result)
        assert result[-1].date == date(2025, 5, 28)

    def test_until_date_boundary_is_included(self):
        schedule = _schedule(
            frequency=Frequency.MONTHLY, next_date=date(2025, 5, 1), termination=UntilDate(date(2025, 6, 1))
        )
        result = recurrence_engine.enumerate_occurrences(schedule, date(2025, 4, 1), 10)
        assert [o.date for o in result] == [date(2025, 5, 1), date(2025, 6, 1)]

    def test_past_dates_are_skipped(self):
        schedule = _schedule(next_date=date(2025, 1, 1))
        result = recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 20), 2)
        assert [o.date for o in result] == [date(2025, 1, 22), date(2025, 1, 29)]
        assert result[0].days_until == 2

    def test_today_counts_as_future(self):
        schedule = _schedule(next_date=date(2025, 1, 20))
        result = recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 20), 1)
        assert result[0].days_until == 0

    def test_zero_max_count(self):
        assert recurrence_engine.enumerate_occurrences(_schedule(), date(2025, 1, 1), 0) == []

    def test_recomputes_from_current_state(self):
        schedule = _schedule()
        first = recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 1), 3)
        second = recurrence_engine.enumerate_occurrences(schedule, date(2025, 1, 1), 3)
        assert first == second


# =============================================================================
# Exhaustion
# =============================================================================


class TestExhaustion:

    def test_indefinite_never_exhausted(self):
        assert not recurrence_engine.is_exhausted(_schedule(occurrences_completed=500))

    def test_count_exhausted(self):
        assert recurrence_engine.is_exhausted(_schedule(termination=OccurrenceCount(2), occurrences_completed=2))

    def test_until_date_exhausted_once_next_date_passes_end(self):
        schedule = _schedule(next_date=date(2025, 6, 2), termination=UntilDate(date(2025, 6, 1)))
        assert recurrence_engine.is_exhausted(schedule)

    def test_remaining_only_for_count_policy(self):
        assert recurrence_engine.remaining_occurrences(_schedule()) is None
        counted = _schedule(termination=OccurrenceCount(5), occurrences_completed=2)
        assert recurrence_engine.remaining_occurrences(counted) == 3


# =============================================================================
# predict / predict_income
# =============================================================================


class TestPredict:

    def test_merged_sorted_and_truncated(self):
        a = _schedule(id="a", name="A", next_date=date(2025, 1, 3))
        b = _schedule(id="b", name="B", next_date=date(2025, 1, 1))
        result = recurrence_engine.predict([a, b], date(2025, 1, 1), prediction_count=3)
        assert [(p.schedule_id, p.date) for p in result] == [
            ("b", date(2025, 1, 1)),
            ("a", date(2025, 1, 3)),
            ("b", date(2025, 1, 8)),
        ]

    def test_paused_schedules_left_out(self):
        paused = _schedule(is_active=False)
        assert recurrence_engine.predict([paused], date(2025, 1, 1)) == []

    def test_income_only_skips_payment_schedules(self):
        income = _schedule(id="in")
        payment = _schedule(id="out", obligation_kind=ObligationKind.LOAN, obligation_id="car")
        result = recurrence_engine.predict_income([income, payment], date(2025, 1, 1), 4)
        assert {p.schedule_id for p in result} == {"in"}
        assert len(result) == 4
