"""
Tests for obligation aggregation: id normalization, urgency, filtering,
ordering and the schedule overlay done by ObligationService.
"""

from datetime import timedelta

import pytest

from models.obligation import AlertSettings, ObligationKind
from models.payment_source import BankAccount, Cash
from services.obligation_service import (
    ObligationSources,
    aggregate,
    build_obligations,
    is_urgent,
    normalize_id,
    partition,
)


def _loan(today, days, **fields):
    record = {
        "id": fields.pop("id", f"loan{days}"),
        "name": fields.pop("name", f"Loan due {days}"),
        "balance": 1000,
        "payment_amount": 100,
        "next_payment_date": (today + timedelta(days=days)).isoformat(),
    }
    record.update(fields)
    return record


# =============================================================================
# normalize_id
# =============================================================================


class TestNormalizeId:

    @pytest.mark.parametrize("value, expected", [
        (5, "5"),
        ("abc", "abc"),
        ({"id": 7}, "7"),
        ({"value": "x"}, "x"),
        ({}, None),
        (None, None),
    ])
    def test_shapes(self, value, expected):
        assert normalize_id(value) == expected

    def test_object_with_id_attribute(self):
        class Ref:
            id = 12
        assert normalize_id(Ref()) == "12"

    def test_number_and_string_ids_compare_equal(self):
        assert normalize_id(3) == normalize_id("3")


# =============================================================================
# Urgency, filtering, ordering
# =============================================================================


class TestAggregate:

    def test_urgency_examples(self, today):
        sources = ObligationSources(loans=[_loan(today, 3), _loan(today, 10), _loan(today, -2)])
        result = {o.days_until: o for o in aggregate(sources, 7, 30, today)}

        assert result[3].urgent
        assert not result[10].urgent
        assert result[-2].urgent

    def test_overdue_urgent_regardless_of_warning_days(self, today):
        sources = ObligationSources(loans=[_loan(today, -2)])
        [obligation] = aggregate(sources, 0, 0, today)
        assert obligation.urgent
        assert obligation.is_overdue

    def test_predicate_alone_is_false_for_future_beyond_window(self):
        assert is_urgent(0, 7)
        assert is_urgent(7, 7)
        assert not is_urgent(8, 7)

    def test_non_urgent_kept_only_within_upcoming_window(self, today):
        sources = ObligationSources(loans=[_loan(today, 10), _loan(today, 40)])
        assert [o.days_until for o in aggregate(sources, 7, 10, today)] == [10]
        assert [o.days_until for o in aggregate(sources, 7, 9, today)] == []

    def test_ordered_most_overdue_first(self, today):
        sources = ObligationSources(loans=[_loan(today, 5), _loan(today, -4), _loan(today, 0), _loan(today, -1)])
        assert [o.days_until for o in aggregate(sources, 7, 30, today)] == [-4, -1, 0, 5]

    def test_idempotent(self, today):
        sources = ObligationSources(
            loans=[_loan(today, 2), _loan(today, 2, id="b", name="Another")],
            credit_cards=[{"id": 1, "name": "Visa", "balance": 300, "due_date": today.isoformat()}],
        )
        assert aggregate(sources, 7, 30, today) == aggregate(sources, 7, 30, today)

    def test_partition_keeps_order(self, today):
        sources = ObligationSources(loans=[_loan(today, 1), _loan(today, 20), _loan(today, -3)])
        urgent, upcoming = partition(aggregate(sources, 7, 30, today))
        assert [o.days_until for o in urgent] == [-3, 1]
        assert [o.days_until for o in upcoming] == [20]


# =============================================================================
# Build step
# =============================================================================


class TestBuild:

    def test_records_without_due_date_or_amount_skipped(self, today):
        sources = ObligationSources(loans=[
            _loan(today, 1, next_payment_date=None),
            _loan(today, 1, id="paid", balance=0, payment_amount=0),
        ])
        assert build_obligations(sources, today) == []

    def test_loan_falls_back_to_due_date(self, today):
        record = _loan(today, 1, due_date=today.isoformat())
        del record["next_payment_date"]
        [obligation] = build_obligations(ObligationSources(loans=[record]), today)
        assert obligation.due_date == today

    def test_cleared_next_payment_date_ignores_due_date(self, today):
        record = _loan(today, 1, next_payment_date=None, due_date=today.isoformat())
        assert build_obligations(ObligationSources(loans=[record]), today) == []

    def test_reserved_fund_uses_amount_field(self, today):
        fund = {"id": {"id": 9}, "name": "Holiday", "amount": 250, "due_date": today.isoformat()}
        [obligation] = build_obligations(ObligationSources(reserved_funds=[fund]), today)
        assert obligation.kind == ObligationKind.RESERVED_FUND
        assert obligation.source_id == "9"
        assert obligation.balance == 250
        assert obligation.amount == 250

    def test_payment_amount_shown_over_balance(self, today):
        [obligation] = build_obligations(ObligationSources(loans=[_loan(today, 1)]), today)
        assert obligation.amount == 100
        assert obligation.balance == 1000

    def test_funding_source_read_from_record(self, today):
        record = _loan(today, 1, connected_payment_source="bank", connected_payment_source_id=4)
        [obligation] = build_obligations(ObligationSources(loans=[record]), today)
        assert obligation.funding_source == BankAccount("4")
        assert obligation.has_auto_payment

    def test_malformed_funding_source_is_kept_as_error(self, today):
        record = _loan(today, 1, connected_payment_source="bank_account")
        [obligation] = build_obligations(ObligationSources(loans=[record]), today)
        assert obligation.funding_source is None
        assert "no account id" in obligation.funding_error
        assert obligation.has_auto_payment

    def test_predicted_income_included(self, today, make_schedule):
        schedule = make_schedule(id="s1", next_date=today + timedelta(days=2), funding_source=Cash())
        sources = ObligationSources(schedules=[schedule], prediction_count=3)
        result = build_obligations(sources, today)
        assert [o.kind for o in result] == [ObligationKind.PREDICTED_INCOME] * 3
        assert result[0].days_until == 2
        assert result[0].funding_source == Cash()


# =============================================================================
# ObligationService
# =============================================================================


class TestObligationService:

    def test_schedule_overlays_its_loan(self, services, seed, make_schedule, today):
        seed("loans", id="car", name="Car loan", balance=5000, payment_amount=250,
             next_payment_date=(today + timedelta(days=20)).isoformat())
        schedule = services.schedules.create(make_schedule(
            name="Car loan", amount=300, next_date=today + timedelta(days=2),
            obligation_kind=ObligationKind.LOAN, obligation_id="car", funding_source=Cash(),
        ))

        [loan] = [o for o in services.obligations.obligations(today, AlertSettings())
                  if o.kind == ObligationKind.LOAN]
        assert loan.days_until == 2
        assert loan.payment_amount == 300
        assert loan.schedule_id == schedule.id
        assert loan.funding_source == Cash()
        assert loan.urgent

    def test_paused_schedule_hides_its_loan(self, services, seed, make_schedule, today):
        seed("loans", id="car", name="Car loan", balance=5000, next_payment_date=today.isoformat())
        schedule = services.schedules.create(make_schedule(
            obligation_kind=ObligationKind.LOAN, obligation_id="car", funding_source=Cash(),
        ))
        services.schedules.toggle(schedule.id, pause=True)

        assert services.obligations.obligations(today, AlertSettings()) == []

    def test_dashboard_partitions(self, services, seed, today):
        seed("credit_cards", id="visa", name="Visa", balance=120, due_date=(today + timedelta(days=1)).isoformat())
        seed("reserved_funds", id="tax", name="Tax", amount=800, due_date=(today + timedelta(days=25)).isoformat())

        urgent, upcoming = services.obligations.dashboard(today, AlertSettings(default_days=7, upcoming_days=30))
        assert [o.name for o in urgent] == ["Visa"]
        assert [o.name for o in upcoming] == ["Tax"]

    def test_due_income(self, services, make_schedule, today):
        due = services.schedules.create(make_schedule(name="Salary", next_date=today - timedelta(days=1),
                                                      funding_source=Cash()))
        services.schedules.create(make_schedule(name="Bonus", next_date=today + timedelta(days=1),
                                                funding_source=Cash()))
        services.schedules.create(make_schedule(name="Unfunded", next_date=today))
        manual = services.schedules.create(make_schedule(name="Manual", next_date=today,
                                                         funding_source=Cash(), auto_pay=False))

        result = services.obligations.due_income(today)
        assert [o.schedule_id for o in result] == [due.id]
        assert manual.id not in [o.schedule_id for o in result]
