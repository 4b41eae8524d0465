"""
Tests for ScheduleService: validated writes, pause/resume, occurrence
realization and the compensating undo.
"""

from datetime import date

import pytest

from models.obligation import ObligationKind
from models.payment_source import BankAccount, Cash
from models.schedule import Frequency, OccurrenceCount, UntilDate
from repositories.schedule_repo import COLLECTION
from utils.exceptions import ConcurrentModificationError, NotFoundError, ValidationError


# =============================================================================
# Create / validate
# =============================================================================


class TestCreate:

    def test_create_assigns_id_and_version(self, services, make_schedule):
        saved = services.schedules.create(make_schedule(funding_source=Cash()))
        assert saved.id
        assert saved.version == 1
        assert services.schedules.get(saved.id).name == "Salary"

    def test_string_frequency_is_parsed(self, services, make_schedule):
        saved = services.schedules.create(make_schedule(frequency="biweekly"))
        assert saved.frequency == Frequency.BIWEEKLY

    def test_termination_round_trips_through_store(self, services, make_schedule):
        saved = services.schedules.create(make_schedule(termination=OccurrenceCount(6)))
        loaded = services.schedules.get(saved.id)
        assert loaded.termination == OccurrenceCount(6)

    @pytest.mark.parametrize("overrides, field", [
        ({"amount": 0}, "amount"),
        ({"name": "  "}, "name"),
        ({"next_date": None}, "next_date"),
        ({"termination": UntilDate(date(2025, 1, 1))}, "termination"),
        ({"termination": OccurrenceCount(0)}, "termination"),
        ({"obligation_kind": ObligationKind.LOAN}, "obligation_id"),
        ({"funding_source": BankAccount("")}, "funding_source"),
    ])
    def test_invalid_definitions_block_the_write(self, services, store, make_schedule, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            services.schedules.create(make_schedule(**overrides))
        assert exc_info.value.field == field
        assert store.list(COLLECTION) == []

    def test_unknown_frequency_rejected(self, services, store, make_schedule):
        with pytest.raises(ValidationError):
            services.schedules.create(make_schedule(frequency="daily"))
        assert store.list(COLLECTION) == []

    def test_auto_pay_without_source_is_allowed(self, services, make_schedule):
        saved = services.schedules.create(make_schedule(auto_pay=True, funding_source=None))
        assert saved.funding_source is None


# =============================================================================
# Update / delete / toggle
# =============================================================================


class TestLifecycle:

    def test_update_patches_fields(self, services, make_schedule):
        saved = services.schedules.create(make_schedule())
        updated = services.schedules.update(saved.id, amount=2600.0, frequency="weekly")
        assert updated.amount == 2600.0
        assert updated.frequency == Frequency.WEEKLY
        assert updated.version == 2

    def test_update_rejects_counter_field(self, services, make_schedule):
        saved = services.schedules.create(make_schedule())
        with pytest.raises(ValidationError):
            services.schedules.update(saved.id, occurrences_completed=5)

    def test_update_validates_result(self, services, make_schedule):
        saved = services.schedules.create(make_schedule())
        with pytest.raises(ValidationError):
            services.schedules.update(saved.id, amount=-1)
        assert services.schedules.get(saved.id).amount == 2500.0

    def test_exhausted_until_date_schedule_can_be_renamed(self, services, seed, make_schedule, today):
        seed("cash", id="cash", balance=5000)
        saved = services.schedules.create(make_schedule(
            funding_source=Cash(), termination=UntilDate(date(2025, 3, 25)),
        ))
        services.autopay.run(today)
        assert services.schedules.get(saved.id).next_date == date(2025, 4, 15)

        renamed = services.schedules.update(saved.id, name="Old salary", notes="ended")

        assert renamed.name == "Old salary"
        assert renamed.notes == "ended"
        with pytest.raises(ValidationError):
            services.schedules.update(saved.id, next_date=date(2025, 5, 1))

    def test_get_unknown_raises(self, services):
        with pytest.raises(NotFoundError):
            services.schedules.get("missing")

    def test_delete(self, services, make_schedule):
        saved = services.schedules.create(make_schedule())
        assert services.schedules.delete(saved.id)
        assert not services.schedules.delete(saved.id)

    def test_pause_and_resume(self, services, make_schedule):
        saved = services.schedules.create(make_schedule())

        paused = services.schedules.toggle(saved.id, pause=True)
        assert not paused.is_active
        assert paused.paused_at is not None
        assert services.schedules.list_active() == []

        resumed = services.schedules.toggle(saved.id, pause=False)
        assert resumed.is_active
        assert resumed.paused_at is None
        assert [s.id for s in services.schedules.list_active()] == [saved.id]

    def test_stale_copy_cannot_overwrite(self, services, make_schedule):
        saved = services.schedules.create(make_schedule())
        first = services.schedules.get(saved.id)
        second = services.schedules.get(saved.id)

        first.notes = "edited"
        services.schedules.repo.save(first)
        second.notes = "stale"
        with pytest.raises(ConcurrentModificationError):
            services.schedules.repo.save(second)

    def test_find_for_obligation(self, services, make_schedule):
        saved = services.schedules.create(
            make_schedule(name="Car", obligation_kind=ObligationKind.LOAN, obligation_id="car")
        )
        assert services.schedules.find_for_obligation(ObligationKind.LOAN, "car").id == saved.id
        assert services.schedules.find_for_obligation(ObligationKind.LOAN, "house") is None


# =============================================================================
# Occurrences
# =============================================================================


class TestOccurrences:

    def test_complete_advances_counter_and_date(self, services, make_schedule, today):
        schedule = services.schedules.create(make_schedule(termination=OccurrenceCount(3)))

        occurrence = services.schedules.complete_occurrence(schedule, "txn-1", 2500.0, funding_delta=2500.0)

        stored = services.schedules.get(schedule.id)
        assert stored.occurrences_completed == 1
        assert stored.next_date == date(2025, 4, 15)
        assert occurrence.due_date == today
        assert occurrence.sequence == 1
        assert services.transactions.latest_occurrence(schedule.id).transaction_id == "txn-1"

    def test_undo_rolls_back_one_occurrence(self, services, make_schedule, today):
        schedule = services.schedules.create(make_schedule())
        services.schedules.complete_occurrence(schedule, "txn-1", 2500.0)
        services.schedules.complete_occurrence(schedule, "txn-2", 2500.0)

        undone = services.schedules.undo_last_occurrence(schedule.id)

        stored = services.schedules.get(schedule.id)
        assert undone.transaction_id == "txn-2"
        assert stored.occurrences_completed == 1
        assert stored.next_date == date(2025, 4, 15)
        assert services.transactions.latest_occurrence(schedule.id).transaction_id == "txn-1"

    def test_undo_without_back_reference_changes_nothing(self, services, make_schedule):
        schedule = services.schedules.create(make_schedule())
        before = services.schedules.get(schedule.id)

        with pytest.raises(NotFoundError):
            services.schedules.undo_last_occurrence(schedule.id)

        after = services.schedules.get(schedule.id)
        assert after.occurrences_completed == before.occurrences_completed
        assert after.version == before.version

    def test_undo_unknown_schedule(self, services):
        with pytest.raises(NotFoundError):
            services.schedules.undo_last_occurrence("missing")
