"""Tests for schedule loading and the optimistic slot toggle."""
from datetime import date
from unittest.mock import Mock

import pytest

from medichannel import config
from medichannel.errors import InvalidSlotError, PersistenceError, SlotUnavailableError
from medichannel.models import TimeSlot
from medichannel.schedule import OptimisticUpdate, ScheduleManager, default_schedule

DATE = "2025-01-15"


@pytest.fixture
def manager(data_access, perera):
    return ScheduleManager(data_access, perera.id)


class TestLoad:

    def test_default_template(self, manager):
        schedule = manager.load(DATE)
        assert schedule.id is None
        assert [s.time for s in schedule.time_slots] == config.DEFAULT_SCHEDULE_SLOTS
        assert all(s.is_available and not s.is_booked for s in schedule.time_slots)

    def test_booked_flag_from_appointment(self, manager, data_access, john, perera):
        data_access.create_appointment(john.id, perera.id, DATE, "09:00", 2500)
        slot = manager.load(DATE).find_slot("09:00")
        assert slot.is_booked is True
        assert slot.patient_id == john.id
        assert slot.patient_name == "John Silva"

    def test_cancel_frees_slot(self, manager, data_access, john, perera):
        apt = data_access.create_appointment(john.id, perera.id, DATE, "09:00", 2500)
        data_access.cancel_appointment(apt.id)
        slot = manager.load(DATE).find_slot("09:00")
        assert slot.is_booked is False
        assert slot.patient_id is None

    def test_stored_booked_flags_ignored(self, manager, data_access, perera):
        data_access.save_doctor_schedule(
            perera.id, DATE, [TimeSlot(time="10:00", is_booked=True, patient_id="ghost")]
        )
        slot = manager.load(DATE).find_slot("10:00")
        assert slot.is_booked is False
        assert slot.patient_id is None

    def test_other_doctor_bookings_ignored(self, manager, data_access, john, fernando):
        data_access.create_appointment(john.id, fernando.id, DATE, "09:00", 3000)
        assert manager.load(DATE).find_slot("09:00").is_booked is False


class TestToggle:

    def test_toggle_persists(self, manager, data_access, perera):
        manager.load(DATE)
        assert manager.toggle_slot("10:00") is True
        assert manager.schedule.id is not None
        assert manager.schedule.find_slot("10:00").is_available is False

        stored = data_access.get_doctor_schedule(perera.id, DATE)
        assert stored.find_slot("10:00").is_available is False

    def test_toggle_twice_restores(self, manager):
        manager.load(DATE)
        manager.toggle_slot("10:00")
        manager.toggle_slot("10:00")
        assert manager.schedule.find_slot("10:00").is_available is True
        assert manager.load(DATE).find_slot("10:00").is_available is True

    def test_booked_slot_cannot_toggle(self, manager, data_access, john, perera):
        data_access.create_appointment(john.id, perera.id, DATE, "09:00", 2500)
        manager.load(DATE)
        with pytest.raises(SlotUnavailableError):
            manager.toggle_slot("09:00")

    def test_requires_loaded_schedule(self, manager):
        with pytest.raises(InvalidSlotError):
            manager.toggle_slot("09:00")

    def test_unknown_slot(self, manager):
        manager.load(DATE)
        with pytest.raises(InvalidSlotError):
            manager.toggle_slot("12:00")

    def test_failed_save_reloads_stored_schedule(self, manager, data_access, monkeypatch):
        manager.load(DATE)
        monkeypatch.setattr(
            data_access, "save_doctor_schedule", Mock(side_effect=PersistenceError("down"))
        )

        assert manager.toggle_slot("10:00") is False
        assert manager.schedule.find_slot("10:00").is_available is True

    def test_failed_reload_restores_snapshot(self, manager, data_access, monkeypatch):
        manager.load(DATE)
        before = manager.schedule
        monkeypatch.setattr(
            data_access, "save_doctor_schedule", Mock(side_effect=PersistenceError("down"))
        )
        monkeypatch.setattr(
            data_access, "get_doctor_schedule", Mock(side_effect=PersistenceError("down"))
        )

        assert manager.toggle_slot("10:00") is False
        assert manager.schedule == before


class TestOptimisticUpdate:

    def test_commit_success(self):
        rollback = Mock()
        update = OptimisticUpdate(apply=Mock(), commit=Mock(return_value="ok"), rollback=rollback)
        assert update.run() is True
        rollback.assert_not_called()

    def test_commit_failure_rolls_back(self):
        calls = []
        update = OptimisticUpdate(
            apply=lambda: calls.append("apply"),
            commit=Mock(side_effect=PersistenceError("down")),
            rollback=lambda: calls.append("rollback"),
        )
        assert update.run() is False
        assert calls == ["apply", "rollback"]

    def test_other_errors_propagate(self):
        update = OptimisticUpdate(
            apply=Mock(), commit=Mock(side_effect=RuntimeError("bug")), rollback=Mock()
        )
        with pytest.raises(RuntimeError):
            update.run()


def test_default_schedule_accepts_date_objects():
    schedule = default_schedule("d1", date(2025, 1, 15))
    assert schedule.schedule_date == DATE
    assert len(schedule.time_slots) == 12
