"""Tests for the data-access layer over the mock store."""
from datetime import date
from unittest.mock import Mock

import pytest

from medichannel.credentials import verify_password
from medichannel.data_access import DataAccess, iso_date
from medichannel.errors import (
    EmailAlreadyRegisteredError,
    InvalidSlotError,
    InvalidStatusTransitionError,
    PersistenceError,
    SlotUnavailableError,
)
from medichannel.models import AppointmentStatus, CreateUserData, Role, TimeSlot
from medichannel.query import Collection


def new_patient(**overrides):
    fields = dict(
        name="Kamala Jayasinghe",
        email="kamala@email.com",
        password="Secret123",
        role=Role.PATIENT,
        phone="+94712345678",
    )
    fields.update(overrides)
    return CreateUserData(**fields)


class TestUsers:

    def test_create_user_stores_only_hash(self, data_access, store):
        user = data_access.create_user(new_patient())

        stored = store.select_by_field(Collection.USERS, "email", "kamala@email.com", single=True)
        assert "password" not in stored
        assert stored["password_hash"] != "Secret123"
        assert verify_password("Secret123", stored["password_hash"])

        assert user.role == Role.PATIENT
        assert "password_hash" not in user.model_dump()
        assert "password" not in user.model_dump()

    def test_authenticate_with_signup_password(self, data_access):
        created = data_access.create_user(new_patient())
        user = data_access.authenticate_user("kamala@email.com", "Secret123")
        assert user is not None
        assert user.id == created.id

    def test_authenticate_failures(self, data_access):
        assert data_access.authenticate_user("john@email.com", "wrong") is None
        assert data_access.authenticate_user("nobody@email.com", "password") is None

    def test_authenticate_account_without_password(self, data_access, store):
        store.insert(Collection.USERS, {"name": "No Hash", "email": "nohash@x.com", "role": "patient"})
        assert data_access.authenticate_user("nohash@x.com", "") is None

    def test_seed_accounts_use_demo_password(self, data_access):
        assert data_access.authenticate_user("dr.perera@hospital.lk", "password").role == Role.DOCTOR

    def test_lookups_hide_hash(self, data_access, john):
        user = data_access.get_user_by_id(john.id)
        assert user.name == "John Silva"
        assert "password_hash" not in user.model_dump()
        assert data_access.get_user_by_id("missing") is None

    def test_store_rejection_of_duplicate_email(self, data_access):
        with pytest.raises(EmailAlreadyRegisteredError):
            data_access.create_user(new_patient(email="john@email.com"))

    def test_doctors_and_patients(self, data_access):
        assert {d.name for d in data_access.get_doctors()} == {
            "Dr. Samantha Perera", "Dr. Rohith Fernando"
        }
        assert [p.name for p in data_access.get_patients()] == ["John Silva"]


class TestAppointments:

    def test_create_is_pending_with_fee_verbatim(self, data_access, john, perera):
        apt = data_access.create_appointment(
            john.id, perera.id, "2025-01-15", "09:00", consultation_fee=1234.5, symptoms="Cough"
        )
        assert apt.status == AppointmentStatus.PENDING
        assert apt.consultation_fee == 1234.5
        assert apt.symptoms == "Cough"
        assert apt.doctor.name == "Dr. Samantha Perera"

    def test_second_booking_rejected(self, data_access, john, perera):
        data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)
        with pytest.raises(SlotUnavailableError):
            data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)

    def test_grid_label_and_stored_label_are_one_slot(self, data_access, john, perera):
        apt = data_access.create_appointment(john.id, perera.id, "2025-01-15", "9:00 AM", 2500)
        assert apt.appointment_time == "09:00"

        with pytest.raises(SlotUnavailableError):
            data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)
        assert data_access.find_active_appointment(perera.id, "2025-01-15", "9:00 AM").id == apt.id

    def test_grid_label_hits_closed_slot(self, data_access, john, perera):
        data_access.save_doctor_schedule(
            perera.id, "2025-01-15", [TimeSlot(time="14:30", is_available=False)]
        )
        with pytest.raises(SlotUnavailableError):
            data_access.create_appointment(john.id, perera.id, "2025-01-15", "2:30 PM", 2500)

    @pytest.mark.parametrize("time", ["12:00", "1:00 PM", "noon", 9])
    def test_off_grid_time_rejected(self, data_access, john, perera, time):
        with pytest.raises(InvalidSlotError):
            data_access.create_appointment(john.id, perera.id, "2025-01-15", time, 2500)
        assert data_access.get_all_appointments() == []

    def test_closed_slot_rejected(self, data_access, john, perera):
        data_access.save_doctor_schedule(
            perera.id, "2025-01-15", [TimeSlot(time="09:00", is_available=False)]
        )
        with pytest.raises(SlotUnavailableError):
            data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)

    def test_status_lifecycle(self, data_access, john, perera):
        apt = data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)

        confirmed = data_access.update_appointment_status(apt.id, AppointmentStatus.CONFIRMED)
        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert confirmed.patient.name == "John Silva"

        completed = data_access.update_appointment_status(apt.id, "completed")
        assert completed.status == AppointmentStatus.COMPLETED

        with pytest.raises(InvalidStatusTransitionError):
            data_access.cancel_appointment(apt.id)

    def test_pending_cannot_complete(self, data_access, john, perera):
        apt = data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)
        with pytest.raises(InvalidStatusTransitionError):
            data_access.update_appointment_status(apt.id, AppointmentStatus.COMPLETED)

    def test_update_missing_appointment(self, data_access):
        assert data_access.update_appointment_status("missing", AppointmentStatus.CONFIRMED) is None

    def test_cancel_keeps_record(self, data_access, john, perera):
        apt = data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)
        data_access.cancel_appointment(apt.id)
        assert data_access.get_appointment(apt.id).status == AppointmentStatus.CANCELLED
        assert data_access.find_active_appointment(perera.id, "2025-01-15", "09:00") is None

    def test_filters(self, data_access, john, perera, fernando):
        data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)
        data_access.create_appointment(john.id, perera.id, "2025-01-16", "09:00", 2500)
        data_access.create_appointment(john.id, fernando.id, "2025-01-15", "10:00", 3000)

        assert len(data_access.get_appointments_by_patient(john.id)) == 3
        assert len(data_access.get_appointments_by_doctor(perera.id)) == 2
        assert len(data_access.get_appointments_by_doctor(perera.id, "2025-01-15")) == 1
        assert len(data_access.get_appointments_by_date("2025-01-15")) == 2
        assert len(data_access.get_all_appointments()) == 3


class TestSchedules:

    def test_missing_schedule_is_none(self, data_access, perera):
        assert data_access.get_doctor_schedule(perera.id, "2025-01-15") is None

    def test_insert_then_update(self, data_access, perera):
        created = data_access.save_doctor_schedule(perera.id, "2025-01-15", [TimeSlot(time="09:00")])
        assert created.id

        updated = data_access.save_doctor_schedule(
            perera.id,
            "2025-01-15",
            [TimeSlot(time="09:00", is_available=False)],
            schedule_id=created.id,
        )
        assert updated.id == created.id

        stored = data_access.get_doctor_schedule(perera.id, "2025-01-15")
        assert stored.find_slot("09:00").is_available is False

    def test_save_without_id_updates_existing(self, data_access, perera):
        first = data_access.save_doctor_schedule(perera.id, "2025-01-15", [TimeSlot(time="09:00")])
        second = data_access.save_doctor_schedule(
            perera.id, "2025-01-15", [TimeSlot(time="09:00", is_available=False)]
        )

        assert second.id == first.id
        assert len(data_access.backend.select_all(Collection.DOCTOR_SCHEDULES)) == 1
        assert data_access.get_doctor_schedule(perera.id, "2025-01-15").find_slot("09:00").is_available is False

    def test_vanished_schedule(self, data_access, perera):
        with pytest.raises(PersistenceError):
            data_access.save_doctor_schedule(perera.id, "2025-01-15", [], schedule_id="missing")


def test_backend_failures_propagate():
    backend = Mock()
    backend.execute.side_effect = PersistenceError("down", status_code=500)
    with pytest.raises(PersistenceError):
        DataAccess(backend).get_doctors()


def test_iso_date():
    assert iso_date(date(2025, 1, 5)) == "2025-01-05"
    assert iso_date("2025-01-05") == "2025-01-05"
