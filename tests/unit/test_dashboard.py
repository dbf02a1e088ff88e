"""Tests for administrator dashboard statistics."""
from datetime import date

from medichannel.dashboard import load_dashboard
from medichannel.models import AppointmentStatus
from medichannel.query import Collection

TODAY = date(2025, 1, 15)


def test_empty_dashboard(data_access):
    stats = load_dashboard(data_access, today=TODAY)
    assert stats.total_doctors == 2
    assert stats.total_patients == 1
    assert stats.today_appointments == 0
    assert stats.revenue == 0
    assert stats.recent_appointments == []
    assert stats.currency == "LKR"


def test_statistics(data_access, john, perera, fernando):
    data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:00", 2500)
    confirmed = data_access.create_appointment(john.id, perera.id, "2025-01-15", "09:30", 2500)
    data_access.update_appointment_status(confirmed.id, AppointmentStatus.CONFIRMED)
    cancelled = data_access.create_appointment(john.id, fernando.id, "2025-01-16", "10:00", 3000)
    data_access.cancel_appointment(cancelled.id)

    stats = load_dashboard(data_access, today=TODAY)

    assert stats.today_appointments == 2
    assert stats.today_pending == 1
    assert stats.revenue == 5000

    assert len(stats.recent_appointments) == 3
    assert stats.recent_appointments[0].patient_name == "John Silva"
    assert stats.recent_appointments[0].doctor_name == "Dr. Samantha Perera"
    assert stats.recent_appointments[0].specialization == "Cardiology"

    assert [d.name for d in stats.top_doctors] == ["Dr. Samantha Perera", "Dr. Rohith Fernando"]
    assert stats.top_doctors[0].bookings == 2


def test_recent_limited_to_four(data_access, john, perera):
    for time in ("09:00", "09:30", "10:00", "10:30", "11:00"):
        data_access.create_appointment(john.id, perera.id, "2025-01-15", time, 2500)
    assert len(load_dashboard(data_access, today=TODAY).recent_appointments) == 4


def test_unknown_names(data_access, store):
    store.insert(Collection.APPOINTMENTS, {
        "patient_id": "gone-patient",
        "doctor_id": "gone-doctor",
        "appointment_date": "2025-01-15",
        "appointment_time": "09:00",
        "status": "pending",
        "consultation_fee": 1000,
    })
    recent = load_dashboard(data_access, today=TODAY).recent_appointments[0]
    assert recent.patient_name == "Unknown Patient"
    assert recent.doctor_name == "Unknown Doctor"
    assert recent.specialization == "General Medicine"
