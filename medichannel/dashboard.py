"""Administrator dashboard statistics.

The four source queries (doctors, patients, today's appointments, all
appointments) have no ordering dependency on each other and are issued
concurrently on a small thread pool.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from medichannel import config
from medichannel.data_access import DataAccess
from medichannel.logging_config import get_logger
from medichannel.models import AppointmentStatus

logger = get_logger(__name__)


@dataclass
class RecentAppointment:
    id: str
    patient_name: str
    doctor_name: str
    time: str
    status: str
    specialization: str


@dataclass
class TopDoctor:
    name: str
    specialization: str
    bookings: int
    rating: float
    hospital: str


@dataclass
class DashboardStats:
    """Aggregate numbers shown to administrators."""
    total_doctors: int = 0
    total_patients: int = 0
    today_appointments: int = 0
    today_pending: int = 0
    revenue: float = 0
    currency: str = config.CURRENCY
    recent_appointments: List[RecentAppointment] = field(default_factory=list)
    top_doctors: List[TopDoctor] = field(default_factory=list)


def load_dashboard(data_access: DataAccess, today: Optional[date] = None) -> DashboardStats:
    """
    Compute dashboard statistics.

    Args:
        data_access: Data-access layer
        today: Reference date for "today's appointments" (default: date.today())

    Returns:
        DashboardStats

    Raises:
        PersistenceError: If any of the source queries fails
    """
    today = today or date.today()

    with ThreadPoolExecutor(max_workers=4) as executor:
        doctors_future = executor.submit(data_access.get_doctors)
        patients_future = executor.submit(data_access.get_patients)
        today_future = executor.submit(data_access.get_appointments_by_date, today)
        all_future = executor.submit(data_access.get_all_appointments)

        doctors = doctors_future.result()
        patients = patients_future.result()
        today_appointments = today_future.result()
        appointments = all_future.result()

    doctors_by_id = {doctor.id: doctor for doctor in doctors}
    patients_by_id = {patient.id: patient for patient in patients}

    # Cancelled bookings never earn a fee
    revenue = sum(
        apt.consultation_fee or 0
        for apt in appointments
        if apt.status != AppointmentStatus.CANCELLED
    )

    recent = []
    for apt in appointments[:config.RECENT_APPOINTMENTS_LIMIT]:
        doctor = doctors_by_id.get(apt.doctor_id)
        patient = patients_by_id.get(apt.patient_id)
        recent.append(RecentAppointment(
            id=apt.id,
            patient_name=patient.name if patient else "Unknown Patient",
            doctor_name=doctor.name if doctor else "Unknown Doctor",
            time=apt.appointment_time or "Time TBD",
            status=apt.status.value,
            specialization=(doctor.specialization if doctor else None) or config.DEFAULT_SPECIALIZATION,
        ))

    booking_counts = {}
    for apt in appointments:
        booking_counts[apt.doctor_id] = booking_counts.get(apt.doctor_id, 0) + 1

    top = sorted(
        (
            TopDoctor(
                name=doctor.name,
                specialization=doctor.specialization or config.DEFAULT_SPECIALIZATION,
                bookings=booking_counts.get(doctor.id, 0),
                rating=doctor.rating or config.DEFAULT_RATING,
                hospital=doctor.hospital or config.DEFAULT_HOSPITAL,
            )
            for doctor in doctors
        ),
        key=lambda d: d.bookings,
        reverse=True,
    )[:config.TOP_DOCTORS_LIMIT]

    stats = DashboardStats(
        total_doctors=len(doctors),
        total_patients=len(patients),
        today_appointments=len(today_appointments),
        today_pending=sum(
            1 for apt in today_appointments if apt.status == AppointmentStatus.PENDING
        ),
        revenue=revenue,
        recent_appointments=recent,
        top_doctors=top,
    )
    logger.info(
        "dashboard_loaded",
        doctors=stats.total_doctors,
        patients=stats.total_patients,
        appointments=len(appointments),
    )
    return stats
