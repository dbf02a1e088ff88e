"""Appointment history split into upcoming and past."""
from dataclasses import dataclass, field
from typing import List

from medichannel.data_access import DataAccess
from medichannel.models import Appointment, AppointmentStatus, Role, User

UPCOMING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
PAST_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


@dataclass
class AppointmentHistory:
    upcoming: List[Appointment] = field(default_factory=list)
    past: List[Appointment] = field(default_factory=list)


def partition_appointments(appointments: List[Appointment]) -> AppointmentHistory:
    """Pending/confirmed are upcoming; completed/cancelled are past."""
    history = AppointmentHistory()
    for appointment in appointments:
        if appointment.status in UPCOMING_STATUSES:
            history.upcoming.append(appointment)
        elif appointment.status in PAST_STATUSES:
            history.past.append(appointment)
    return history


def load_history(data_access: DataAccess, user: User) -> AppointmentHistory:
    """
    Load the appointments visible to a user.

    Patients see their own bookings, doctors the bookings made with them,
    admins everything.
    """
    if user.role == Role.PATIENT:
        appointments = data_access.get_appointments_by_patient(user.id)
    elif user.role == Role.DOCTOR:
        appointments = data_access.get_appointments_by_doctor(user.id)
    else:
        appointments = data_access.get_all_appointments()
    return partition_appointments(appointments)
