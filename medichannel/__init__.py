"""MediChannel appointment booking service."""
from medichannel.data_access import DataAccess
from medichannel.mock_store import MockStore
from medichannel.models import Appointment, AppointmentStatus, DoctorSchedule, Role, TimeSlot, User

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "DataAccess",
    "DoctorSchedule",
    "MockStore",
    "Role",
    "TimeSlot",
    "User",
]
