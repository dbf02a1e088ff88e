"""Record schemas for users, appointments and doctor schedules.

Dates and times travel as strings, the way the hosted backend stores them:
dates as ISO ``YYYY-MM-DD``, appointment and slot times as 24h ``HH:MM``.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Account roles. Fixed at signup."""
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Pending and confirmed appointments occupy their slot."""
        return self in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


# Status transition map
# Pattern: current status → [allowed next statuses]
STATUS_TRANSITIONS: Dict[AppointmentStatus, List[AppointmentStatus]] = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.COMPLETED: [],
    AppointmentStatus.CANCELLED: [],
}


def can_transition(current: AppointmentStatus, intended: AppointmentStatus) -> bool:
    """
    Validate an appointment status change.

    Example:
        >>> can_transition(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
        True
        >>> can_transition(AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)
        False
    """
    return intended in STATUS_TRANSITIONS.get(current, [])


class User(BaseModel):
    """
    Public user record.

    There is deliberately no password_hash field: unknown keys coming from the
    store are dropped on validation, so a hash can never reach a caller.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    email: str
    role: Role
    specialization: Optional[str] = None
    hospital: Optional[str] = None
    consultation_fee: Optional[float] = None
    experience: Optional[int] = None
    rating: Optional[float] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreateUserData(BaseModel):
    """Signup payload handed to the data-access layer."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    role: Role
    specialization: Optional[str] = None
    hospital: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    experience: Optional[int] = Field(None, ge=0)
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None


class Appointment(BaseModel):
    """Booking of one patient with one doctor at a date/time slot."""
    model_config = ConfigDict(extra="ignore")

    id: str
    patient_id: str
    doctor_id: str
    appointment_date: str
    appointment_time: str
    status: AppointmentStatus = AppointmentStatus.PENDING
    symptoms: Optional[str] = None
    diagnosis: Optional[str] = None
    prescription: Optional[str] = None
    consultation_fee: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    patient: Optional[User] = None
    doctor: Optional[User] = None


class TimeSlot(BaseModel):
    """One slot of a doctor's day."""
    model_config = ConfigDict(extra="ignore")

    time: str
    is_available: bool = True
    is_booked: bool = False
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None

    def to_record(self) -> dict:
        """Stored slot shape (no display-only fields)."""
        return self.model_dump(include={"time", "is_available", "is_booked", "patient_id"})


class DoctorSchedule(BaseModel):
    """A doctor's availability for one date. ``id`` is None until persisted."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    doctor_id: str
    schedule_date: str
    time_slots: List[TimeSlot] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("time_slots")
    @classmethod
    def validate_unique_times(cls, v):
        """Slot times must be unique within one schedule."""
        times = [slot.time for slot in v]
        if len(times) != len(set(times)):
            raise ValueError("Duplicate slot times in schedule")
        return v

    def find_slot(self, time: str) -> Optional[TimeSlot]:
        return next((slot for slot in self.time_slots if slot.time == time), None)
