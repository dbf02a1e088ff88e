"""Data-access layer.

One normalized interface over whichever backend is configured. Every read is
converted into the public pydantic models, which have no password_hash field,
so credentials never leave this module.

Error policy:
- Not found: None or an empty list
- Backend failures: PersistenceError (and subclasses) propagate to the caller
- Mock backend: never fails
"""
from datetime import date
from typing import Iterable, List, Optional, Union

from medichannel.backend import Backend
from medichannel.credentials import hash_password, verify_password
from medichannel.errors import (
    EmailAlreadyRegisteredError,
    InvalidStatusTransitionError,
    PersistenceError,
    SlotUnavailableError,
)
from medichannel.logging_config import get_logger
from medichannel.models import (
    Appointment,
    AppointmentStatus,
    CreateUserData,
    DoctorSchedule,
    Role,
    TimeSlot,
    User,
    can_transition,
)
from medichannel.query import Collection, Insert, Select, Update, eq
from medichannel.times import bookable_time, normalize_time_label

logger = get_logger(__name__)

DateLike = Union[str, date]


def iso_date(value: DateLike) -> str:
    """Normalize a date or ISO string to YYYY-MM-DD."""
    return value.isoformat() if isinstance(value, date) else value


class DataAccess:
    """
    Role-aware helpers over a backend.

    Pattern: the backend is injected, so tests and demo mode pass a MockStore
    and production passes a RestBackend.
    """

    def __init__(self, backend: Backend):
        self.backend = backend

    # Users

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Fetch a user by id (password hash removed), or None."""
        record = self.backend.execute(Select(Collection.USERS, eq(id=user_id), single=True))
        return self._to_user(record)

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Fetch a user by email (password hash removed), or None."""
        record = self.backend.execute(Select(Collection.USERS, eq(email=email), single=True))
        return self._to_user(record)

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Check credentials.

        Args:
            email: Account email
            password: Plaintext password

        Returns:
            The user on a match, otherwise None. Callers cannot tell an
            unknown email from a wrong password.
        """
        record = self.backend.execute(Select(Collection.USERS, eq(email=email), single=True))

        if not record or not record.get("password_hash"):
            logger.info("authentication_failed", email=email)
            return None

        if not verify_password(password, record["password_hash"]):
            logger.info("authentication_failed", email=email)
            return None

        logger.info("authentication_succeeded", user_id=record.get("id"))
        return self._to_user(record)

    def create_user(self, user_data: CreateUserData) -> User:
        """
        Create an account, storing only the bcrypt hash of the password.

        Email uniqueness is the caller's check; if the store itself rejects the
        row anyway, EmailAlreadyRegisteredError is raised.

        Returns:
            The created user, without any password material
        """
        record = user_data.model_dump(mode="json", exclude={"password"}, exclude_none=True)
        record["password_hash"] = hash_password(user_data.password)

        stored = self.backend.execute(Insert(Collection.USERS, record))
        if stored is None:
            raise EmailAlreadyRegisteredError(f"Email already registered: {user_data.email}")

        logger.info("user_created", user_id=stored["id"], role=stored["role"])
        return self._to_user(stored)

    def get_doctors(self) -> List[User]:
        """
        All doctors, requested in descending rating order.

        The mock store ignores ordering; use it for presentation only.
        """
        records = self.backend.execute(
            Select(Collection.USERS, eq(role=Role.DOCTOR.value), order_by="rating", descending=True)
        )
        return self._to_users(records)

    def get_patients(self) -> List[User]:
        records = self.backend.execute(Select(Collection.USERS, eq(role=Role.PATIENT.value)))
        return self._to_users(records)

    # Appointments

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        record = self.backend.execute(
            Select(Collection.APPOINTMENTS, eq(id=appointment_id), single=True)
        )
        return Appointment.model_validate(record) if record else None

    def get_all_appointments(self) -> List[Appointment]:
        return self._select_appointments()

    def get_appointments_by_patient(self, patient_id: str) -> List[Appointment]:
        """A patient's appointments with the doctor joined, newest date first."""
        return self._select_appointments(patient_id=patient_id)

    def get_appointments_by_doctor(
        self,
        doctor_id: str,
        appointment_date: Optional[DateLike] = None
    ) -> List[Appointment]:
        """A doctor's appointments (optionally for one date) with the patient joined."""
        if appointment_date is None:
            return self._select_appointments(doctor_id=doctor_id)
        return self._select_appointments(
            doctor_id=doctor_id, appointment_date=iso_date(appointment_date)
        )

    def get_appointments_by_date(self, appointment_date: DateLike) -> List[Appointment]:
        return self._select_appointments(appointment_date=iso_date(appointment_date))

    def find_active_appointment(
        self,
        doctor_id: str,
        appointment_date: DateLike,
        appointment_time: str
    ) -> Optional[Appointment]:
        """The pending/confirmed appointment holding a slot, if any."""
        candidates = self._select_appointments(
            doctor_id=doctor_id,
            appointment_date=iso_date(appointment_date),
            appointment_time=normalize_time_label(appointment_time),
        )
        return next((apt for apt in candidates if apt.status.is_active), None)

    def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        appointment_date: DateLike,
        appointment_time: str,
        consultation_fee: float,
        symptoms: Optional[str] = None
    ) -> Appointment:
        """
        Book a slot. The new appointment is always ``pending``.

        The consultation fee is stored exactly as passed in; it is never
        recomputed from the doctor's current fee.

        The time may be a grid label ("9:00 AM") or a stored label ("09:00");
        it is stored in the 24h form.

        Raises:
            InvalidSlotError: Time not on the booking grid
            SlotUnavailableError: Slot already held by an active appointment,
                or marked unavailable in the doctor's stored schedule
            PersistenceError: Backend failure
        """
        appointment_date = iso_date(appointment_date)
        appointment_time = bookable_time(appointment_time)

        if self.find_active_appointment(doctor_id, appointment_date, appointment_time):
            raise SlotUnavailableError(
                f"Slot {appointment_date} {appointment_time} is already booked", status_code=409
            )

        schedule = self.get_doctor_schedule(doctor_id, appointment_date)
        slot = schedule.find_slot(appointment_time) if schedule else None
        if slot is not None and not slot.is_available:
            raise SlotUnavailableError(
                f"Slot {appointment_date} {appointment_time} is not available", status_code=409
            )

        record = {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "status": AppointmentStatus.PENDING.value,
            "consultation_fee": consultation_fee,
        }
        if symptoms:
            record["symptoms"] = symptoms

        stored = self.backend.execute(Insert(Collection.APPOINTMENTS, record))
        if stored is None:
            raise SlotUnavailableError(
                f"Slot {appointment_date} {appointment_time} is already booked", status_code=409
            )

        logger.info(
            "appointment_created",
            appointment_id=stored["id"],
            doctor_id=doctor_id,
            date=appointment_date,
            time=appointment_time,
        )
        return Appointment.model_validate(stored)

    def update_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus
    ) -> Optional[Appointment]:
        """
        Move an appointment along its lifecycle.

        Returns:
            Updated appointment, or None if it does not exist

        Raises:
            InvalidStatusTransitionError: e.g. completed -> cancelled
        """
        status = AppointmentStatus(status)
        current = self.get_appointment(appointment_id)
        if current is None:
            return None

        if not can_transition(current.status, status):
            raise InvalidStatusTransitionError(
                f"Cannot change appointment from {current.status.value} to {status.value}"
            )

        stored = self.backend.execute(
            Update(Collection.APPOINTMENTS, {"status": status.value}, eq(id=appointment_id))
        )
        if stored is None:
            return None

        logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            old=current.status.value,
            new=status.value,
        )
        # Update results carry no joined users; keep the ones already loaded
        return Appointment.model_validate(
            dict(stored, patient=current.patient, doctor=current.doctor)
        )

    def cancel_appointment(self, appointment_id: str) -> Optional[Appointment]:
        """Cancel (status change only; appointments are never deleted)."""
        return self.update_appointment_status(appointment_id, AppointmentStatus.CANCELLED)

    # Schedules

    def get_doctor_schedule(
        self,
        doctor_id: str,
        schedule_date: DateLike
    ) -> Optional[DoctorSchedule]:
        """
        Stored schedule for a doctor and date, or None.

        Materializing a default template is the caller's job (see schedule.py).
        """
        record = self.backend.execute(
            Select(
                Collection.DOCTOR_SCHEDULES,
                eq(doctor_id=doctor_id, schedule_date=iso_date(schedule_date)),
                single=True,
            )
        )
        return DoctorSchedule.model_validate(record) if record else None

    def save_doctor_schedule(
        self,
        doctor_id: str,
        schedule_date: DateLike,
        time_slots: Iterable[TimeSlot],
        schedule_id: Optional[str] = None
    ) -> DoctorSchedule:
        """
        Persist the full slot list of a schedule.

        Updates by id when the schedule is already stored, inserts otherwise.
        A doctor has at most one schedule per date: saving without an id
        over an existing schedule updates that schedule.

        Raises:
            PersistenceError: Backend failure, or the stored schedule vanished
        """
        slots = [slot.to_record() for slot in time_slots]

        if schedule_id is None:
            existing = self.get_doctor_schedule(doctor_id, schedule_date)
            schedule_id = existing.id if existing else None

        if schedule_id is None:
            stored = self.backend.execute(Insert(Collection.DOCTOR_SCHEDULES, {
                "doctor_id": doctor_id,
                "schedule_date": iso_date(schedule_date),
                "time_slots": slots,
            }))
        else:
            stored = self.backend.execute(
                Update(Collection.DOCTOR_SCHEDULES, {"time_slots": slots}, eq(id=schedule_id))
            )

        if stored is None:
            raise PersistenceError(f"Could not save schedule for {doctor_id} on {schedule_date}")

        logger.info("schedule_saved", schedule_id=stored["id"], doctor_id=doctor_id)
        return DoctorSchedule.model_validate(stored)

    # Helpers

    def _select_appointments(self, **filters) -> List[Appointment]:
        records = self.backend.execute(
            Select(
                Collection.APPOINTMENTS,
                eq(**filters),
                order_by="appointment_date",
                descending=True,
            )
        )
        return [Appointment.model_validate(record) for record in records or []]

    @staticmethod
    def _to_user(record) -> Optional[User]:
        if not record:
            return None
        return User.model_validate(record)

    @classmethod
    def _to_users(cls, records) -> List[User]:
        return [cls._to_user(record) for record in records or []]
