"""Patient booking workflow.

State machine:
    searching -> selecting_slot -> confirming -> booked | booking_failed

A failed submit passes through booking_failed and lands back in confirming
so the patient can retry. Nothing is retried automatically.

Doctor search is purely client-side over the list fetched once per flow.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from medichannel import config
from medichannel.data_access import DataAccess
from medichannel.errors import InvalidSlotError, InvalidTransitionError, PersistenceError
from medichannel.logging_config import get_logger
from medichannel.models import Appointment, Role, User
from medichannel.times import bookable_time

logger = get_logger(__name__)


class BookingState(str, Enum):
    """Discrete booking workflow states."""
    SEARCHING = "searching"
    SELECTING_SLOT = "selecting_slot"
    CONFIRMING = "confirming"
    BOOKED = "booked"
    BOOKING_FAILED = "booking_failed"


# State machine transition map
# Pattern: current state → [allowed next states]
VALID_TRANSITIONS: Dict[BookingState, List[BookingState]] = {
    BookingState.SEARCHING: [
        BookingState.SELECTING_SLOT,
    ],
    BookingState.SELECTING_SLOT: [
        BookingState.CONFIRMING,
        BookingState.SEARCHING,  # Back to search
    ],
    BookingState.CONFIRMING: [
        BookingState.BOOKED,
        BookingState.BOOKING_FAILED,
        BookingState.SELECTING_SLOT,  # Pick another slot
    ],
    BookingState.BOOKING_FAILED: [
        BookingState.CONFIRMING,  # Revert so the user may retry
    ],
    BookingState.BOOKED: [
        BookingState.SEARCHING,  # Book another
    ],
}


def validate_transition(current: BookingState, intended: BookingState) -> bool:
    """
    Validate state transition.

    Example:
        >>> validate_transition(BookingState.SEARCHING, BookingState.SELECTING_SLOT)
        True
        >>> validate_transition(BookingState.SEARCHING, BookingState.BOOKED)
        False
    """
    return intended in VALID_TRANSITIONS.get(current, [])


def validate_booking_date(chosen: date, today: Optional[date] = None) -> None:
    """
    Check a date is selectable in the booking calendar.

    Raises:
        InvalidSlotError: Date in the past, on a weekend, or more than
            MAX_BOOKING_DAYS_AHEAD days out
    """
    today = today or date.today()
    if chosen < today:
        raise InvalidSlotError("Appointment date cannot be in the past")
    if chosen.weekday() in config.WEEKEND_DAYS:
        raise InvalidSlotError("Appointments are not available on weekends")
    if chosen > today + timedelta(days=config.MAX_BOOKING_DAYS_AHEAD):
        raise InvalidSlotError(
            f"Appointments can be booked at most {config.MAX_BOOKING_DAYS_AHEAD} days ahead"
        )


def with_doctor_defaults(doctor: User) -> User:
    """Fill display fallbacks for incomplete doctor records."""
    return doctor.model_copy(update={
        "specialization": doctor.specialization or config.DEFAULT_SPECIALIZATION,
        "hospital": doctor.hospital or config.DEFAULT_HOSPITAL,
        "consultation_fee": doctor.consultation_fee or config.DEFAULT_CONSULTATION_FEE,
        "rating": doctor.rating or config.DEFAULT_RATING,
    })


def filter_doctors(
    doctors: List[User],
    search_term: str = "",
    specialization: str = config.ALL_SPECIALIZATIONS
) -> List[User]:
    """
    Client-side doctor search.

    Args:
        doctors: Already-fetched doctors
        search_term: Case-insensitive substring of name or hospital
        specialization: Exact specialization, or "all"

    Returns:
        Matching doctors, input order preserved
    """
    term = (search_term or "").strip().lower()
    wanted = specialization or config.ALL_SPECIALIZATIONS

    matches = []
    for doctor in doctors:
        name = (doctor.name or "").lower()
        hospital = (doctor.hospital or "").lower()
        if term and term not in name and term not in hospital:
            continue
        if wanted != config.ALL_SPECIALIZATIONS and doctor.specialization != wanted:
            continue
        matches.append(doctor)
    return matches


@dataclass
class BookingOutcome:
    """Result of submitting a booking."""
    success: bool
    message: str
    appointment: Optional[Appointment] = None
    error: Optional[PersistenceError] = None


class BookingFlow:
    """
    One patient's booking session.

    Pattern: explicit transitions checked against VALID_TRANSITIONS; any step
    attempted out of order raises InvalidTransitionError.
    """

    def __init__(
        self,
        data_access: DataAccess,
        patient: User,
        today: Optional[date] = None,
        on_booked: Optional[Callable[[Appointment], None]] = None
    ):
        """
        Initialize booking flow.

        Args:
            data_access: Data-access layer
            patient: Logged-in patient
            today: Reference date for calendar rules (default: date.today())
            on_booked: Called with the appointment after a successful booking
        """
        if patient.role != Role.PATIENT:
            raise ValueError("Only patients can book appointments")

        self.data_access = data_access
        self.patient = patient
        self.today = today
        self.on_booked = on_booked

        self.state = BookingState.SEARCHING
        self.doctors: Optional[List[User]] = None
        self.doctor: Optional[User] = None
        self.appointment_date: Optional[date] = None
        self.appointment_time: Optional[str] = None
        self.symptoms: str = ""
        self.appointment: Optional[Appointment] = None

    def _transition(self, intended: BookingState):
        if not validate_transition(self.state, intended):
            raise InvalidTransitionError(
                f"Cannot go from {self.state.value} to {intended.value}"
            )
        logger.debug("booking_transition", frm=self.state.value, to=intended.value)
        self.state = intended

    # searching

    def load_doctors(self) -> List[User]:
        """Fetch the doctor list once; later searches filter it locally."""
        if self.doctors is None:
            self.doctors = [with_doctor_defaults(d) for d in self.data_access.get_doctors()]
        return self.doctors

    def search(
        self,
        search_term: str = "",
        specialization: str = config.ALL_SPECIALIZATIONS
    ) -> List[User]:
        return filter_doctors(self.load_doctors(), search_term, specialization)

    def select_doctor(self, doctor_id: str) -> Optional[User]:
        """
        Choose a doctor and move on to slot selection.

        Returns:
            The doctor, or None (state unchanged) if no such doctor exists
        """
        if self.state != BookingState.SEARCHING:
            raise InvalidTransitionError(f"Cannot choose a doctor while {self.state.value}")

        doctor = self.data_access.get_user_by_id(doctor_id)
        if doctor is None or doctor.role != Role.DOCTOR:
            return None

        self.doctor = with_doctor_defaults(doctor)
        self._transition(BookingState.SELECTING_SLOT)
        return self.doctor

    # selecting_slot

    def back_to_search(self):
        self._transition(BookingState.SEARCHING)
        self.doctor = None
        self.appointment_date = None
        self.appointment_time = None

    def select_slot(self, appointment_date: date, time_label: str):
        """
        Choose date and grid time, then move to confirmation.

        Raises:
            InvalidSlotError: Date not selectable or time not on the grid
        """
        if self.state == BookingState.CONFIRMING:
            self._transition(BookingState.SELECTING_SLOT)

        if self.state != BookingState.SELECTING_SLOT:
            raise InvalidTransitionError(f"Cannot choose a slot while {self.state.value}")

        validate_booking_date(appointment_date, self.today)
        time = bookable_time(time_label)

        self.appointment_date = appointment_date
        self.appointment_time = time
        self._transition(BookingState.CONFIRMING)

    # confirming

    def describe_symptoms(self, symptoms: str):
        if self.state != BookingState.CONFIRMING:
            raise InvalidTransitionError(f"Cannot add symptoms while {self.state.value}")
        self.symptoms = (symptoms or "").strip()

    def submit(self) -> BookingOutcome:
        """
        Book the chosen slot.

        On a persistence failure the flow passes through booking_failed and
        returns to confirming; the caller decides whether to retry.
        """
        if self.state != BookingState.CONFIRMING:
            raise InvalidTransitionError(f"Cannot submit while {self.state.value}")

        try:
            appointment = self.data_access.create_appointment(
                patient_id=self.patient.id,
                doctor_id=self.doctor.id,
                appointment_date=self.appointment_date,
                appointment_time=self.appointment_time,
                consultation_fee=self.doctor.consultation_fee,
                symptoms=self.symptoms or None,
            )
        except PersistenceError as e:
            logger.warning(
                "booking_failed",
                patient_id=self.patient.id,
                doctor_id=self.doctor.id,
                error=str(e),
            )
            self._transition(BookingState.BOOKING_FAILED)
            self._transition(BookingState.CONFIRMING)
            return BookingOutcome(
                success=False,
                message="Failed to book appointment. Please try again.",
                error=e,
            )

        self.appointment = appointment
        self._transition(BookingState.BOOKED)
        logger.info("booking_completed", appointment_id=appointment.id)

        if self.on_booked:
            self.on_booked(appointment)

        return BookingOutcome(
            success=True,
            message=(
                "Your appointment has been booked successfully. "
                "You will receive a confirmation shortly."
            ),
            appointment=appointment,
        )

    # booked

    def start_over(self):
        """Begin a new booking after a completed one."""
        self._transition(BookingState.SEARCHING)
        self.doctor = None
        self.appointment_date = None
        self.appointment_time = None
        self.symptoms = ""
        self.appointment = None
