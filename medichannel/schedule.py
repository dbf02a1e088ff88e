"""Doctor schedule management.

Responsibilities:
- Materialize the default 12-slot template when no schedule is stored
- Derive booked flags from active appointments (stored flags are ignored)
- Toggle slot availability with an optimistic update and a rollback

Compensating actions: every local mutation applied ahead of a backend write
is wrapped in an OptimisticUpdate that pairs it with exactly one rollback and
the one call it anticipates. If the call fails, the rollback runs and the
failure is reported to the caller.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from medichannel import config
from medichannel.data_access import DataAccess, DateLike, iso_date
from medichannel.errors import InvalidSlotError, PersistenceError, SlotUnavailableError
from medichannel.logging_config import get_logger
from medichannel.models import Appointment, DoctorSchedule, TimeSlot

logger = get_logger(__name__)


def default_schedule(doctor_id: str, schedule_date: DateLike) -> DoctorSchedule:
    """Unsaved schedule with every template slot available."""
    return DoctorSchedule(
        doctor_id=doctor_id,
        schedule_date=iso_date(schedule_date),
        time_slots=[TimeSlot(time=time) for time in config.DEFAULT_SCHEDULE_SLOTS],
    )


def apply_bookings(schedule: DoctorSchedule, appointments: Iterable[Appointment]) -> DoctorSchedule:
    """
    Recompute booked flags from appointments.

    A slot is booked exactly when a pending or confirmed appointment exists
    for the schedule's doctor, date and the slot time.
    """
    active: Dict[str, Appointment] = {
        apt.appointment_time: apt
        for apt in appointments
        if apt.status.is_active
        and apt.doctor_id == schedule.doctor_id
        and apt.appointment_date == schedule.schedule_date
    }

    slots = []
    for slot in schedule.time_slots:
        appointment = active.get(slot.time)
        slots.append(TimeSlot(
            time=slot.time,
            is_available=slot.is_available,
            is_booked=appointment is not None,
            patient_id=appointment.patient_id if appointment else None,
            patient_name=appointment.patient.name if appointment and appointment.patient else None,
        ))
    return schedule.model_copy(update={"time_slots": slots})


@dataclass
class OptimisticUpdate:
    """
    A local mutation applied before confirmation, with its rollback.

    Attributes:
        apply: Mutates local state
        commit: The backend call the mutation anticipates
        rollback: Restores local state if commit fails
    """
    apply: Callable[[], None]
    commit: Callable[[], object]
    rollback: Callable[[], None]

    def run(self) -> bool:
        """
        Apply, then commit; roll back on persistence failure.

        Returns:
            True if committed, False if rolled back
        """
        self.apply()
        try:
            self.commit()
        except PersistenceError as e:
            logger.warning("optimistic_update_rolled_back", error=str(e))
            self.rollback()
            return False
        return True


class ScheduleManager:
    """Schedule view-model for one doctor, one selected date at a time."""

    def __init__(self, data_access: DataAccess, doctor_id: str):
        self.data_access = data_access
        self.doctor_id = doctor_id
        self.schedule: Optional[DoctorSchedule] = None

    def load(self, schedule_date: DateLike) -> DoctorSchedule:
        """
        Load the schedule for a date, falling back to the default template.

        Raises:
            PersistenceError: Backend failure
        """
        schedule_date = iso_date(schedule_date)
        stored = self.data_access.get_doctor_schedule(self.doctor_id, schedule_date)
        base = stored or default_schedule(self.doctor_id, schedule_date)
        appointments = self.data_access.get_appointments_by_doctor(self.doctor_id, schedule_date)

        self.schedule = apply_bookings(base, appointments)
        logger.info(
            "schedule_loaded",
            doctor_id=self.doctor_id,
            date=schedule_date,
            stored=stored is not None,
        )
        return self.schedule

    def toggle_slot(self, time: str) -> bool:
        """
        Flip a slot's availability.

        The flip shows up locally at once; the whole slot list is then saved.
        On failure the authoritative schedule is reloaded (or, if the backend
        cannot even be read, the pre-toggle state is restored).

        Returns:
            True if saved, False if the change was rolled back

        Raises:
            InvalidSlotError: No schedule loaded, or no such slot
            SlotUnavailableError: Slot is booked
        """
        if self.schedule is None:
            raise InvalidSlotError("Load a schedule before toggling slots")

        slot = self.schedule.find_slot(time)
        if slot is None:
            raise InvalidSlotError(f"No slot at {time}")
        if slot.is_booked:
            raise SlotUnavailableError(f"Slot {time} is booked and cannot be changed")

        before = self.schedule

        def apply():
            slots = [
                s.model_copy(update={"is_available": not s.is_available}) if s.time == time else s
                for s in before.time_slots
            ]
            self.schedule = before.model_copy(update={"time_slots": slots})

        def commit():
            saved = self.data_access.save_doctor_schedule(
                self.doctor_id,
                self.schedule.schedule_date,
                self.schedule.time_slots,
                schedule_id=self.schedule.id,
            )
            self.schedule = self.schedule.model_copy(
                update={"id": saved.id, "created_at": saved.created_at}
            )

        def rollback():
            try:
                self.load(before.schedule_date)
            except PersistenceError:
                self.schedule = before

        committed = OptimisticUpdate(apply=apply, commit=commit, rollback=rollback).run()
        logger.info(
            "slot_toggled" if committed else "slot_toggle_reverted",
            doctor_id=self.doctor_id,
            date=before.schedule_date,
            time=time,
        )
        return committed
