"""Slot time labels.

Patients pick from a 12h grid ("9:00 AM"); schedules and appointments store
24h labels ("09:00"). Everything written to the store goes through
``normalize_time_label`` first so both spellings name the same slot.
"""
from datetime import datetime

from medichannel import config
from medichannel.errors import InvalidSlotError

TIME_FORMATS = ("%I:%M %p", "%I:%M%p", "%H:%M")


def normalize_time_label(label: str) -> str:
    """
    Convert a booking grid label to the stored 24h form.

    Example:
        >>> normalize_time_label("2:30 PM")
        '14:30'
        >>> normalize_time_label("09:00")
        '09:00'

    Raises:
        InvalidSlotError: Not a string, or not a recognizable time
    """
    if not isinstance(label, str):
        raise InvalidSlotError(f"Unrecognized time: {label!r}")

    label = label.strip().upper()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(label, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise InvalidSlotError(f"Unrecognized time: {label}")


def format_time_12h(time_24h: str) -> str:
    """Convert 24h time to the 12h grid label ("14:00" -> "2:00 PM")."""
    hour, minute = map(int, time_24h.split(":"))
    period = "AM" if hour < 12 else "PM"
    hour_12 = hour if hour <= 12 else hour - 12
    hour_12 = 12 if hour_12 == 0 else hour_12
    return f"{hour_12}:{minute:02d} {period}"


BOOKABLE_TIMES = frozenset(normalize_time_label(label) for label in config.BOOKING_TIME_SLOTS)


def bookable_time(label: str) -> str:
    """
    Normalize a label and check it is on the booking grid.

    Raises:
        InvalidSlotError: Unrecognized time, or a time patients cannot book
    """
    time = normalize_time_label(label)
    if time not in BOOKABLE_TIMES:
        raise InvalidSlotError(f"{label} is not a bookable time")
    return time
