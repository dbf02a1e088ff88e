"""Exceptions raised across the data-access and workflow layers.

Not-found is never an exception here: lookups return None or an empty list.
"""


class MediChannelError(Exception):
    """Base class for all service errors."""
    pass


class PersistenceError(MediChannelError):
    """Raised when the backing store fails or rejects an operation."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class BackendUnavailableError(PersistenceError):
    """Raised when the circuit breaker is open (fail fast)."""
    pass


class SlotUnavailableError(PersistenceError):
    """Raised when a doctor/date/time slot is already taken or closed."""
    pass


class EmailAlreadyRegisteredError(PersistenceError):
    """Raised when the store rejects a user whose email already exists."""
    pass


class InvalidTransitionError(MediChannelError):
    """Raised when a workflow is asked to skip or reverse a step."""
    pass


class InvalidStatusTransitionError(MediChannelError):
    """Raised when an appointment status change is not allowed."""
    pass


class InvalidSlotError(MediChannelError, ValueError):
    """Raised when a booking date or time choice is not selectable."""
    pass
