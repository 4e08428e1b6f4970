"""
Domain-specific exception hierarchy for the booking engine.
"""


class CoachSlotsError(Exception):
    """Base class for all application-level errors."""


class PolicyValidationError(CoachSlotsError):
    """Raised when a booking settings record violates the availability invariants."""


class CalendarAPIError(CoachSlotsError):
    """Raised when external calendar data cannot be fetched or parsed."""


class SlotTakenError(CoachSlotsError):
    """Raised by a booking store when a non-cancelled booking already holds the slot."""

    def __init__(self, coach_id: str, date: str, time: str):
        super().__init__(f"Slot {date} {time} is already booked for coach {coach_id}")
        self.coach_id = coach_id
        self.date = date
        self.time = time


class BookingNotFoundError(CoachSlotsError):
    """Raised when a booking id is unknown to the store."""


class InvalidStatusTransition(CoachSlotsError):
    """Raised when a booking status change is not allowed."""
