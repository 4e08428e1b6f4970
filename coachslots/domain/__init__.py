"""
Domain layer - Pure business logic without external dependencies.
"""

from .booking_window import is_within_window
from .conflict_index import ConflictIndex
from .models import (
    AvailabilityPolicy,
    Booking,
    BookingStatus,
    BusyInterval,
    ClientInfo,
    DayAvailability,
    Slot,
    TimeInterval,
    TimeRange,
)
from .slot_generator import generate, generate_slots

__all__ = [
    "AvailabilityPolicy",
    "Booking",
    "BookingStatus",
    "BusyInterval",
    "ClientInfo",
    "ConflictIndex",
    "DayAvailability",
    "Slot",
    "TimeInterval",
    "TimeRange",
    "generate",
    "generate_slots",
    "is_within_window",
]
