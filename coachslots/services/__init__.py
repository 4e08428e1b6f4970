"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AvailabilityService,
    AvailabilityStatus,
    DateQuery,
    SettingsProvider,
    SlotQuery,
    check_slot,
    is_date_offerable,
    offerable_dates,
    offerable_slots,
)
from .booking_transaction import BookingTransaction, Rejected, ReservationResult

__all__ = [
    "AvailabilityService",
    "AvailabilityStatus",
    "BookingTransaction",
    "DateQuery",
    "Rejected",
    "ReservationResult",
    "SettingsProvider",
    "SlotQuery",
    "check_slot",
    "is_date_offerable",
    "offerable_dates",
    "offerable_slots",
]
