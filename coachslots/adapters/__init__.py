"""
Adapters layer - External integrations (calendar, storage, notifications).
"""

from .booking_store import BookingStore, InMemoryBookingStore, JsonFileBookingStore
from .calendar import ExternalCalendarAdapter, FailOpenCalendar, NoCalendar
from .google_calendar import GoogleCalendarClient
from .mock_calendar import MockCalendar
from .notifier import Notifier, OutboxNotifier
from .settings_store import FileSettingsProvider, StaticSettingsProvider

__all__ = [
    "BookingStore",
    "ExternalCalendarAdapter",
    "FileSettingsProvider",
    "FailOpenCalendar",
    "GoogleCalendarClient",
    "InMemoryBookingStore",
    "JsonFileBookingStore",
    "MockCalendar",
    "NoCalendar",
    "Notifier",
    "OutboxNotifier",
    "StaticSettingsProvider",
]
