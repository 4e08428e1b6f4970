"""
Domain models for weekly availability, bookings and derived slots.
"""

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import time
from enum import Enum
from typing import Dict, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidStatusTransition

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_HHMM = re.compile(r"^\d{2}:\d{2}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def parse_hhmm(value: str) -> time:
    """Parse a local ``HH:MM`` string into a time object."""
    if not isinstance(value, str) or not _HHMM.match(value):
        raise ValueError(f"Invalid time format {value!r}. Expected HH:MM")
    hour, minute = (int(part) for part in value.split(":"))
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value}")
    return time(hour=hour, minute=minute)


def format_hhmm(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_iso_date(value: str) -> Date:
    """Parse a ``YYYY-MM-DD`` string into a pendulum Date."""
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise ValueError(f"Invalid date format {value!r}. Expected YYYY-MM-DD")
    year, month, day = (int(part) for part in value.split("-"))
    return pendulum.date(year, month, day)


def local_datetime(day: Date, at: time, tz: str) -> DateTime:
    """Build the wall-clock instant ``at`` on ``day`` in timezone ``tz``."""
    return pendulum.datetime(day.year, day.month, day.day, at.hour, at.minute, tz=tz)


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


# External calendar events are plain half-open ranges.
BusyInterval = TimeRange


@dataclass(frozen=True)
class TimeInterval:
    """A time-of-day window ``[start, end)`` inside a weekday."""
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Interval start {format_hhmm(self.start)} must be before end {format_hhmm(self.end)}"
            )

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeInterval":
        return cls(start=parse_hhmm(start), end=parse_hhmm(end))

    def __str__(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


@dataclass(frozen=True)
class DayAvailability:
    """
    Availability of a single weekday.

    Invariant: intervals are sorted and non-overlapping. A disabled day
    offers nothing, whatever intervals it still carries.
    """
    enabled: bool = False
    intervals: Tuple[TimeInterval, ...] = ()

    def __post_init__(self):
        for previous, current in zip(self.intervals, self.intervals[1:]):
            if current.start < previous.end:
                raise ValueError(
                    f"Intervals must be sorted and non-overlapping: {previous} then {current}"
                )

    @property
    def is_open(self) -> bool:
        return self.enabled and bool(self.intervals)


def _closed_week() -> Tuple[DayAvailability, ...]:
    return tuple(DayAvailability() for _ in WEEKDAY_NAMES)


@dataclass(frozen=True)
class AvailabilityPolicy:
    """
    Immutable weekly availability policy of a coach.

    ``week`` holds one DayAvailability per weekday, indexed 0=Monday .. 6=Sunday.
    """
    duration: int
    buffer_before: int = 0
    buffer_after: int = 0
    min_notice_hours: int = 0
    max_advance_days: int = 30
    timezone: str = "UTC"
    week: Tuple[DayAvailability, ...] = field(default_factory=_closed_week)
    enabled: bool = True

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError("duration must be greater than zero")
        for name in ("buffer_before", "buffer_after", "min_notice_hours", "max_advance_days"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if len(self.week) != len(WEEKDAY_NAMES):
            raise ValueError(f"week must define exactly 7 days, got {len(self.week)}")

    def day(self, weekday: int) -> DayAvailability:
        """Availability for a weekday (0=Monday)."""
        return self.week[weekday]

    def day_for(self, day: Date) -> DayAvailability:
        return self.week[day.weekday()]


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class RejectionReason(str, Enum):
    SLOT_UNAVAILABLE = "slot_unavailable"
    OUTSIDE_WINDOW = "outside_window"
    BOOKING_DISABLED = "booking_disabled"


ALLOWED_TRANSITIONS: Dict[BookingStatus, Tuple[BookingStatus, ...]] = {
    BookingStatus.PENDING: (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    BookingStatus.CONFIRMED: (
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    ),
}


@dataclass(frozen=True)
class ClientInfo:
    """Contact details submitted with a booking request."""
    name: str
    email: str
    notes: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Client name is required")
        if not _EMAIL.match(self.email or ""):
            raise ValueError(f"Invalid email format: {self.email!r}")


@dataclass(frozen=True)
class Booking:
    """
    A committed booking.

    Identity is ``(coach_id, date, time)``; at most one non-cancelled booking
    may hold it.
    """
    coach_id: str
    date: str  # YYYY-MM-DD, coach-local
    time: str  # HH:MM, coach-local
    duration_minutes: int
    client_name: str
    client_email: str
    notes: str = ""
    status: BookingStatus = BookingStatus.PENDING
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))
    idempotency_key: Optional[str] = None
    title: str = ""
    meeting_link: str = ""
    coach_name: str = ""
    coach_email: str = ""

    def __post_init__(self):
        parse_iso_date(self.date)
        parse_hhmm(self.time)
        if self.duration_minutes <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        if not isinstance(self.status, BookingStatus):
            object.__setattr__(self, "status", BookingStatus(self.status))

    @property
    def slot_key(self) -> Tuple[str, str, str]:
        return (self.coach_id, self.date, self.time)

    @property
    def is_occupying(self) -> bool:
        """Every status except cancelled keeps the slot taken."""
        return self.status is not BookingStatus.CANCELLED

    def time_range(self, tz: str) -> TimeRange:
        """The booked session as an absolute range in the coach timezone."""
        start = local_datetime(parse_iso_date(self.date), parse_hhmm(self.time), tz)
        return TimeRange(start=start, end=start.add(minutes=self.duration_minutes))

    def with_status(self, status: BookingStatus) -> "Booking":
        """Return a copy in ``status``, enforcing the allowed transitions."""
        status = BookingStatus(status)
        if status not in ALLOWED_TRANSITIONS.get(self.status, ()):
            raise InvalidStatusTransition(
                f"Booking {self.id} cannot move from {self.status.value} to {status.value}"
            )
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "coachId": self.coach_id,
            "date": self.date,
            "time": self.time,
            "duration": self.duration_minutes,
            "clientName": self.client_name,
            "clientEmail": self.client_email,
            "notes": self.notes,
            "status": self.status.value,
            "createdAt": self.created_at.to_iso8601_string(),
            "idempotencyKey": self.idempotency_key,
            "sessionTitle": self.title,
            "meetingLink": self.meeting_link,
            "coachName": self.coach_name,
            "coachEmail": self.coach_email,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Booking":
        created_at = data.get("createdAt")
        return cls(
            id=data.get("id") or uuid.uuid4().hex,
            coach_id=data["coachId"],
            date=data["date"],
            time=data["time"],
            duration_minutes=int(data["duration"]),
            client_name=data.get("clientName", ""),
            client_email=data.get("clientEmail", ""),
            notes=data.get("notes") or "",
            status=BookingStatus(data.get("status", BookingStatus.PENDING.value)),
            created_at=pendulum.parse(created_at) if created_at else pendulum.now("UTC"),
            idempotency_key=data.get("idempotencyKey"),
            title=data.get("sessionTitle") or "",
            meeting_link=data.get("meetingLink") or "",
            coach_name=data.get("coachName") or "",
            coach_email=data.get("coachEmail") or "",
        )


@dataclass(frozen=True)
class Slot:
    """
    A derived, fixed-duration appointment candidate.
    """
    start: DateTime
    end: DateTime

    @property
    def date(self) -> str:
        return self.start.format("YYYY-MM-DD")

    @property
    def time(self) -> str:
        return self.start.format("HH:mm")

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:MM - HH:MM
        """
        weekday = WEEKDAY_NAMES[self.start.weekday()].capitalize()
        return f"{weekday}, {self.date} | {self.time} - {self.end.format('HH:mm')}"
