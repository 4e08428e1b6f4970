"""
Offerable-slot queries.

The module-level functions are the pure pipeline: generate candidates, drop
those outside the booking window, drop those that overlap the conflict index.
``AvailabilityService`` loads the inputs through injected collaborators and
feeds them to that pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from ..adapters.booking_store import BookingStore
from ..adapters.calendar import ExternalCalendarAdapter, FailOpenCalendar, NoCalendar
from ..config import BookingSettings
from ..domain.booking_window import is_within_window, last_bookable_date
from ..domain.conflict_index import ConflictIndex
from ..domain.models import (
    AvailabilityPolicy,
    Booking,
    BusyInterval,
    RejectionReason,
    Slot,
    format_hhmm,
)
from ..domain.slot_generator import generate_slots

logger = logging.getLogger(__name__)


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    BOOKING_DISABLED = "booking_disabled"


@dataclass(frozen=True)
class SlotQuery:
    """
    Result of an offerable-slots query.

    ``BOOKING_DISABLED`` is distinct from an available day without slots so the
    caller can show a different message.
    """
    status: AvailabilityStatus
    slots: Tuple[Slot, ...] = ()

    @property
    def booking_disabled(self) -> bool:
        return self.status is AvailabilityStatus.BOOKING_DISABLED

    @property
    def times(self) -> List[str]:
        return [slot.time for slot in self.slots]


def is_booking_enabled(policy: Optional[AvailabilityPolicy]) -> bool:
    return policy is not None and policy.enabled


def build_conflict_index(
    policy: AvailabilityPolicy,
    bookings: Iterable[Booking],
    busy: Iterable[BusyInterval],
) -> ConflictIndex:
    return ConflictIndex.build(
        bookings,
        busy,
        timezone=policy.timezone,
        buffer_before=policy.buffer_before,
        buffer_after=policy.buffer_after,
    )


def _iter_offerable(
    day: Date,
    policy: AvailabilityPolicy,
    index: ConflictIndex,
    now: DateTime,
) -> Iterator[Slot]:
    for slot in generate_slots(day, policy):
        if not is_within_window(slot.start, now, policy):
            continue
        if index.overlaps(slot.start, slot.end):
            continue
        yield slot


def offerable_slots(
    day: Date,
    policy: Optional[AvailabilityPolicy],
    bookings: Sequence[Booking],
    busy: Sequence[BusyInterval],
    now: DateTime,
) -> SlotQuery:
    """Offerable slots of ``day`` in chronological (generation) order."""
    if not is_booking_enabled(policy):
        return SlotQuery(status=AvailabilityStatus.BOOKING_DISABLED)

    index = build_conflict_index(policy, bookings, busy)
    slots = tuple(_iter_offerable(day, policy, index, now))

    return SlotQuery(status=AvailabilityStatus.AVAILABLE, slots=slots)


def is_date_offerable(
    day: Date,
    policy: Optional[AvailabilityPolicy],
    bookings: Sequence[Booking],
    busy: Sequence[BusyInterval],
    now: DateTime,
) -> bool:
    """True iff ``day`` has at least one offerable slot; stops at the first one."""
    if not is_booking_enabled(policy):
        return False

    index = build_conflict_index(policy, bookings, busy)
    return next(_iter_offerable(day, policy, index, now), None) is not None


def offerable_dates(
    start_date: Date,
    policy: Optional[AvailabilityPolicy],
    bookings: Sequence[Booking],
    busy: Sequence[BusyInterval],
    now: DateTime,
) -> List[Date]:
    """
    Dates from ``start_date`` up to the advance limit that have offerable slots.

    The conflict index is built once for the whole window.
    """
    if not is_booking_enabled(policy):
        return []

    index = build_conflict_index(policy, bookings, busy)
    today = now.in_timezone(policy.timezone).date()
    last = last_bookable_date(now, policy)

    dates: List[Date] = []
    current = max(start_date, today)

    while current <= last:
        if next(_iter_offerable(current, policy, index, now), None) is not None:
            dates.append(current)
        current = current.add(days=1)

    return dates


def check_slot(
    day: Date,
    start_time: time,
    policy: Optional[AvailabilityPolicy],
    bookings: Sequence[Booking],
    busy: Sequence[BusyInterval],
    now: DateTime,
) -> Optional[RejectionReason]:
    """
    Re-run the pipeline for one start time.

    Returns None when the slot is offerable, otherwise the rejection reason.
    """
    if not is_booking_enabled(policy):
        return RejectionReason.BOOKING_DISABLED

    wanted = format_hhmm(start_time)
    candidate = next((s for s in generate_slots(day, policy) if s.time == wanted), None)
    if candidate is None:
        return RejectionReason.SLOT_UNAVAILABLE

    if not is_within_window(candidate.start, now, policy):
        return RejectionReason.OUTSIDE_WINDOW

    index = build_conflict_index(policy, bookings, busy)
    if index.overlaps(candidate.start, candidate.end):
        return RejectionReason.SLOT_UNAVAILABLE

    return None


@dataclass(frozen=True)
class DateQuery:
    """Result of an offerable-dates query."""
    status: AvailabilityStatus
    dates: Tuple[Date, ...] = ()

    @property
    def booking_disabled(self) -> bool:
        return self.status is AvailabilityStatus.BOOKING_DISABLED


class SettingsProvider(Protocol):
    """Source of the latest booking settings of a coach."""

    async def get_settings(self, coach_id: str) -> Optional[BookingSettings]:
        """Return the settings, or None if the coach never configured booking."""


CalendarFactory = Callable[[BookingSettings], ExternalCalendarAdapter]


def _no_calendar(settings: BookingSettings) -> ExternalCalendarAdapter:
    return NoCalendar()


def _iso(day: Date) -> str:
    return day.format("YYYY-MM-DD")


@dataclass(frozen=True)
class CoachSnapshot:
    """Everything the pipeline needs, read at one point in time."""
    settings: Optional[BookingSettings]
    policy: Optional[AvailabilityPolicy]
    bookings: List[Booking]
    busy: List[BusyInterval]
    now: DateTime


class AvailabilityService:
    """
    Orchestrates settings, booking and calendar retrieval for slot queries.

    Dependency inversion toward protocols makes it easy to plug in the real
    stores and calendars or stubs in tests. Nothing is cached between calls;
    every query reads the latest settings and bookings.
    """

    def __init__(
        self,
        settings_provider: SettingsProvider,
        booking_store: BookingStore,
        calendar_factory: CalendarFactory = _no_calendar,
        *,
        calendar_timeout_seconds: float = 5.0,
        clock: Callable[[], DateTime] = pendulum.now,
    ) -> None:
        self._settings_provider = settings_provider
        self._booking_store = booking_store
        self._calendar_factory = calendar_factory
        self._calendar_timeout_seconds = calendar_timeout_seconds
        self._clock = clock

    async def load_snapshot(
        self,
        coach_id: str,
        first_day: Date,
        last_day: Optional[Date] = None,
        now: Optional[DateTime] = None,
    ) -> CoachSnapshot:
        """
        Read settings, bookings and busy intervals covering ``first_day..last_day``.

        ``last_day`` defaults to ``first_day``. Bookings are read one day wider
        on each side so buffers crossing midnight are seen.
        """
        now = now or self._clock()
        last_day = last_day or first_day

        settings = await self._settings_provider.get_settings(coach_id)
        policy = settings.to_policy() if settings is not None else None

        if not is_booking_enabled(policy):
            return CoachSnapshot(settings=settings, policy=policy, bookings=[], busy=[], now=now)

        bookings = await self._booking_store.list_bookings(
            coach_id,
            start_date=_iso(first_day.subtract(days=1)),
            end_date=_iso(last_day.add(days=1)),
        )

        window_start = pendulum.datetime(
            first_day.year, first_day.month, first_day.day, tz=policy.timezone
        )
        window_end = pendulum.datetime(
            last_day.year, last_day.month, last_day.day, tz=policy.timezone
        ).add(days=1)

        calendar = FailOpenCalendar(
            self._calendar_factory(settings),
            timeout_seconds=self._calendar_timeout_seconds,
        )
        busy = await calendar.get_busy_intervals(
            start_time=window_start,
            end_time=window_end,
            timezone=policy.timezone,
        )

        logger.debug(
            "Coach %s: %d bookings, %d busy intervals for %s..%s",
            coach_id,
            len(bookings),
            len(busy),
            first_day,
            last_day,
        )

        return CoachSnapshot(settings=settings, policy=policy, bookings=bookings, busy=busy, now=now)

    async def slots_for(
        self,
        coach_id: str,
        day: Date,
        now: Optional[DateTime] = None,
    ) -> SlotQuery:
        """Offerable slots of one day for a coach."""
        snapshot = await self.load_snapshot(coach_id, day, now=now)
        return offerable_slots(day, snapshot.policy, snapshot.bookings, snapshot.busy, snapshot.now)

    async def dates_for(
        self,
        coach_id: str,
        start_date: Optional[Date] = None,
        now: Optional[DateTime] = None,
    ) -> DateQuery:
        """
        Offerable dates from ``start_date`` (default today) to the advance limit.

        The external calendar is queried once for the whole window, which the
        advance limit keeps bounded.
        """
        now = now or self._clock()
        settings = await self._settings_provider.get_settings(coach_id)
        policy = settings.to_policy() if settings is not None else None

        if not is_booking_enabled(policy):
            return DateQuery(status=AvailabilityStatus.BOOKING_DISABLED)

        today = now.in_timezone(policy.timezone).date()
        first_day = max(start_date or today, today)
        last_day = last_bookable_date(now, policy)

        if first_day > last_day:
            return DateQuery(status=AvailabilityStatus.AVAILABLE)

        snapshot = await self.load_snapshot(coach_id, first_day, last_day, now=now)
        dates = offerable_dates(first_day, snapshot.policy, snapshot.bookings, snapshot.busy, now)

        return DateQuery(status=AvailabilityStatus.AVAILABLE, dates=tuple(dates))
