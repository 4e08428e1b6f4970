"""
Booking persistence with an atomic create-if-free primitive.

The reservation flow relies on ``create_if_free`` being linearizable per
coach: of two concurrent writes whose sessions collide, either on the same
``(coach_id, date, time)`` or through the buffers around them, at most one
succeeds.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from ..domain.conflict_index import ConflictIndex
from ..domain.exceptions import BookingNotFoundError, SlotTakenError
from ..domain.models import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """Storage operations needed by the engine."""

    async def list_bookings(
        self,
        coach_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Booking]:
        """Bookings of a coach with ``start_date <= date <= end_date``, any status."""

    async def find_by_idempotency_key(self, coach_id: str, key: str) -> Optional[Booking]:
        """Booking previously created with ``key``, if any."""

    async def create_if_free(
        self,
        booking: Booking,
        *,
        timezone: str = "UTC",
        buffer_before: int = 0,
        buffer_after: int = 0,
    ) -> Booking:
        """
        Insert ``booking`` unless a non-cancelled booking holds its slot or
        overlaps it once padded by the buffers.
        """

    async def get(self, booking_id: str) -> Booking:
        """Fetch a booking by id."""

    async def update_status(self, booking_id: str, status: BookingStatus) -> Booking:
        """Apply a status transition and persist it."""


class InMemoryBookingStore:
    """
    Process-local booking store.

    All writes go through one ``asyncio.Lock`` so the conflict check and the
    insert of ``create_if_free`` cannot interleave with another writer.
    """

    def __init__(self, bookings: Optional[List[Booking]] = None) -> None:
        self._bookings: Dict[str, Booking] = {b.id: b for b in bookings or []}
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, Booking]:
        return self._bookings

    def _save(self, bookings: Dict[str, Booking]) -> None:
        self._bookings = bookings

    async def list_bookings(
        self,
        coach_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Booking]:
        # ISO dates compare correctly as strings.
        return sorted(
            (
                b for b in self._load().values()
                if b.coach_id == coach_id
                and (start_date is None or b.date >= start_date)
                and (end_date is None or b.date <= end_date)
            ),
            key=lambda b: (b.date, b.time),
        )

    async def find_by_idempotency_key(self, coach_id: str, key: str) -> Optional[Booking]:
        for booking in self._load().values():
            if booking.coach_id == coach_id and booking.idempotency_key == key:
                return booking
        return None

    async def create_if_free(
        self,
        booking: Booking,
        *,
        timezone: str = "UTC",
        buffer_before: int = 0,
        buffer_after: int = 0,
    ) -> Booking:
        async with self._lock:
            bookings = dict(self._load())
            same_coach = [
                b for b in bookings.values() if b.coach_id == booking.coach_id and b.is_occupying
            ]

            if any(existing.slot_key == booking.slot_key for existing in same_coach):
                raise SlotTakenError(booking.coach_id, booking.date, booking.time)

            # Neighbouring slots committed since the caller checked still count.
            index = ConflictIndex.build(
                same_coach,
                [],
                timezone=timezone,
                buffer_before=buffer_before,
                buffer_after=buffer_after,
            )
            session = booking.time_range(timezone)
            if index.overlaps(session.start, session.end):
                raise SlotTakenError(booking.coach_id, booking.date, booking.time)

            bookings[booking.id] = booking
            self._save(bookings)

        logger.debug("Stored booking %s for %s", booking.id, booking.slot_key)
        return booking

    async def get(self, booking_id: str) -> Booking:
        try:
            return self._load()[booking_id]
        except KeyError:
            raise BookingNotFoundError(f"Booking not found: {booking_id}") from None

    async def update_status(self, booking_id: str, status: BookingStatus) -> Booking:
        async with self._lock:
            bookings = dict(self._load())
            if booking_id not in bookings:
                raise BookingNotFoundError(f"Booking not found: {booking_id}")

            updated = bookings[booking_id].with_status(status)
            bookings[booking_id] = updated
            self._save(bookings)

        logger.info("Booking %s is now %s", booking_id, updated.status.value)
        return updated


class JsonFileBookingStore(InMemoryBookingStore):
    """
    Booking store persisted to a JSON file.

    Writes replace the file atomically. Uniqueness is guaranteed among
    writers sharing this store instance (one process); separate processes
    writing the same file are not coordinated.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path

    def _load(self) -> Dict[str, Booking]:
        if not self.path.exists():
            return {}

        with open(self.path, "r", encoding="utf-8") as f:
            records = json.load(f)

        return {booking.id: booking for booking in map(Booking.from_dict, records)}

    def _save(self, bookings: Dict[str, Booking]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [b.to_dict() for b in sorted(bookings.values(), key=lambda b: b.created_at)]

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
