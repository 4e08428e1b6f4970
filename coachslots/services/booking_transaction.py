"""
Reservation of a single slot.

``BookingTransaction.reserve`` closes the gap between listing slots and
submitting the booking form: it re-reads the coach's state, re-checks the
exact start time and only then performs the store's atomic create-if-free
write. Concurrent reservations of the same ``(coach_id, date, time)`` resolve
to exactly one winner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import Optional, Union

from pendulum import Date, DateTime

from ..adapters.booking_store import BookingStore
from ..adapters.notifier import Notifier
from ..domain.exceptions import SlotTakenError
from ..domain.models import (
    Booking,
    BookingStatus,
    ClientInfo,
    RejectionReason,
    format_hhmm,
)
from .availability import AvailabilityService, check_slot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rejected:
    """A reservation that was not committed."""
    reason: RejectionReason

    def __str__(self) -> str:
        return self.reason.value


ReservationResult = Union[Booking, Rejected]


class BookingTransaction:
    """
    Re-validates a slot and commits the booking atomically.

    States: Checking -> Committed | Rejected.
    """

    def __init__(
        self,
        availability: AvailabilityService,
        booking_store: BookingStore,
        notifier: Notifier,
    ) -> None:
        self._availability = availability
        self._booking_store = booking_store
        self._notifier = notifier

    async def reserve(
        self,
        coach_id: str,
        day: Date,
        start_time: time,
        client: ClientInfo,
        *,
        idempotency_key: Optional[str] = None,
        now: Optional[DateTime] = None,
    ) -> ReservationResult:
        """
        Reserve ``start_time`` on ``day`` for ``client``.

        Args:
            coach_id: Coach owning the calendar
            day: Coach-local date of the session
            start_time: Coach-local start as a ``datetime.time``
            client: Validated client contact details
            idempotency_key: Key identifying this logical request; a retry
                with the same key returns the booking it already created;
                a key whose booking was cancelled is spent
            now: Reference instant for the booking window (defaults to the clock)

        Returns:
            The committed Booking, or Rejected with the reason
        """
        date_str = day.format("YYYY-MM-DD")
        time_str = format_hhmm(start_time)

        if idempotency_key:
            previous = await self._booking_store.find_by_idempotency_key(coach_id, idempotency_key)
            if previous is not None:
                if not previous.is_occupying:
                    logger.info(
                        "Idempotency key %s belongs to cancelled booking %s; rejecting",
                        idempotency_key,
                        previous.id,
                    )
                    return Rejected(RejectionReason.SLOT_UNAVAILABLE)
                if previous.slot_key == (coach_id, date_str, time_str):
                    logger.info("Idempotent replay of booking %s", previous.id)
                    return previous
                logger.info(
                    "Idempotency key %s already used for %s; rejecting %s %s",
                    idempotency_key,
                    previous.slot_key,
                    date_str,
                    time_str,
                )
                return Rejected(RejectionReason.SLOT_UNAVAILABLE)

        # Fresh read; nothing from the listing step is reused.
        snapshot = await self._availability.load_snapshot(coach_id, day, now=now)

        reason = check_slot(
            day,
            start_time,
            snapshot.policy,
            snapshot.bookings,
            snapshot.busy,
            snapshot.now,
        )
        if reason is not None:
            logger.info("Rejected %s %s for coach %s: %s", date_str, time_str, coach_id, reason.value)
            return Rejected(reason)

        settings = snapshot.settings
        booking = Booking(
            coach_id=coach_id,
            date=date_str,
            time=time_str,
            duration_minutes=snapshot.policy.duration,
            client_name=client.name.strip(),
            client_email=client.email.strip(),
            notes=client.notes,
            status=BookingStatus.PENDING,
            created_at=snapshot.now.in_timezone("UTC"),
            idempotency_key=idempotency_key,
            title=settings.title,
            meeting_link=settings.meeting_link,
            coach_name=settings.coach_name,
            coach_email=settings.coach_email,
        )

        try:
            committed = await self._booking_store.create_if_free(
                booking,
                timezone=snapshot.policy.timezone,
                buffer_before=snapshot.policy.buffer_before,
                buffer_after=snapshot.policy.buffer_after,
            )
        except SlotTakenError:
            logger.info(
                "Lost reservation race for %s %s (coach %s)", date_str, time_str, coach_id
            )
            return Rejected(RejectionReason.SLOT_UNAVAILABLE)

        logger.info("Committed booking %s: %s %s for coach %s", committed.id, date_str, time_str, coach_id)

        try:
            await self._notifier.notify(committed)
        except Exception:
            # The booking is durable; a failed notification must not undo it.
            logger.exception("Notifier failed for booking %s", committed.id)

        return committed
