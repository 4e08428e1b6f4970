"""
Post-commit notification of new bookings.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import pendulum

from ..domain.models import Booking, parse_iso_date

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Receives every committed booking."""

    async def notify(self, booking: Booking) -> None:
        """Deliver or enqueue a notification about ``booking``."""


class OutboxNotifier:
    """
    Records in-app notifications for the coach.

    Delivery (email, push) is left to whatever consumes the outbox. When a
    path is given the outbox is also appended to a JSON file.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self.notifications: List[Dict[str, Any]] = []

    async def notify(self, booking: Booking) -> None:
        day = parse_iso_date(booking.date)
        notification = {
            "userId": booking.coach_id,
            "type": "new_booking",
            "title": "New booking",
            "message": (
                f"{booking.client_name} booked a session for "
                f"{day.format('dddd, MMMM D, YYYY')} at {booking.time}"
            ),
            "bookingId": booking.id,
            "read": False,
            "createdAt": pendulum.now("UTC").to_iso8601_string(),
        }
        self.notifications.append(notification)

        if self.path is not None:
            self._append_to_file(notification)

        logger.debug("Queued notification for booking %s", booking.id)

    def _append_to_file(self, notification: Dict[str, Any]) -> None:
        existing: List[Dict[str, Any]] = []
        if self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                existing = json.load(f)

        existing.append(notification)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(existing, f, indent=2, ensure_ascii=False)
