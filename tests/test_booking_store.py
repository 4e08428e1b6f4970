"""
Tests for file-backed stores, settings providers and the notification outbox.
"""

import asyncio
import json

import pytest

from coachslots.adapters.booking_store import InMemoryBookingStore, JsonFileBookingStore
from coachslots.adapters.notifier import OutboxNotifier
from coachslots.adapters.settings_store import FileSettingsProvider, StaticSettingsProvider
from coachslots.config import BookingSettings
from coachslots.domain.exceptions import (
    BookingNotFoundError,
    InvalidStatusTransition,
    SlotTakenError,
)
from coachslots.domain.models import Booking, BookingStatus


def _booking(date="2024-11-25", time="10:00", coach_id="coach-1", **kwargs) -> Booking:
    return Booking(
        coach_id=coach_id,
        date=date,
        time=time,
        duration_minutes=60,
        client_name="Ana",
        client_email="ana@example.com",
        **kwargs,
    )


class TestInMemoryBookingStore:
    """Tests for filtering and status updates."""

    def test_list_filters_by_coach_and_date_range(self):
        store = InMemoryBookingStore(
            [
                _booking("2024-11-26", "09:00"),
                _booking("2024-11-25", "11:00"),
                _booking("2024-11-25", "09:00"),
                _booking("2024-11-28", "09:00"),
                _booking("2024-11-25", "09:00", coach_id="coach-2"),
            ]
        )

        bookings = asyncio.run(store.list_bookings("coach-1", "2024-11-25", "2024-11-26"))

        assert [(b.date, b.time) for b in bookings] == [
            ("2024-11-25", "09:00"),
            ("2024-11-25", "11:00"),
            ("2024-11-26", "09:00"),
        ]

    def test_update_status_applies_transition(self):
        booking = _booking()
        store = InMemoryBookingStore([booking])

        updated = asyncio.run(store.update_status(booking.id, BookingStatus.CONFIRMED))

        assert updated.status is BookingStatus.CONFIRMED
        assert asyncio.run(store.get(booking.id)).status is BookingStatus.CONFIRMED

    def test_update_status_rejects_invalid_transition(self):
        booking = _booking(status=BookingStatus.CANCELLED)
        store = InMemoryBookingStore([booking])

        with pytest.raises(InvalidStatusTransition):
            asyncio.run(store.update_status(booking.id, BookingStatus.CONFIRMED))

    def test_unknown_booking(self):
        store = InMemoryBookingStore()

        with pytest.raises(BookingNotFoundError):
            asyncio.run(store.get("nope"))
        with pytest.raises(BookingNotFoundError):
            asyncio.run(store.update_status("nope", BookingStatus.CANCELLED))

    def test_cancelled_booking_does_not_block_create(self):
        cancelled = _booking(status=BookingStatus.CANCELLED)
        store = InMemoryBookingStore([cancelled])

        created = asyncio.run(store.create_if_free(_booking()))

        assert created.id != cancelled.id

    def test_create_rejects_booking_inside_neighbour_buffer(self):
        store = InMemoryBookingStore([_booking(time="10:15")])

        with pytest.raises(SlotTakenError):
            asyncio.run(
                store.create_if_free(
                    _booking(time="09:00"), timezone="Europe/Berlin", buffer_before=30, buffer_after=15
                )
            )

    def test_create_allows_neighbour_outside_buffers(self):
        store = InMemoryBookingStore([_booking(time="10:15"), _booking(time="09:00", coach_id="coach-2")])

        created = asyncio.run(
            store.create_if_free(
                _booking(time="09:00"), timezone="Europe/Berlin", buffer_before=15, buffer_after=15
            )
        )

        assert created.time == "09:00"

    def test_find_by_idempotency_key_is_scoped_to_coach(self):
        booking = _booking(idempotency_key="req-1")
        store = InMemoryBookingStore([booking])

        assert asyncio.run(store.find_by_idempotency_key("coach-1", "req-1")) is booking
        assert asyncio.run(store.find_by_idempotency_key("coach-2", "req-1")) is None


class TestJsonFileBookingStore:
    """Tests for the JSON file store."""

    def test_bookings_survive_a_new_store_instance(self, tmp_path):
        path = tmp_path / "data" / "bookings.json"
        booking = _booking(idempotency_key="req-1", title="Coaching Session")

        asyncio.run(JsonFileBookingStore(path).create_if_free(booking))
        reloaded = asyncio.run(JsonFileBookingStore(path).get(booking.id))

        assert reloaded.slot_key == booking.slot_key
        assert reloaded.idempotency_key == "req-1"
        assert reloaded.title == "Coaching Session"

        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[0]["coachId"] == "coach-1"
        assert records[0]["status"] == "pending"

    def test_duplicate_slot_is_rejected_across_instances(self, tmp_path):
        path = tmp_path / "bookings.json"
        asyncio.run(JsonFileBookingStore(path).create_if_free(_booking()))

        with pytest.raises(SlotTakenError):
            asyncio.run(JsonFileBookingStore(path).create_if_free(_booking()))

    def test_status_change_is_persisted(self, tmp_path):
        path = tmp_path / "bookings.json"
        booking = _booking()
        asyncio.run(JsonFileBookingStore(path).create_if_free(booking))

        asyncio.run(JsonFileBookingStore(path).update_status(booking.id, BookingStatus.CANCELLED))

        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[0]["status"] == "cancelled"
        assert list(tmp_path.glob("*.tmp")) == []

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileBookingStore(tmp_path / "bookings.json")

        assert asyncio.run(store.list_bookings("coach-1")) == []


class TestSettingsProviders:
    """Tests for settings lookup."""

    def test_static_provider(self):
        settings = BookingSettings.from_record({"duration": 30})
        provider = StaticSettingsProvider()
        provider.put("coach-1", settings)

        assert asyncio.run(provider.get_settings("coach-1")) is settings
        assert asyncio.run(provider.get_settings("coach-2")) is None

        provider.put("coach-1", None)
        assert asyncio.run(provider.get_settings("coach-1")) is None

    def test_file_provider_rereads_the_document(self, tmp_path):
        path = tmp_path / "settings.json"
        provider = FileSettingsProvider("coach-1", path)

        assert asyncio.run(provider.get_settings("coach-1")) is None

        path.write_text(json.dumps({"duration": 30}), encoding="utf-8")
        assert asyncio.run(provider.get_settings("coach-1")).duration == 30

        path.write_text(json.dumps({"duration": 90}), encoding="utf-8")
        assert asyncio.run(provider.get_settings("coach-1")).duration == 90
        assert asyncio.run(provider.get_settings("coach-2")) is None


class TestOutboxNotifier:
    """Tests for the notification outbox."""

    def test_notifications_are_appended_to_file(self, tmp_path):
        path = tmp_path / "notifications.json"
        notifier = OutboxNotifier(path)
        first = _booking()
        second = _booking(time="11:00")

        asyncio.run(notifier.notify(first))
        asyncio.run(notifier.notify(second))

        records = json.loads(path.read_text(encoding="utf-8"))
        assert [r["bookingId"] for r in records] == [first.id, second.id]
        assert records[0]["userId"] == "coach-1"
        assert records[0]["read"] is False
        assert records[1]["message"] == "Ana booked a session for Monday, November 25, 2024 at 11:00"
