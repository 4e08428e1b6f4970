"""
Tests for the merged conflict index.
"""

import pendulum

from coachslots.domain.conflict_index import ConflictIndex
from coachslots.domain.models import Booking, BookingStatus, TimeRange

TZ = "Europe/Berlin"


def _at(hhmm: str):
    return pendulum.parse(f"2024-11-25 {hhmm}", tz=TZ)


def _booking(time="10:00", duration=60, status=BookingStatus.CONFIRMED) -> Booking:
    return Booking(
        coach_id="coach-1",
        date="2024-11-25",
        time=time,
        duration_minutes=duration,
        client_name="Ana",
        client_email="ana@example.com",
        status=status,
    )


class TestConflictIndex:
    """Tests for ConflictIndex."""

    def test_booking_is_padded_by_both_buffers(self):
        """10:00-11:00 with 15 before / 30 after occupies 09:45-11:30."""
        index = ConflictIndex.build(
            [_booking()], [], timezone=TZ, buffer_before=15, buffer_after=30
        )

        assert index.occupied == [TimeRange(start=_at("09:45"), end=_at("11:30"))]
        assert not index.overlaps(_at("09:00"), _at("09:45"))
        assert index.overlaps(_at("09:00"), _at("09:46"))
        assert index.overlaps(_at("11:29"), _at("12:29"))
        assert not index.overlaps(_at("11:30"), _at("12:30"))

    def test_busy_intervals_are_not_padded(self):
        busy = [TimeRange(start=_at("14:00"), end=_at("15:00"))]

        index = ConflictIndex.build([], busy, timezone=TZ, buffer_before=30, buffer_after=30)

        assert not index.overlaps(_at("13:00"), _at("14:00"))
        assert not index.overlaps(_at("15:00"), _at("16:00"))
        assert index.overlaps(_at("14:30"), _at("14:45"))

    def test_cancelled_bookings_are_ignored(self):
        index = ConflictIndex.build(
            [_booking(status=BookingStatus.CANCELLED)], [], timezone=TZ, buffer_after=15
        )

        assert len(index) == 0
        assert not index.overlaps(_at("10:00"), _at("11:00"))

    def test_pending_and_completed_bookings_occupy(self):
        index = ConflictIndex.build(
            [_booking("09:00", status=BookingStatus.PENDING), _booking("13:00", status=BookingStatus.COMPLETED)],
            [],
            timezone=TZ,
        )

        assert index.overlaps(_at("09:30"), _at("10:30"))
        assert index.overlaps(_at("13:30"), _at("14:30"))

    def test_overlapping_and_adjacent_ranges_are_merged(self):
        busy = [
            TimeRange(start=_at("12:00"), end=_at("13:00")),
            TimeRange(start=_at("09:00"), end=_at("10:00")),
            TimeRange(start=_at("10:00"), end=_at("11:00")),
            TimeRange(start=_at("12:30"), end=_at("12:45")),
        ]

        index = ConflictIndex(busy)

        assert index.occupied == [
            TimeRange(start=_at("09:00"), end=_at("11:00")),
            TimeRange(start=_at("12:00"), end=_at("13:00")),
        ]

    def test_booking_times_are_read_in_the_given_timezone(self):
        index = ConflictIndex.build([_booking("10:00")], [], timezone="America/Santiago")

        santiago_ten = pendulum.datetime(2024, 11, 25, 10, 0, tz="America/Santiago")
        assert index.overlaps(santiago_ten, santiago_ten.add(minutes=30))
        assert not index.overlaps(_at("10:00"), _at("11:00"))

    def test_empty_index_never_overlaps(self):
        index = ConflictIndex([])

        assert not index.overlaps(_at("00:00"), _at("23:59"))
