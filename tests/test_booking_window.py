"""
Tests for the minimum-notice and maximum-advance window.
"""

import pendulum

from coachslots.domain.booking_window import is_within_window, last_bookable_date, notice_cutoff
from coachslots.domain.models import AvailabilityPolicy

TZ = "Europe/Berlin"


class TestBookingWindow:
    """Tests for the booking window helpers."""

    def test_slot_exactly_at_notice_boundary_is_excluded(self):
        policy = AvailabilityPolicy(duration=60, min_notice_hours=24, timezone=TZ)
        now = pendulum.datetime(2024, 11, 24, 9, 0, tz=TZ)

        assert notice_cutoff(now, policy) == pendulum.datetime(2024, 11, 25, 9, 0, tz=TZ)
        assert not is_within_window(pendulum.datetime(2024, 11, 25, 9, 0, tz=TZ), now, policy)
        assert is_within_window(pendulum.datetime(2024, 11, 25, 9, 1, tz=TZ), now, policy)

    def test_zero_notice_still_excludes_now(self):
        policy = AvailabilityPolicy(duration=60, timezone=TZ)
        now = pendulum.datetime(2024, 11, 25, 9, 0, tz=TZ)

        assert not is_within_window(now, now, policy)
        assert is_within_window(now.add(minutes=1), now, policy)

    def test_advance_limit_is_inclusive_of_last_date(self):
        policy = AvailabilityPolicy(duration=60, max_advance_days=7, timezone=TZ)
        now = pendulum.datetime(2024, 11, 18, 8, 0, tz=TZ)

        assert last_bookable_date(now, policy) == pendulum.date(2024, 11, 25)
        assert is_within_window(pendulum.datetime(2024, 11, 25, 23, 0, tz=TZ), now, policy)
        assert not is_within_window(pendulum.datetime(2024, 11, 26, 9, 0, tz=TZ), now, policy)

    def test_advance_limit_uses_coach_local_date(self):
        """23:30 UTC on the 18th is already the 19th in Berlin."""
        policy = AvailabilityPolicy(duration=60, max_advance_days=7, timezone=TZ)
        now = pendulum.datetime(2024, 11, 18, 23, 30, tz="UTC")

        assert last_bookable_date(now, policy) == pendulum.date(2024, 11, 26)

    def test_notice_is_measured_across_timezones(self):
        policy = AvailabilityPolicy(duration=60, min_notice_hours=2, timezone=TZ)
        now = pendulum.datetime(2024, 11, 25, 7, 0, tz="UTC")  # 08:00 in Berlin

        assert not is_within_window(pendulum.datetime(2024, 11, 25, 10, 0, tz=TZ), now, policy)
        assert is_within_window(pendulum.datetime(2024, 11, 25, 10, 30, tz=TZ), now, policy)
