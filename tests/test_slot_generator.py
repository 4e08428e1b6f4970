"""
Tests for candidate slot generation.
"""

import pendulum

from coachslots.domain.models import AvailabilityPolicy, DayAvailability, TimeInterval
from coachslots.domain.slot_generator import generate, generate_slots

MONDAY = pendulum.date(2024, 11, 25)
TUESDAY = pendulum.date(2024, 11, 26)


def _policy(*intervals, enabled=True, weekday=0, **params) -> AvailabilityPolicy:
    day = DayAvailability(
        enabled=enabled,
        intervals=tuple(TimeInterval.from_strings(start, end) for start, end in intervals),
    )
    week = tuple(day if index == weekday else DayAvailability() for index in range(7))
    params.setdefault("duration", 60)
    params.setdefault("timezone", "Europe/Berlin")
    return AvailabilityPolicy(week=week, **params)


def _times(starts):
    return [start.format("HH:mm") for start in starts]


class TestGenerate:
    """Tests for generate()."""

    def test_steps_by_duration_plus_buffer_after(self):
        """09:00-17:00, 60 min + 15 min buffer: 16:30 no longer fits."""
        policy = _policy(("09:00", "17:00"), duration=60, buffer_after=15)

        starts = generate(MONDAY, policy)

        assert _times(starts) == ["09:00", "10:15", "11:30", "12:45", "14:00", "15:15"]

    def test_every_candidate_fits_its_interval(self):
        """No candidate ends after the interval closes."""
        policy = _policy(("09:00", "12:10"), ("13:00", "16:45"), duration=50, buffer_after=10)
        closes = {
            "09:00": pendulum.datetime(2024, 11, 25, 12, 10, tz="Europe/Berlin"),
            "13:00": pendulum.datetime(2024, 11, 25, 16, 45, tz="Europe/Berlin"),
        }

        for start in generate(MONDAY, policy):
            interval_end = closes["09:00"] if start.hour < 13 else closes["13:00"]
            assert start.add(minutes=policy.duration) <= interval_end

    def test_candidates_are_local_to_policy_timezone(self):
        policy = _policy(("09:00", "10:00"), duration=30, timezone="America/Santiago")

        starts = generate(MONDAY, policy)

        assert starts[0] == pendulum.datetime(2024, 11, 25, 9, 0, tz="America/Santiago")
        assert starts[0].timezone_name == "America/Santiago"

    def test_buffer_before_does_not_space_candidates(self):
        policy = _policy(("09:00", "11:00"), duration=30, buffer_before=30)

        assert _times(generate(MONDAY, policy)) == ["09:00", "09:30", "10:00", "10:30"]

    def test_interval_shorter_than_duration_yields_nothing(self):
        policy = _policy(("09:00", "09:45"), duration=60)

        assert generate(MONDAY, policy) == []

    def test_exact_fit_is_included(self):
        policy = _policy(("09:00", "10:00"), duration=60)

        assert _times(generate(MONDAY, policy)) == ["09:00"]

    def test_multiple_intervals_are_concatenated_in_order(self):
        policy = _policy(("09:00", "11:00"), ("14:00", "15:30"), duration=45, buffer_after=15)

        assert _times(generate(MONDAY, policy)) == ["09:00", "10:00", "14:00"]

    def test_disabled_day_yields_nothing_even_with_intervals(self):
        policy = _policy(("09:00", "17:00"), enabled=False)

        assert generate(MONDAY, policy) == []

    def test_unconfigured_weekday_yields_nothing(self):
        policy = _policy(("09:00", "17:00"))

        assert generate(TUESDAY, policy) == []

    def test_wall_times_in_spring_forward_gap_are_skipped(self):
        """Berlin skips 02:00-03:00 on 2025-03-30; no duplicates, still chronological."""
        dst_sunday = pendulum.date(2025, 3, 30)
        policy = _policy(("01:00", "04:00"), weekday=6, duration=30)

        starts = generate(dst_sunday, policy)

        assert _times(starts) == ["01:00", "01:30", "03:00", "03:30"]
        assert starts == sorted(starts)

    def test_identical_inputs_give_identical_output(self):
        policy = _policy(("09:00", "17:00"), duration=60, buffer_after=15)

        assert generate(MONDAY, policy) == generate(MONDAY, policy)


class TestGenerateSlots:
    """Tests for generate_slots()."""

    def test_slot_end_is_start_plus_duration(self):
        policy = _policy(("09:00", "12:00"), duration=50, buffer_after=10)

        slots = generate_slots(MONDAY, policy)

        assert [slot.time for slot in slots] == ["09:00", "10:00", "11:00"]
        assert all(slot.end == slot.start.add(minutes=50) for slot in slots)
        assert slots[0].date == "2024-11-25"
        assert slots[0].format_display() == "Monday, 2024-11-25 | 09:00 - 09:50"
