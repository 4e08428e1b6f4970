"""
Candidate slot generation from a weekly availability policy.

Pure domain logic: the output depends only on the date and the policy, with
no I/O and no hidden state.
"""

from datetime import time
from typing import List

from pendulum import Date, DateTime

from .models import AvailabilityPolicy, Slot, TimeInterval, local_datetime, minutes_of_day


def generate(day: Date, policy: AvailabilityPolicy) -> List[DateTime]:
    """
    Return the candidate start times on ``day`` in ``policy.timezone``.

    Algorithm:
    1. Look up the weekday; a disabled or empty day yields nothing
    2. For each interval walk a cursor from its start in steps of
       ``duration + buffer_after``
    3. Emit the cursor while ``cursor + duration`` still fits the interval,
       skipping wall times that a DST transition removes

    ``buffer_before`` does not space candidates; it is applied around
    existing bookings by the conflict index.
    """
    availability = policy.day_for(day)

    if not availability.is_open:
        return []

    candidates: List[DateTime] = []

    for interval in availability.intervals:
        candidates.extend(_walk_interval(day, interval, policy))

    return candidates


def generate_slots(day: Date, policy: AvailabilityPolicy) -> List[Slot]:
    """Candidates of ``generate`` paired with their end instants."""
    return [
        Slot(start=start, end=start.add(minutes=policy.duration))
        for start in generate(day, policy)
    ]


def _walk_interval(
    day: Date,
    interval: TimeInterval,
    policy: AvailabilityPolicy
) -> List[DateTime]:
    """
    Step through one interval on wall-clock minutes.

    Example (duration 60, buffer_after 15):
    Interval: 09:00 - 11:30
    Result: [09:00, 10:15]
    """
    step = policy.duration + policy.buffer_after
    cursor = minutes_of_day(interval.start)
    end = minutes_of_day(interval.end)

    starts: List[DateTime] = []

    while cursor + policy.duration <= end:
        at = time(hour=cursor // 60, minute=cursor % 60)
        start = local_datetime(day, at, policy.timezone)
        # Wall times inside a DST gap get shifted by pendulum; they do not exist.
        if (start.hour, start.minute) == (at.hour, at.minute):
            starts.append(start)
        cursor += step

    return starts
