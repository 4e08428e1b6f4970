"""
Merged index of unavailable time built from bookings and external busy time.
"""

from typing import Iterable, List

from pendulum import DateTime

from .models import Booking, BusyInterval, TimeRange


class ConflictIndex:
    """
    Sorted, merged set of occupied ranges answering overlap queries.

    Existing bookings are padded by the policy buffers in both directions so
    that no new slot lands too close to them. External busy intervals are
    taken as-is since the coach does not control their boundaries.
    """

    def __init__(self, occupied: Iterable[TimeRange]):
        self._occupied = _merge_adjacent_ranges(list(occupied))

    @classmethod
    def build(
        cls,
        bookings: Iterable[Booking],
        busy_intervals: Iterable[BusyInterval],
        *,
        timezone: str,
        buffer_before: int = 0,
        buffer_after: int = 0
    ) -> "ConflictIndex":
        """
        Build the index for one query window.

        Args:
            bookings: Bookings of the coach; cancelled ones are ignored
            busy_intervals: External calendar busy ranges
            timezone: Coach timezone the booking dates and times are expressed in
            buffer_before: Minutes kept free before each booking
            buffer_after: Minutes kept free after each booking
        """
        occupied: List[TimeRange] = []

        for booking in bookings:
            if not booking.is_occupying:
                continue
            session = booking.time_range(timezone)
            occupied.append(
                TimeRange(
                    start=session.start.subtract(minutes=buffer_before),
                    end=session.end.add(minutes=buffer_after)
                )
            )

        occupied.extend(busy_intervals)

        return cls(occupied)

    @property
    def occupied(self) -> List[TimeRange]:
        return list(self._occupied)

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        """True iff ``[start, end)`` intersects any occupied range."""
        for occupied in self._occupied:
            if occupied.start >= end:
                # Sorted by start; nothing further can overlap.
                return False
            if start < occupied.end and end > occupied.start:
                return True
        return False

    def __len__(self) -> int:
        return len(self._occupied)


def _merge_adjacent_ranges(ranges: List[TimeRange]) -> List[TimeRange]:
    """
    Merge overlapping or adjacent time ranges.

    Example: [09:00-10:00, 10:00-11:00] -> [09:00-11:00]
    """
    if not ranges:
        return []

    sorted_ranges = sorted(ranges, key=lambda r: r.start)
    merged: List[TimeRange] = [sorted_ranges[0]]

    for current in sorted_ranges[1:]:
        last = merged[-1]

        if current.start <= last.end:
            merged[-1] = TimeRange(
                start=last.start,
                end=max(last.end, current.end)
            )
        else:
            merged.append(current)

    return merged
