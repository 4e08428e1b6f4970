"""
File-backed calendar for running the engine without a Google account.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List

import pendulum
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError
from ..domain.models import BusyInterval, TimeRange

logger = logging.getLogger(__name__)


class MockCalendar:
    """
    Calendar that serves busy intervals from a JSON file.

    The file holds a list of ``{"start": ISO-8601, "end": ISO-8601}`` objects.
    """

    def __init__(self, data_file: Path):
        self.data_file = data_file

    def _load_events(self) -> list:
        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                events = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise CalendarAPIError(f"Could not read busy data from {self.data_file}: {exc}") from exc

        if not isinstance(events, list):
            raise CalendarAPIError(f"Busy data in {self.data_file} must be a list")
        return events

    async def get_busy_intervals(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[BusyInterval]:
        busy_ranges: List[BusyInterval] = []

        events = await asyncio.to_thread(self._load_events)

        for event in events:
            try:
                event_start = pendulum.parse(event["start"], tz=timezone)
                event_end = pendulum.parse(event["end"], tz=timezone)
                busy = TimeRange(start=event_start, end=event_end)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid busy event %s: %s", event, e)
                continue

            if busy.start < end_time and busy.end > start_time:
                busy_ranges.append(busy)

        return busy_ranges
