"""
External calendar capability and its timeout / fail-open guard.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Protocol

from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError
from ..domain.models import BusyInterval

logger = logging.getLogger(__name__)


class ExternalCalendarAdapter(Protocol):
    """Protocol describing the calendar behaviour needed by the engine."""

    async def get_busy_intervals(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[BusyInterval]:
        """Return busy ranges overlapping ``[start_time, end_time)``."""


class NoCalendar:
    """Adapter for coaches without a connected calendar."""

    async def get_busy_intervals(self, start_time, end_time, timezone) -> List[BusyInterval]:
        return []


class FailOpenCalendar:
    """
    Wraps an adapter with a bounded timeout.

    Internal booking conflicts matter more than external ones, so a slow or
    failing calendar degrades to "no external busy time" instead of failing
    the availability query.
    """

    def __init__(self, adapter: ExternalCalendarAdapter, timeout_seconds: float = 5.0) -> None:
        self._adapter = adapter
        self._timeout_seconds = timeout_seconds

    async def get_busy_intervals(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[BusyInterval]:
        try:
            return await asyncio.wait_for(
                self._adapter.get_busy_intervals(
                    start_time=start_time,
                    end_time=end_time,
                    timezone=timezone,
                ),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "External calendar timed out after %.1fs; ignoring busy intervals for %s - %s",
                self._timeout_seconds,
                start_time,
                end_time,
            )
        except CalendarAPIError as exc:
            logger.warning("External calendar unavailable (%s); ignoring busy intervals", exc)
        return []
