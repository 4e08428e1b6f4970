"""
Google Calendar API client for fetching free/busy data.
"""

import asyncio
import logging
from typing import Any, Dict, List

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError
from ..domain.models import BusyInterval, TimeRange

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Client for Google Calendar free/busy queries.

    Uses the /freeBusy endpoint, which returns only busy ranges and no event
    details.
    """

    CALENDAR_API_ENDPOINT = "https://www.googleapis.com/calendar/v3"

    def __init__(self, access_token: str, calendar_id: str = "primary", timeout: float = 10):
        """
        Initialize the Calendar API client.

        Args:
            access_token: Valid OAuth access token of the coach
            calendar_id: Calendar to query, ``primary`` by default
            timeout: HTTP timeout in seconds
        """
        self.calendar_id = calendar_id
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }

    async def get_busy_intervals(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[BusyInterval]:
        """Fetch busy ranges without blocking the event loop."""
        return await asyncio.to_thread(self.query_free_busy, start_time, end_time, timezone)

    def query_free_busy(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[BusyInterval]:
        """
        Query busy time for the configured calendar.

        Raises:
            CalendarAPIError: If the API call fails
        """
        url = f"{self.CALENDAR_API_ENDPOINT}/freeBusy"

        payload = {
            "timeMin": start_time.in_timezone("UTC").to_iso8601_string(),
            "timeMax": end_time.in_timezone("UTC").to_iso8601_string(),
            "timeZone": timezone,
            "items": [{"id": self.calendar_id}],
        }

        try:
            response = requests.post(
                url,
                headers=self.headers,
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Failed to fetch free/busy from Google Calendar: {e}") from e
        except ValueError as e:
            raise CalendarAPIError(f"Google Calendar returned invalid JSON: {e}") from e

        return self._parse_free_busy_response(data, timezone)

    def _parse_free_busy_response(
        self,
        response_data: Dict[str, Any],
        timezone: str
    ) -> List[BusyInterval]:
        """
        Parse the freeBusy response into busy ranges.

        Response format:
        {
            "calendars": {
                "primary": {
                    "busy": [
                        {"start": "2024-11-25T10:00:00Z", "end": "2024-11-25T11:00:00Z"}
                    ],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }
        """
        calendars = response_data.get("calendars") if isinstance(response_data, dict) else None
        calendar = calendars.get(self.calendar_id, {}) if isinstance(calendars, dict) else None
        if not isinstance(calendar, dict):
            raise CalendarAPIError(f"Unexpected free/busy payload for {self.calendar_id}: {response_data!r}")

        errors = calendar.get("errors")
        if errors:
            raise CalendarAPIError(f"Google Calendar reported errors for {self.calendar_id}: {errors}")

        busy_ranges: List[BusyInterval] = []

        busy = calendar.get("busy") or []
        if not isinstance(busy, list):
            raise CalendarAPIError(f"Unexpected busy list for {self.calendar_id}: {busy!r}")

        for item in busy:
            try:
                start = pendulum.parse(item["start"]).in_timezone(timezone)
                end = pendulum.parse(item["end"]).in_timezone(timezone)
                busy_ranges.append(TimeRange(start=start, end=end))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Could not parse busy item %s: %s", item, e)

        return busy_ranges
