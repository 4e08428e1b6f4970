"""
Sources of per-coach booking settings.
"""

import asyncio
from pathlib import Path
from typing import Dict, Optional

from ..config import BookingSettings


class StaticSettingsProvider:
    """Settings held in memory, keyed by coach id."""

    def __init__(self, settings: Optional[Dict[str, BookingSettings]] = None) -> None:
        self._settings = dict(settings or {})

    def put(self, coach_id: str, settings: Optional[BookingSettings]) -> None:
        if settings is None:
            self._settings.pop(coach_id, None)
        else:
            self._settings[coach_id] = settings

    async def get_settings(self, coach_id: str) -> Optional[BookingSettings]:
        return self._settings.get(coach_id)


class FileSettingsProvider:
    """
    Settings of a single coach read from a JSON/YAML document.

    The file is re-read on every call so edits are picked up immediately.
    A missing file means the coach has not configured booking.
    """

    def __init__(self, coach_id: str, path: Path) -> None:
        self.coach_id = coach_id
        self.path = path

    async def get_settings(self, coach_id: str) -> Optional[BookingSettings]:
        if coach_id != self.coach_id:
            return None
        return await asyncio.to_thread(self._read)

    def _read(self) -> Optional[BookingSettings]:
        if not self.path.exists():
            return None
        return BookingSettings.load(self.path)
