"""
Configuration management using Pydantic models.

Two records live here: the per-coach ``BookingSettings`` document consumed by
the engine, and the ``AppConfig`` that wires the CLI to its data files.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .domain.exceptions import PolicyValidationError
from .domain.models import (
    WEEKDAY_NAMES,
    AvailabilityPolicy,
    DayAvailability,
    TimeInterval,
    parse_hhmm,
)


def _validate_timezone(value: str) -> str:
    try:
        pendulum.timezone(value)
    except Exception as exc:
        raise ValueError(f"Unknown timezone: {value!r}") from exc
    return value


class IntervalConfig(BaseModel):
    """A local ``HH:MM`` window as stored in the settings document."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_hhmm(cls, value: str) -> str:
        parse_hhmm(value)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "IntervalConfig":
        """Ensure the window opens before it closes."""
        if parse_hhmm(self.start) >= parse_hhmm(self.end):
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")
        return self


class DayConfig(BaseModel):
    """Availability of one weekday."""
    enabled: bool = False
    slots: List[IntervalConfig] = Field(default_factory=list)

    def to_domain(self) -> DayAvailability:
        return DayAvailability(
            enabled=self.enabled,
            intervals=tuple(TimeInterval.from_strings(s.start, s.end) for s in self.slots),
        )


def _default_week() -> Dict[str, DayConfig]:
    week = {}
    for index, name in enumerate(WEEKDAY_NAMES):
        if index < 5:
            week[name] = DayConfig(enabled=True, slots=[IntervalConfig(start="09:00", end="17:00")])
        else:
            week[name] = DayConfig()
    return week


class GoogleCalendarSettings(BaseModel):
    """Connection of the coach's Google Calendar used for busy times."""
    model_config = ConfigDict(populate_by_name=True)

    connected: bool = False
    check_busy_times: bool = Field(
        default=False,
        validation_alias=AliasChoices("checkBusyTimes", "check_busy_times"),
    )
    tokens: Dict[str, Any] = Field(default_factory=dict)

    @property
    def access_token(self) -> Optional[str]:
        return self.tokens.get("access_token")

    @property
    def is_active(self) -> bool:
        return self.connected and self.check_busy_times and bool(self.access_token)


class BookingSettings(BaseModel):
    """
    Per-coach booking settings record.

    Field names follow the stored document (camelCase); snake_case is accepted
    as well.
    """
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    title: str = "Coaching Session"
    description: str = ""
    duration: int = Field(default=60, gt=0)
    buffer_before: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("bufferBefore", "buffer_before")
    )
    buffer_after: int = Field(
        default=15, ge=0, validation_alias=AliasChoices("bufferAfter", "buffer_after")
    )
    min_notice_hours: int = Field(
        default=24,
        ge=0,
        validation_alias=AliasChoices("minNotice", "minNoticeHours", "min_notice_hours"),
    )
    max_advance_days: int = Field(
        default=30,
        ge=0,
        validation_alias=AliasChoices("maxAdvance", "maxAdvanceDays", "max_advance_days"),
    )
    timezone: str = "America/Santiago"
    meeting_link: str = Field(
        default="", validation_alias=AliasChoices("meetingLink", "meeting_link")
    )
    coach_name: str = Field(default="", validation_alias=AliasChoices("coachName", "coach_name"))
    coach_email: str = Field(default="", validation_alias=AliasChoices("coachEmail", "coach_email"))
    google_calendar: Optional[GoogleCalendarSettings] = Field(
        default=None, validation_alias=AliasChoices("googleCalendar", "google_calendar")
    )
    availability: Dict[str, DayConfig] = Field(default_factory=_default_week)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return _validate_timezone(value)

    @field_validator("availability")
    @classmethod
    def validate_availability(cls, value: Dict[str, DayConfig]) -> Dict[str, DayConfig]:
        """Ensure weekday keys are known and each day's windows are sorted and disjoint."""
        unknown = [key for key in value if key not in WEEKDAY_NAMES]
        if unknown:
            raise ValueError(f"Unknown weekday(s) in availability: {unknown}")

        for name, day in value.items():
            for previous, current in zip(day.slots, day.slots[1:]):
                if parse_hhmm(current.start) < parse_hhmm(previous.end):
                    raise ValueError(
                        f"{name}: intervals must be sorted and non-overlapping "
                        f"({previous.start}-{previous.end} then {current.start}-{current.end})"
                    )
        return value

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BookingSettings":
        """
        Validate a raw settings document.

        Raises:
            PolicyValidationError: If the document violates the schema
        """
        try:
            return cls.model_validate(record)
        except ValidationError as exc:
            raise PolicyValidationError(f"Invalid booking settings: {exc}") from exc

    @classmethod
    def load(cls, path: Path) -> "BookingSettings":
        """Load a settings document from a JSON or YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Booking settings file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise PolicyValidationError(f"Invalid settings document {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise PolicyValidationError("Settings document must contain a mapping at the root level.")

        return cls.from_record(data)

    def to_policy(self) -> AvailabilityPolicy:
        """Convert to the immutable policy used by the engine."""
        week = tuple(
            self.availability[name].to_domain() if name in self.availability else DayAvailability()
            for name in WEEKDAY_NAMES
        )
        try:
            return AvailabilityPolicy(
                duration=self.duration,
                buffer_before=self.buffer_before,
                buffer_after=self.buffer_after,
                min_notice_hours=self.min_notice_hours,
                max_advance_days=self.max_advance_days,
                timezone=self.timezone,
                week=week,
                enabled=self.enabled,
            )
        except ValueError as exc:
            raise PolicyValidationError(str(exc)) from exc


class AppConfig(BaseModel):
    """Application configuration for the CLI."""
    coach_id: str
    settings_file: Path
    bookings_file: Path = Path("bookings.json")
    busy_file: Optional[Path] = None
    notifications_file: Path = Path("notifications.json")
    calendar_timeout_seconds: float = 5.0
    google_calendar_id: str = "primary"

    @field_validator("calendar_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure the calendar timeout is positive."""
        if value <= 0:
            raise ValueError("calendar_timeout_seconds must be greater than zero")
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative file paths are resolved against the directory of the config
        file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        return config.relative_to(config_path.parent)

    def relative_to(self, base_dir: Path) -> "AppConfig":
        """Return a copy with relative file paths anchored at ``base_dir``."""
        def anchor(path: Optional[Path]) -> Optional[Path]:
            if path is None or path.is_absolute():
                return path
            return base_dir / path

        return self.model_copy(
            update={
                "settings_file": anchor(self.settings_file),
                "bookings_file": anchor(self.bookings_file),
                "busy_file": anchor(self.busy_file),
                "notifications_file": anchor(self.notifications_file),
            }
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
