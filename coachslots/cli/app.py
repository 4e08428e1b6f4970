"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.booking_store import JsonFileBookingStore
from ..adapters.calendar import ExternalCalendarAdapter, NoCalendar
from ..adapters.google_calendar import GoogleCalendarClient
from ..adapters.mock_calendar import MockCalendar
from ..adapters.notifier import OutboxNotifier
from ..adapters.settings_store import FileSettingsProvider
from ..config import AppConfig, BookingSettings, get_default_config_path
from ..domain.exceptions import CoachSlotsError
from ..domain.models import Booking, BookingStatus, ClientInfo, parse_hhmm, parse_iso_date
from ..services.availability import AvailabilityService
from ..services.booking_transaction import BookingTransaction, Rejected

app = typer.Typer(
    name="coachslots",
    help="Offer and reserve coaching appointment slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Evaluate as of this ISO-8601 instant instead of the current time."),
]

REJECTION_MESSAGES = {
    "slot_unavailable": "This slot is no longer available. Please pick another time.",
    "outside_window": "This slot is outside the bookable window.",
    "booking_disabled": "Online booking is disabled for this coach.",
}


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show log output.")] = False,
):
    """
    Offer and reserve coaching appointment slots.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


class _Services:
    """Wires config-defined files to the engine."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.store = JsonFileBookingStore(config.bookings_file)
        self.notifier = OutboxNotifier(config.notifications_file)
        self.availability = AvailabilityService(
            settings_provider=FileSettingsProvider(config.coach_id, config.settings_file),
            booking_store=self.store,
            calendar_factory=self._calendar_for,
            calendar_timeout_seconds=config.calendar_timeout_seconds,
        )
        self.transaction = BookingTransaction(
            availability=self.availability,
            booking_store=self.store,
            notifier=self.notifier,
        )

    def _calendar_for(self, settings: BookingSettings) -> ExternalCalendarAdapter:
        if self.config.busy_file is not None:
            return MockCalendar(self.config.busy_file)
        if settings.google_calendar is not None and settings.google_calendar.is_active:
            return GoogleCalendarClient(
                access_token=settings.google_calendar.access_token,
                calendar_id=self.config.google_calendar_id,
            )
        return NoCalendar()


def _load_services(config_file: Optional[Path]) -> _Services:
    config_path = config_file or get_default_config_path()
    return _Services(AppConfig.load_from_yaml(config_path))


def _parse_now(now: Optional[str]):
    if now is None:
        return None
    try:
        return pendulum.parse(now)
    except ValueError as e:
        raise ValueError(f"Invalid --now value {now!r}: {e}") from e


def _fail(message) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(message))}")
    raise typer.Exit(1)


def _print_booking(booking: Booking) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Booking", booking.id)
    table.add_row("Date", f"{booking.date} {booking.time} ({booking.duration_minutes} min)")
    table.add_row("Client", f"{booking.client_name} <{booking.client_email}>")
    table.add_row("Status", booking.status.value)
    if booking.meeting_link:
        table.add_row("Meeting", booking.meeting_link)
    console.print(table)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    List the offerable start times of one day.

    Examples:

        coachslots slots 2024-11-25
        coachslots slots 2024-11-25 --now 2024-11-20T08:00:00-03:00
    """
    try:
        services = _load_services(config_file)
        day = parse_iso_date(date)
        result = asyncio.run(
            services.availability.slots_for(services.config.coach_id, day, now=_parse_now(now))
        )
    except (FileNotFoundError, ValueError, CoachSlotsError) as e:
        _fail(e)

    if result.booking_disabled:
        console.print("[yellow]⚠ Online booking is disabled for this coach.[/yellow]")
        return

    if not result.slots:
        console.print(f"[yellow]No available slots on {date}.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(result.slots)} slot(s) available:[/bold green]\n")
    for slot in result.slots:
        console.print(f"  {slot.format_display()}")
    console.print()


@app.command()
def days(
    start: Annotated[Optional[str], typer.Option("--start", help="First date (YYYY-MM-DD), default today")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    List the dates that still have offerable slots.
    """
    try:
        services = _load_services(config_file)
        start_date = parse_iso_date(start) if start else None
        result = asyncio.run(
            services.availability.dates_for(
                services.config.coach_id, start_date=start_date, now=_parse_now(now)
            )
        )
    except (FileNotFoundError, ValueError, CoachSlotsError) as e:
        _fail(e)

    if result.booking_disabled:
        console.print("[yellow]⚠ Online booking is disabled for this coach.[/yellow]")
        return

    if not result.dates:
        console.print("[yellow]No available dates in the booking window.[/yellow]")
        return

    table = Table(title="Available dates", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold yellow")
    table.add_column("Weekday", style="dim")
    for day in result.dates:
        table.add_row(day.format("YYYY-MM-DD"), day.format("dddd"))

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    name: Annotated[str, typer.Option("--name", help="Client name")],
    email: Annotated[str, typer.Option("--email", help="Client email")],
    notes: Annotated[str, typer.Option("--notes", help="Notes for the coach")] = "",
    key: Annotated[Optional[str], typer.Option("--key", help="Idempotency key for safe retries")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    Reserve a slot for a client.

    Examples:

        coachslots book 2024-11-25 09:00 --name "Ana" --email ana@example.com
    """
    try:
        services = _load_services(config_file)
        day = parse_iso_date(date)
        start_time = parse_hhmm(time)
        client = ClientInfo(name=name, email=email, notes=notes)
        result = asyncio.run(
            services.transaction.reserve(
                services.config.coach_id,
                day,
                start_time,
                client,
                idempotency_key=key,
                now=_parse_now(now),
            )
        )
    except (FileNotFoundError, ValueError, CoachSlotsError) as e:
        _fail(e)

    if isinstance(result, Rejected):
        console.print(f"[bold red]✗ {REJECTION_MESSAGES[result.reason.value]}[/bold red] ({result})")
        raise typer.Exit(1)

    console.print("[bold green]✓ Booking created[/bold green]\n")
    _print_booking(result)


def _change_status(booking_id: str, status: BookingStatus, config_file: Optional[Path]) -> None:
    try:
        services = _load_services(config_file)
        booking = asyncio.run(services.store.update_status(booking_id, status))
    except (FileNotFoundError, ValueError, CoachSlotsError) as e:
        _fail(e)

    console.print(f"[green]✓ Booking {booking.id} is now {booking.status.value}.[/green]")


@app.command()
def confirm(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
):
    """
    Confirm a pending booking.
    """
    _change_status(booking_id, BookingStatus.CONFIRMED, config_file)


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
):
    """
    Cancel a booking and free its slot.
    """
    _change_status(booking_id, BookingStatus.CANCELLED, config_file)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]coachslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
