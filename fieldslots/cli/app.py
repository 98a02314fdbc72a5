"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional, Annotated

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..adapters.google_geocoder import GoogleGeocoder
from ..adapters.json_store import JsonBookingStore
from ..domain.exceptions import FieldSlotsError
from ..domain.geo import CoordinateResolver
from ..domain.location_scorer import LocationScorer
from ..domain.models import CandidateSlot, Contact, LocationAwareSlot
from ..domain.slot_calculator import SlotCalculator
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="fieldslots",
    help="Find bookable time slots for field technicians",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="Booking data JSON file. Overrides data_file from the config.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Print slots as JSON instead of a table.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """
    Load the config file. An explicitly given file must exist; without one
    the built-in defaults are used when no config.yaml is found.
    """
    if config_file:
        return AppConfig.load_from_yaml(config_file)

    config_path = get_default_config_path()
    if config_path.exists():
        return AppConfig.load_from_yaml(config_path)

    return AppConfig()


def _build_service(config: AppConfig, store: JsonBookingStore) -> AvailabilityService:
    """Wire the booking store, geocoder and domain components together."""
    geocoder = GoogleGeocoder.from_config(config.geocoding)
    resolver = CoordinateResolver(geocoder if geocoder.is_configured else None)

    return AvailabilityService(
        schedules=store,
        appointments=store,
        slot_calculator=SlotCalculator(
            timezone=config.timezone,
            past_tolerance_minutes=config.defaults.past_tolerance_minutes,
        ),
        location_scorer=LocationScorer(resolver),
        catalog=store,
        default_duration_minutes=config.defaults.duration_minutes,
    )


def _open_store(config: AppConfig, data_file: Optional[Path]) -> JsonBookingStore:
    return JsonBookingStore.from_file(data_file or config.data_file, timezone=config.timezone)


def _print_slot_table(slots: List[CandidateSlot], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Date", style="dim")
    table.add_column("Time", style="bold yellow")
    table.add_column("Technician")
    table.add_column("Calendar", style="dim")

    for slot in slots:
        table.add_row(
            slot.start.format("DD.MM.YYYY"),
            f"{slot.start.format('HH:mm')} - {slot.end.format('HH:mm')}",
            slot.employee_name,
            slot.calendar_id,
        )

    console.print()
    console.print(table)
    console.print()


def _print_scored_table(slots: List[LocationAwareSlot], title: str) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Time", style="bold yellow")
    table.add_column("Technician")
    table.add_column("Distance")
    table.add_column("Optimal")

    for scored in slots:
        slot = scored.slot
        distance = "-" if scored.distance_km is None else f"{scored.distance_km:.2f} km"
        table.add_row(
            f"{slot.start.format('HH:mm')} - {slot.end.format('HH:mm')}",
            slot.employee_name,
            distance,
            "[green]yes[/green]" if scored.is_optimal else "no",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    date: Annotated[Optional[str], typer.Argument(help="Day to search (YYYY-MM-DD). Defaults to today.")] = None,
    service_id: Annotated[Optional[str], typer.Option("--service-id", "-s", help="Only use working hours open to this service.")] = None,
    category_id: Annotated[Optional[str], typer.Option("--category-id", help="Service category, used to look up the duration.")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    List bookable slots of all technicians on a day.

    Examples:

        fieldslots slots 2024-11-25
        fieldslots slots 2024-11-25 --category-id c1 --service-id s1
        fieldslots slots 2024-11-25 --json
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        service = _build_service(config, _open_store(config, data_file))
        day = date or pendulum.today(config.timezone).to_date_string()

        found = asyncio.run(
            service.get_available_slots(day, service_id, category_id=category_id)
        )

    except (FieldSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([slot.to_dict() for slot in found], indent=2))
        return

    if not found:
        console.print("[yellow]⚠ No bookable slots found.[/yellow]")
        return

    _print_slot_table(found, title=f"{len(found)} bookable slot(s) on {day}")


@app.command()
def suggest(
    date: Annotated[str, typer.Argument(help="Day to search (YYYY-MM-DD).")],
    calendar_id: Annotated[str, typer.Argument(help="Calendar (technician) ID.")],
    district: Annotated[Optional[int], typer.Option("--district", help="Customer district (1-23).")] = None,
    address: Annotated[Optional[str], typer.Option("--address", help="Customer street address, geocoded when an API key is set.")] = None,
    lat: Annotated[Optional[float], typer.Option("--lat", help="Customer latitude.")] = None,
    lng: Annotated[Optional[float], typer.Option("--lng", help="Customer longitude.")] = None,
    service_id: Annotated[Optional[str], typer.Option("--service-id", "-s", help="Only use working hours open to this service.")] = None,
    category_id: Annotated[Optional[str], typer.Option("--category-id", help="Service category, used to look up the duration.")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Score a technician's slots by distance to the customer.

    Examples:

        fieldslots suggest 2024-11-25 1 --district 1
        fieldslots suggest 2024-11-25 1 --address "Praterstrasse 10"
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        service = _build_service(config, _open_store(config, data_file))
        customer = Contact(address=address, lat=lat, lng=lng, district=district)

        scored = asyncio.run(
            service.get_location_aware_slots(
                date, calendar_id, customer, service_id, category_id=category_id
            )
        )

    except (FieldSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([slot.to_dict() for slot in scored], indent=2))
        return

    if not scored:
        console.print(f"[yellow]⚠ Calendar {calendar_id} has no working hours on {date}.[/yellow]")
        return

    _print_scored_table(scored, title=f"Calendar {calendar_id} on {date}")


@app.command()
def calendars(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List all technician calendars in the booking data.
    """
    try:
        config = _load_config(config_file)
        store = _open_store(config, data_file)
    except (FieldSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    records = store.calendars()
    if not records:
        console.print("[yellow]No calendars defined in the booking data.[/yellow]")
        return

    table = Table(
        title="Technician calendars",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", style="bold yellow")
    table.add_column("Technician")
    table.add_column("Active", style="dim")

    for record in records:
        table.add_row(record.calendar_id, record.employee_name, "yes" if record.active else "no")

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]fieldslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
