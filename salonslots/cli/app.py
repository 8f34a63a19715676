"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple, Annotated

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.memory_store import InMemoryBookingStore
from ..adapters.notifier import LoggingNotifier
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SalonSlotsError, StaleSlotConflict
from ..domain.models import parse_time_of_day
from ..domain.slot_calculator import coerce_date
from ..services.booking import BookingRequest, BookingService

app = typer.Typer(
    name="salonslots",
    help="List bookable salon time slots and book appointments",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Salon availability and booking tool.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _build_service(config_file: Optional[Path]) -> Tuple[AppConfig, InMemoryBookingStore, BookingService]:
    """Load config and data file and wire up the booking service."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)

    store = InMemoryBookingStore.from_json(config.data_file, timezone=config.timezone)
    service = BookingService(
        store=store,
        slot_calculator=config.build_slot_calculator(),
        notifier=LoggingNotifier(),
    )
    return config, store, service


def _resolve_day(day: Optional[str], tz: str):
    if day is None:
        return pendulum.today(tz).date()
    return coerce_date(day)


@app.command()
def slots(
    provider_id: Annotated[str, typer.Argument(help="Provider id")],
    service_id: Annotated[str, typer.Argument(help="Service id")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD), defaults to today")] = None,
    only_free: Annotated[bool, typer.Option("--free", help="Only show available slots.")] = False,
    config_file: ConfigOption = None,
):
    """
    List the time slots of a provider for one service and day.

    Examples:

        salonslots slots prov-1 svc-cut --date 2024-11-25

        salonslots slots prov-1 svc-cut --free
    """
    try:
        config, _, service = _build_service(config_file)
        target = _resolve_day(day, config.timezone)

        result = asyncio.run(
            service.list_slots(provider_id=provider_id, service_id=service_id, day=target)
        )

        if not result:
            console.print(
                f"[yellow]⚠ No slots on {target.isoformat()}.[/yellow]\n"
                "The provider does not work that day."
            )
            return

        table = Table(
            title=f"Slots for {provider_id} on {target.isoformat()}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Start", style="bold")
        table.add_column("End")
        table.add_column("Status")

        shown = 0
        for slot in result:
            if only_free and not slot.available:
                continue
            status = "[green]available[/green]" if slot.available else "[dim]taken[/dim]"
            table.add_row(slot.label, slot.end.format("HH:mm"), status)
            shown += 1

        if shown == 0:
            console.print(f"[yellow]⚠ No available slots on {target.isoformat()}.[/yellow]")
            return

        console.print()
        console.print(table)
        console.print()

    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except (SalonSlotsError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    provider_id: Annotated[str, typer.Argument(help="Provider id")],
    service_id: Annotated[str, typer.Argument(help="Service id")],
    start_time: Annotated[str, typer.Option("--time", "-t", help="Start time (HH:MM)")],
    client_id: Annotated[str, typer.Option("--client", help="Client user id")],
    day: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD), defaults to today")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes for the salon")] = None,
    config_file: ConfigOption = None,
):
    """
    Book an appointment. The slot is re-checked right before it is stored.
    """
    try:
        config, _, service = _build_service(config_file)
        target = _resolve_day(day, config.timezone)
        at = parse_time_of_day(start_time)
        start = pendulum.datetime(
            target.year, target.month, target.day, at.hour, at.minute, tz=config.timezone
        )

        booking = asyncio.run(
            service.book(
                BookingRequest(
                    provider_id=provider_id,
                    service_id=service_id,
                    client_id=client_id,
                    start=start,
                    notes=notes,
                )
            )
        )

        console.print(
            f"\n[green]✓ Booking {booking.id} created[/green] "
            f"({booking.start.format('DD.MM.YYYY HH:mm')} - {booking.end.format('HH:mm')}, "
            f"status {booking.status.value}).\n"
        )

    except StaleSlotConflict as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        console.print("Run [bold]salonslots slots[/bold] again to see the current availability.")
        raise typer.Exit(1)

    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except (SalonSlotsError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
):
    """
    Cancel a booking and free its slot.
    """
    try:
        _, _, service = _build_service(config_file)
        booking = asyncio.run(service.cancel(booking_id))
        console.print(f"\n[green]✓ Booking {booking.id} cancelled.[/green]\n")

    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except (SalonSlotsError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_providers(
    salon_id: Annotated[Optional[str], typer.Option("--salon", help="Only providers of this salon")] = None,
    config_file: ConfigOption = None,
):
    """
    List all providers with their weekly schedules.
    """
    try:
        _, store, _ = _build_service(config_file)
        providers = asyncio.run(store.list_providers(salon_id))

        if not providers:
            console.print("[yellow]No providers found in the data file.[/yellow]")
            return

        table = Table(
            title="Providers",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Id", style="bold yellow")
        table.add_column("Name")
        table.add_column("Salon", style="dim")
        table.add_column("Schedule")

        for provider in providers:
            hours = ", ".join(
                f"{day} {entry['start']}-{entry['end']}"
                for day, entry in provider.schedule.to_record().items()
            )
            name = provider.name if provider.active else f"{provider.name} (inactive)"
            table.add_row(provider.id, name, provider.salon_id, hours or "-")

        console.print()
        console.print(table)
        console.print()

    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except (SalonSlotsError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
