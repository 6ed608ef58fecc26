"""
Main CLI application using Typer.
"""

import asyncio
import logging
import random
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..adapters.credential_store import default_credential_store
from ..adapters.google_authenticator import SCOPES, GoogleAuthenticator
from ..adapters.google_calendar_client import GoogleCalendarClient
from ..adapters.mock_calendar_client import MockCalendarClient
from ..adapters.title_generator import (
    FallbackTitleGenerator,
    OpenRouterTitleGenerator,
    ResilientTitleGenerator,
)
from ..config import AppConfig
from ..domain.exceptions import CalendarFillerError
from ..domain.slot_finder import format_duration
from ..services.event_filler import BatchCreationReport, EventFillerService

app = typer.Typer(
    name="calendar-filler",
    help="Fill your Google Calendar with generated, non-overlapping events",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use an in-memory calendar and skip authentication."),
]
MockDataOption = Annotated[
    Optional[Path],
    typer.Option("--mock-data", help="JSON file seeding the in-memory calendar (with --mock)."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Create, list and delete generated calendar events.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config = AppConfig.load(config_file)
    root_logger = logging.getLogger()
    if root_logger.level != logging.DEBUG:
        root_logger.setLevel(config.log_level)
    return config


def _build_authenticator(config: AppConfig) -> GoogleAuthenticator:
    store = default_credential_store(config.google.token_file, scopes=SCOPES)
    return GoogleAuthenticator(
        client_secrets_file=config.google.client_secrets_file,
        credential_store=store,
    )


def _build_calendar_client(config: AppConfig, mock: bool, mock_data: Optional[Path]):
    if mock:
        console.print("[yellow]⚠  MOCK MODE: using an in-memory calendar[/yellow]\n")
        return MockCalendarClient(seed_file=mock_data)

    authenticator = _build_authenticator(config)
    credentials = authenticator.get_stored_credentials()
    warning = authenticator.credential_store.insecure_storage_warning
    if warning:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    return GoogleCalendarClient(credentials, calendar_id=config.google.calendar_id)


def _build_title_generator(config: AppConfig, mock: bool):
    settings = config.title_generator
    api_key = settings.resolve_api_key()
    if mock or not api_key:
        if not mock:
            console.print("[yellow]⚠ No OpenRouter API key configured, using predefined titles[/yellow]")
        return FallbackTitleGenerator()

    return ResilientTitleGenerator(
        OpenRouterTitleGenerator(
            api_key=api_key,
            model=settings.model,
            endpoint=settings.endpoint,
            timeout=settings.timeout_seconds,
        )
    )


def _parse_date(value: str, tz: str, label: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse {label} date '{value}': {e}[/red]")
        raise typer.Exit(1)


def _print_creation_report(report: BatchCreationReport) -> None:
    table = Table(
        title=f"Events for \"{report.user_input}\" ({report.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="bold yellow")
    table.add_column("When")
    table.add_column("Duration", justify="right")
    table.add_column("Status")

    for item in report.items:
        when = item.interval.start.format("ddd DD.MM.YYYY HH:mm") if item.interval else "-"
        if item.created:
            status = "[green]✓ created[/green]"
        elif item.failure is not None:
            status = f"[yellow]⊘ {item.failure.reason.value}[/yellow]"
        else:
            status = f"[red]✗ {item.error}[/red]"
        table.add_row(
            str(item.index + 1),
            item.title,
            when,
            format_duration(item.duration_minutes),
            status,
        )

    console.print()
    console.print(table)
    console.print(
        f"\n[bold green]✓ {len(report.created)} created[/bold green]"
        + (f", [bold red]{len(report.failed)} failed[/bold red]" if report.failed else "")
        + f"  [dim](scheduling {report.scheduling_ms:.0f}ms, calendar API {report.api_ms:.0f}ms)[/dim]\n"
    )


@app.command()
def create(
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last day (YYYY-MM-DD). Defaults to start + 7 days.")] = None,
    count: Annotated[Optional[int], typer.Option("--count", "-n", help="Number of events (1-30).")] = None,
    user_input: Annotated[Optional[str], typer.Option("--input", "-i", help="What kind of events to generate.")] = None,
    timezone: Annotated[Optional[str], typer.Option("--timezone", help="IANA timezone of the events.")] = None,
    earliest_start: Annotated[Optional[int], typer.Option("--earliest-start", help="Earliest start hour (0-23).")] = None,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Seed for picking event days.")] = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
):
    """
    Generate events and place them on the calendar without overlaps.

    Examples:

        calendar-filler create --input "gym and dentist" --count 5

        calendar-filler create --start 2024-01-15 --end 2024-01-19 --earliest-start 9

        calendar-filler create --mock --seed 42
    """
    try:
        config = _load_config(config_file)
        defaults = config.defaults
        tz = timezone or defaults.timezone

        start_date = _parse_date(start, tz, "start") if start else pendulum.now(tz).start_of("day")
        end_date = _parse_date(end, tz, "end") if end else start_date.add(days=7)
        event_count = count if count is not None else defaults.count
        request_text = user_input or defaults.user_input
        earliest = earliest_start if earliest_start is not None else defaults.earliest_start_hour

        console.print("\n[bold cyan]📆 Calendar Filler[/bold cyan]\n")
        console.print(f"   Request: {request_text}")
        console.print(f"   Period: {start_date.format('DD.MM.YYYY')} - {end_date.format('DD.MM.YYYY')}")
        console.print(f"   Events: {event_count}")
        console.print(f"   Working hours: {earliest}:00 - {config.scheduling.working_hours_end}:00 ({tz})\n")

        service = EventFillerService(
            calendar_client=_build_calendar_client(config, mock, mock_data),
            title_generator=_build_title_generator(config, mock),
            rng=random.Random(seed),
        )

        with console.status("Generating and scheduling events..."):
            report = asyncio.run(
                service.create_events(
                    start_date=start_date,
                    end_date=end_date,
                    count=event_count,
                    user_input=request_text,
                    timezone=tz,
                    constraints=config.scheduling.constraints_for(earliest),
                )
            )

        _print_creation_report(report)

    except (CalendarFillerError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command(name="list")
def list_events(
    config_file: ConfigOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
):
    """
    List events created by calendar-filler.
    """
    try:
        config = _load_config(config_file)
        service = EventFillerService(
            calendar_client=_build_calendar_client(config, mock, mock_data),
            title_generator=FallbackTitleGenerator(),
        )
        events = asyncio.run(service.list_created_events(window_days=config.list_window_days))

        if not events:
            console.print("[yellow]No generated events found.[/yellow]")
            return

        table = Table(
            title=f"Generated events ({len(events)})",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Title", style="bold yellow")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Duration", justify="right")
        table.add_column("Request", style="dim")
        table.add_column("Link")

        for event in events:
            table.add_row(
                event.title,
                event.start,
                event.end,
                format_duration(event.duration_minutes) if event.duration_minutes else "-",
                event.user_input,
                f"[link={event.html_link}]Open[/link]" if event.html_link else "-",
            )

        console.print()
        console.print(table)
        console.print()

    except (CalendarFillerError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def delete(
    config_file: ConfigOption = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
):
    """
    Delete all events created by calendar-filler.
    """
    try:
        config = _load_config(config_file)

        if not yes:
            typer.confirm(
                "Are you sure you want to delete all generated events? This cannot be undone.",
                abort=True,
            )

        service = EventFillerService(
            calendar_client=_build_calendar_client(config, mock, mock_data),
            title_generator=FallbackTitleGenerator(),
        )
        with console.status("Deleting events in parallel..."):
            report = asyncio.run(service.delete_created_events(window_days=config.delete_window_days))

        if report.total_found == 0:
            console.print("[yellow]No generated events found.[/yellow]")
            return

        console.print(f"\n[bold green]✓ Deleted {report.successfully_deleted} event(s)[/bold green]")
        if report.failed_deletions:
            console.print(f"[bold red]✗ {report.failed_deletions} deletion(s) failed:[/bold red]")
            for result in report.results:
                if not result.deleted:
                    console.print(f"  {result.title}: {result.error}")
        console.print()

    except (CalendarFillerError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def status(config_file: ConfigOption = None):
    """
    Show whether stored Google credentials are usable, and for whom.
    """
    try:
        config = _load_config(config_file)
        auth_status = _build_authenticator(config).auth_status()

        if not auth_status.authenticated:
            console.print(Panel.fit(
                f"[bold red]✗ Not authenticated[/bold red]\n\n{auth_status.reason}",
                title="Authentication"
            ))
            raise typer.Exit(1)

        console.print(Panel.fit(
            f"[bold green]✓ Authenticated[/bold green]\n\n"
            f"[bold]User:[/bold] {auth_status.user.get('name', 'Unknown')}\n"
            f"[bold]Email:[/bold] {auth_status.user.get('email', 'Unknown')}",
            title="Authentication"
        ))

    except (CalendarFillerError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def login(
    config_file: ConfigOption = None,
    force: Annotated[bool, typer.Option("--force", help="Force re-authentication")] = False,
):
    """
    Authenticate with Google and store the credentials.
    """
    try:
        config = _load_config(config_file)
        authenticator = _build_authenticator(config)
        credentials = authenticator.get_credentials(force_refresh=force)
        user = authenticator.fetch_user_info(credentials)

        console.print(Panel.fit(
            f"[bold green]✓ Authentication successful![/bold green]\n\n"
            f"[bold]User:[/bold] {user['name']}\n"
            f"[bold]Email:[/bold] {user['email']}\n"
            f"[dim]Credentials stored in {authenticator.credential_store.backend}[/dim]",
            title="✓ Google"
        ))

    except (CalendarFillerError, FileNotFoundError, ValueError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)


@app.command()
def logout(config_file: ConfigOption = None):
    """
    Remove stored Google credentials.
    """
    try:
        config = _load_config(config_file)
        _build_authenticator(config).logout()
        console.print("\n[green]✓ Logged out.[/green]")
        console.print("You will need to authenticate again with 'calendar-filler login'.\n")

    except (CalendarFillerError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    console.print(f"\n[bold cyan]calendar-filler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
