"""
Edgework CLI - manage CDN distributions from the command line.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .client import CdnClient
from .controller import DistributionController
from .diagnostics import Diagnostics, Severity
from .errors import ConfigurationError, StateError
from .models import Backend, DistributionConfig, DistributionState, Optimizer
from .settings import get_settings
from .state import FileStateStore, StateFile
from .waiter import Deadline

# Setup
app = typer.Typer(
    name="edgework",
    help="Manage CDN distributions without ever losing track of them",
    add_completion=False,
)
console = Console()

Operation = Callable[[DistributionController, FileStateStore], Awaitable[Diagnostics]]


def configure_logging():
    """Configure logging based on settings."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Configure logging on module import
configure_logging()


def _make_client() -> CdnClient:
    return CdnClient()


def _create_command_panel(title: str, color: str, name: str) -> Panel:
    """Create a Rich Panel for command display.

    Args:
        title: Command title (e.g., "Edgework Create")
        color: Border color (e.g., "blue", "cyan", "red")
        name: Name the distribution is tracked under

    Returns:
        Formatted Rich Panel
    """
    settings = get_settings()
    return Panel.fit(
        f"[bold {color}]{title}[/bold {color}]\n"
        f"Distribution: {name}\n"
        f"State: {settings.state_file}",
        border_style=color,
    )


def _open_store(name: str) -> FileStateStore:
    """Open the state slot for ``name``.

    Raises:
        SystemExit: If the state file cannot be read
    """
    try:
        return StateFile(get_settings().state_file).slot(name)
    except StateError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _parse_headers(headers: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if not headers:
        return None
    parsed = {}
    for header in headers:
        key, sep, value = header.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {header!r}", param_hint="--header")
        parsed[key] = value
    return parsed


def _build_config(
    origin_url: str,
    regions: Optional[List[str]],
    blocked_countries: Optional[List[str]],
    headers: Optional[List[str]],
    optimizer: Optional[bool],
) -> DistributionConfig:
    """Build the desired configuration from command line options.

    Raises:
        SystemExit: If the options do not form a valid configuration
    """
    try:
        return DistributionConfig(
            backend=Backend(
                origin_url=origin_url,
                origin_request_headers=_parse_headers(headers),
            ),
            regions=regions or ["EU"],
            blocked_countries=blocked_countries or None,
            optimizer=Optimizer(enabled=optimizer) if optimizer is not None else None,
        )
    except ValidationError as e:
        console.print(f"[bold red]✗ Invalid configuration:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _print_diagnostics(diags: Diagnostics) -> None:
    for entry in diags:
        if entry.severity is Severity.ERROR:
            console.print(f"\n[bold red]✗ {escape(entry.summary)}[/bold red]")
        else:
            console.print(f"\n[yellow]⚠ {escape(entry.summary)}[/yellow]")
        if entry.detail:
            console.print(f"  [dim]{escape(entry.detail)}[/dim]")


def _print_state(state: Optional[DistributionState]) -> None:
    if state is None:
        console.print("[dim]No distribution tracked under this name.[/dim]")
        return

    table = Table(show_header=False, box=None)
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("id", state.id or "-")
    table.add_row("status", state.status.value if state.status else "-")
    table.add_row("created", state.created_at or "-")
    table.add_row("updated", state.updated_at or "-")
    if state.config is not None:
        table.add_row("origin", state.config.backend.origin_url)
        table.add_row("regions", ", ".join(state.config.regions))
        if state.config.blocked_countries:
            table.add_row("blocked", ", ".join(state.config.blocked_countries))
    for domain in state.domains or []:
        table.add_row("domain", f"{domain.name} ({domain.type}, {domain.status})")
    for error in state.errors or []:
        table.add_row("error", f"[red]{escape(error)}[/red]")
    console.print(table)


def _run_operation(
    name: str,
    title: str,
    color: str,
    operation: Operation,
    store: Optional[FileStateStore] = None,
) -> FileStateStore:
    """Run one controller operation with common setup and error handling.

    Args:
        name: Name the distribution is tracked under
        title: Title for the command panel
        color: Border color for the panel
        operation: Coroutine function taking (controller, store)
        store: Already opened state slot, if any

    Returns:
        The state slot, for printing the result

    Raises:
        SystemExit: With code 1 if the operation reported an error
    """
    console.print(_create_command_panel(title, color, name))
    store = store or _open_store(name)

    async def _run() -> Diagnostics:
        async with _make_client() as client:
            return await operation(DistributionController(client), store)

    try:
        diags = asyncio.run(_run())
    except ConfigurationError as e:
        console.print(f"[bold red]✗ Configuration error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    _print_diagnostics(diags)
    if diags.has_error():
        current = store.read()
        if current is not None and current.id:
            console.print(f"\n[dim]Distribution {current.id} is still tracked as '{name}'.[/dim]")
        raise typer.Exit(code=1)
    return store


def _deadline(timeout: Optional[float]) -> Optional[Deadline]:
    return Deadline(timeout) if timeout is not None else None


@app.command()
def create(
    name: str = typer.Argument(..., help="Name to track the distribution under"),
    project_id: str = typer.Option(..., "--project-id", "-p", help="Project to create the distribution in"),
    origin_url: str = typer.Option(..., "--origin-url", help="Origin the distribution pulls from"),
    region: Optional[List[str]] = typer.Option(None, "--region", help="Region to serve from (repeatable, default: EU)"),
    blocked_country: Optional[List[str]] = typer.Option(None, "--blocked-country", help="Country code to block (repeatable)"),
    header: Optional[List[str]] = typer.Option(None, "--header", help="Origin request header KEY=VALUE (repeatable)"),
    optimizer: Optional[bool] = typer.Option(None, "--optimizer/--no-optimizer", help="Enable or disable the optimizer"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for ACTIVE (overrides settings)"),
):
    """Create a distribution and wait until it is ACTIVE."""
    config = _build_config(origin_url, region, blocked_country, header, optimizer)
    store = _open_store(name)
    if store.read() is not None:
        console.print(
            f"[bold red]✗ Error:[/bold red] '{name}' is already tracked; use 'edgework update' or 'edgework delete'"
        )
        raise typer.Exit(code=1)

    store = _run_operation(
        name, "Edgework Create", "blue",
        lambda controller, s: controller.create(project_id, config, s, _deadline(timeout)),
        store=store,
    )
    console.print("\n[bold green]✓ Distribution created[/bold green]")
    _print_state(store.read())


@app.command()
def update(
    name: str = typer.Argument(..., help="Name the distribution is tracked under"),
    origin_url: str = typer.Option(..., "--origin-url", help="Origin the distribution pulls from"),
    region: Optional[List[str]] = typer.Option(None, "--region", help="Region to serve from (repeatable, default: EU)"),
    blocked_country: Optional[List[str]] = typer.Option(None, "--blocked-country", help="Country code to block (repeatable)"),
    header: Optional[List[str]] = typer.Option(None, "--header", help="Origin request header KEY=VALUE (repeatable)"),
    optimizer: Optional[bool] = typer.Option(None, "--optimizer/--no-optimizer", help="Enable or disable the optimizer"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for ACTIVE (overrides settings)"),
):
    """Apply a new configuration and wait until the distribution is ACTIVE again."""
    config = _build_config(origin_url, region, blocked_country, header, optimizer)
    store = _run_operation(
        name, "Edgework Update", "cyan",
        lambda controller, s: controller.update(config, s, _deadline(timeout)),
    )
    console.print("\n[bold green]✓ Distribution updated[/bold green]")
    _print_state(store.read())


@app.command()
def refresh(
    name: str = typer.Argument(..., help="Name the distribution is tracked under"),
):
    """Refresh tracked state from the API."""
    store = _run_operation(
        name, "Edgework Refresh", "cyan",
        lambda controller, s: controller.read(s),
    )
    state = store.read()
    if state is None:
        console.print("\n[yellow]⚠ Distribution no longer exists and was removed from state[/yellow]")
        return
    console.print("\n[bold green]✓ State refreshed[/bold green]")
    _print_state(state)


@app.command()
def delete(
    name: str = typer.Argument(..., help="Name the distribution is tracked under"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds to wait for deletion (overrides settings)"),
):
    """Delete a distribution and stop tracking it."""
    _run_operation(
        name, "Edgework Delete", "red",
        lambda controller, s: controller.delete(s, deadline=_deadline(timeout)),
    )
    console.print("\n[bold green]✓ Distribution deleted[/bold green]")


@app.command(name="import")
def import_cmd(
    name: str = typer.Argument(..., help="Name to track the distribution under"),
    distribution: str = typer.Argument(..., help="Combined id: PROJECT_ID,DISTRIBUTION_ID"),
):
    """Start tracking an existing distribution."""
    store = _open_store(name)
    current = store.read()
    if current is not None and current.id != distribution:
        console.print(
            f"[bold red]✗ Error:[/bold red] '{escape(name)}' already tracks {escape(current.id or '')}; "
            "use 'edgework delete' first or import under another name"
        )
        raise typer.Exit(code=1)

    store = _run_operation(
        name, "Edgework Import", "blue",
        lambda controller, s: controller.import_state(distribution, s),
        store=store,
    )
    console.print("\n[bold green]✓ Distribution imported[/bold green]")
    _print_state(store.read())


@app.command()
def show(
    name: str = typer.Argument(..., help="Name the distribution is tracked under"),
):
    """Show tracked state without calling the API."""
    _print_state(_open_store(name).read())


@app.command(name="list")
def list_cmd():
    """List tracked distributions."""
    try:
        state_file = StateFile(get_settings().state_file)
    except StateError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    names = state_file.names()
    if not names:
        console.print("[dim]No distributions tracked.[/dim]")
        return
    for name in names:
        state = state_file.get(name)
        status = state.status.value if state and state.status else "unknown"
        console.print(f"  • {name}: {state.id if state else '-'} [dim]({status})[/dim]")


@app.command()
def version():
    """Show Edgework version."""
    from . import __version__

    console.print(f"Edgework version: [bold]{__version__}[/bold]")


if __name__ == "__main__":
    app()
