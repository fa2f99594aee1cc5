"""CLI commands for inspecting pagegather settings and the configured DevTools endpoint."""

from __future__ import annotations

import json
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

settings_app = typer.Typer(help="Inspect and validate pagegather configuration.")
console = Console()

_SECTIONS = ("devtools", "gather")


@settings_app.command("show")
def show_settings(
    section: Optional[str] = typer.Option(None, "--section", "-s", help="Only show one section (devtools, gather)."),
    as_json: bool = typer.Option(False, "--json", "-j", help="Print raw JSON instead of a table."),
) -> None:
    """Display the resolved settings after TOML layering and env overrides."""
    from pagegather.settings import get_settings

    if section is not None and section not in _SECTIONS:
        console.print(f"[red]Unknown section:[/red] {section} (choose from {', '.join(_SECTIONS)})")
        raise typer.Exit(code=2)

    data = get_settings().model_dump(mode="json")
    if section is not None:
        data = {section: data[section]}

    if as_json:
        typer.echo(json.dumps(data, indent=2, default=str))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, dict):
            for name, item in value.items():
                table.add_row(f"{key}.{name}", str(item))
        else:
            table.add_row(key, str(value))
    console.print(table)


@settings_app.command("validate")
def validate_settings(
    ping: bool = typer.Option(False, "--ping", help="Also query the DevTools endpoint's /json/version."),
) -> None:
    """Validate settings and optionally check that the DevTools endpoint answers."""
    from pagegather.settings import get_settings

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"[red]✗[/red] Settings validation failed: {e}")
        raise typer.Exit(code=1)

    endpoint = f"{settings.devtools.hostname}:{settings.devtools.port}"
    console.print("[green]✓[/green] Settings are valid.")
    console.print(f"  Environment: {settings.env}")
    console.print(f"  DevTools endpoint: {endpoint}")
    console.print(f"  Log level: {settings.gather.log_level} ({settings.gather.log_format})")

    if not ping:
        return
    try:
        resp = httpx.get(f"http://{endpoint}/json/version", timeout=settings.devtools.http_timeout_sec)
        resp.raise_for_status()
        version = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        console.print(f"[red]✗[/red] DevTools endpoint {endpoint} did not answer: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Browser: {version.get('Browser', 'unknown')}")
