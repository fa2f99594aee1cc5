"""Unified CLI entry point for pagegather.

Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml -> env vars (PAGEGATHER_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import typer

from pagegather.cli.gather_cmd import gather_app
from pagegather.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("pagegather")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "pagegather: multi-pass artifact gathering against a remote DevTools page. "
    "Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml -> env vars (PAGEGATHER_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.add_typer(gather_app, name="gather")
app.add_typer(settings_app, name="settings")


@app.command("gatherers")
def list_gatherers() -> None:
    """List the gatherer names a pass config can reference."""
    from rich.console import Console
    from rich.table import Table

    from pagegather.gatherers import available_gatherers, get_gatherer
    from pagegather.models.config import DEFAULT_GATHERERS

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Default")
    table.add_column("Description")
    for name in available_gatherers():
        doc = (type(get_gatherer(name)).__doc__ or "").strip().splitlines()
        table.add_row(name, "yes" if name in DEFAULT_GATHERERS else "", doc[0] if doc else "")
    Console().print(table)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context, version: bool = typer.Option(False, "--version", help="Show version and exit.")) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"pagegather {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
