"""CLI command for gathering artifacts from a page."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import typer
from rich.console import Console

from pagegather.exceptions import PageGatherError, ParameterError

gather_app = typer.Typer(help="Gather artifacts from a remote DevTools page.")
console = Console(stderr=True)


@gather_app.command("url")
def gather_url(
    url: str = typer.Argument(..., help="The URL to load and gather artifacts for."),
    page_id: Optional[str] = typer.Option(None, "--page-id", help="Attach directly to this page id."),
    debug_port: Optional[int] = typer.Option(None, "--debug-port", help="Debug port of --page-id."),
    hostname: Optional[str] = typer.Option(None, "--hostname", help="DevTools host (default from settings)."),
    port: Optional[int] = typer.Option(None, "--port", help="DevTools port for discovery (default from settings)."),
    gatherer: Optional[List[str]] = typer.Option(None, "--gatherer", "-g", help="Gatherer to run; repeatable."),
    load_failure_mode: str = typer.Option("fatal", "--load-failure-mode", help="fatal, warn or ignore."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="error, warn, info, verbose..."),
    dispose: Optional[bool] = typer.Option(None, "--dispose/--no-dispose", help="Close the page session after the run."),
) -> None:
    """Load URL once in the page and print the artifact record as JSON.

    Without --page-id/--debug-port the first open page on the host is used.
    """
    from pagegather.adapter import gather_page
    from pagegather.models.config import (
        DEFAULT_GATHERERS,
        GatherConfig,
        GatherFlags,
        LoadFailureMode,
        PassConfig,
    )
    from pagegather.runner import artifacts_to_json

    devtools_info = None
    if page_id is not None or debug_port is not None:
        devtools_info = {k: v for k, v in {"page_id": page_id, "debug_port": debug_port}.items() if v is not None}

    try:
        mode = LoadFailureMode(load_failure_mode)
    except ValueError:
        console.print(f"[red]Invalid --load-failure-mode:[/red] {load_failure_mode}")
        raise typer.Exit(code=2)

    config = GatherConfig(
        passes=[
            PassConfig(
                pass_name="default_pass",
                load_failure_mode=mode,
                gatherers=tuple(gatherer) if gatherer else DEFAULT_GATHERERS,
            )
        ]
    )
    flags = GatherFlags(log_level=log_level, hostname=hostname, port=port, dispose_driver=dispose)

    try:
        result = asyncio.run(gather_page(url, flags, config, devtools_info))
    except ParameterError as exc:
        console.print(f"[red]Invalid options:[/red] {exc}")
        raise typer.Exit(code=2)
    except PageGatherError as exc:
        console.print(f"[red]✗[/red] Gather failed: {exc}")
        raise typer.Exit(code=1)

    typer.echo(artifacts_to_json(result.to_dict()))
    if result.degraded:
        console.print(f"[yellow]⚠[/yellow] {result.page_load_error.friendly_message}")
        raise typer.Exit(code=3)
