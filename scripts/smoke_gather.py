#!/usr/bin/env python3
"""Smoke test against a live browser.

Gathers artifacts for a handful of well-behaved URLs through a real
remote-debugging endpoint and prints a pass/fail table. Each URL runs two
passes: a throttled ``warn`` pass followed by a ``fatal`` pass.

Usage:
    python scripts/smoke_gather.py
    python scripts/smoke_gather.py --url https://example.com/ --port 9333
    python scripts/smoke_gather.py --page-id 8F3A... --debug-port 9222

Prerequisites:
    - The package installed (``pip install -e .``).
    - Chrome or Chromium started with remote debugging and one open tab:
        chromium --headless=new --remote-debugging-port=9222 about:blank
"""

from __future__ import annotations

import argparse
import asyncio
import json
import time
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from pagegather.adapter import gather_page
from pagegather.exceptions import PageGatherError
from pagegather.models.config import (
    DEFAULT_GATHERERS,
    GatherConfig,
    GatherFlags,
    LoadFailureMode,
    PassConfig,
)
from pagegather.runner import to_jsonable

console = Console()

TEST_URLS = [
    {"url": "https://example.com/", "description": "Static page, single document", "expect_error": False},
    {"url": "https://httpbin.org/html", "description": "Plain HTML body", "expect_error": False},
    {"url": "https://httpbin.org/status/404", "description": "Error status on the main document", "expect_error": True},
    {"url": "https://nonexistent.invalid/", "description": "DNS failure", "expect_error": True},
]


def _smoke_config() -> GatherConfig:
    return GatherConfig(
        passes=[
            PassConfig(
                pass_name="throttled_pass",
                load_failure_mode=LoadFailureMode.WARN,
                use_throttling=True,
                gatherers=("viewport_dimensions",),
            ),
            PassConfig(
                pass_name="default_pass",
                load_failure_mode=LoadFailureMode.FATAL,
                blank_page=True,
                gatherers=DEFAULT_GATHERERS,
            ),
        ]
    )


async def run_one(url: str, flags: GatherFlags, devtools_info: dict[str, Any] | None) -> dict[str, Any]:
    result = await gather_page(url, flags, _smoke_config(), devtools_info)
    return {
        "url": url,
        "final_url": result.final_url,
        "page_load_error": result.page_load_error.code.value if result.page_load_error else "",
        "warnings": len(result.run_warnings),
        "benchmark_index": result.artifacts.get("benchmark_index", 0),
        "artifacts": to_jsonable(result.artifacts),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Live-browser smoke test for pagegather")
    parser.add_argument("--url", help="Test a single URL instead of the built-in list")
    parser.add_argument("--hostname", default=None, help="DevTools host (default from settings)")
    parser.add_argument("--port", type=int, default=None, help="DevTools port (default from settings)")
    parser.add_argument("--page-id", default=None, help="Attach directly to this page id")
    parser.add_argument("--debug-port", type=int, default=None, help="Debug port for --page-id")
    parser.add_argument("--output", default="data/smoke", help="Directory for the results JSON")
    parser.add_argument("--log-level", default="warn")
    args = parser.parse_args()

    urls = [{"url": args.url, "description": "Custom URL", "expect_error": None}] if args.url else TEST_URLS
    flags = GatherFlags(log_level=args.log_level, hostname=args.hostname, port=args.port)
    devtools_info = None
    if args.page_id or args.debug_port:
        devtools_info = {"page_id": args.page_id, "debug_port": args.debug_port}

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    console.print("[bold]pagegather smoke test[/bold]")
    console.print(f"URLs: {len(urls)}\n")

    results: list[dict[str, Any]] = []
    for i, entry in enumerate(urls):
        url = entry["url"]
        console.print(f"[bold cyan]({i + 1}/{len(urls)})[/bold cyan] {url}")
        console.print(f"  Description: {entry['description']}")

        start = time.time()
        try:
            result = asyncio.run(run_one(url, flags, devtools_info))
        except PageGatherError as exc:
            result = {"url": url, "error": str(exc), "page_load_error": "", "warnings": 0, "benchmark_index": 0}
        result["elapsed_sec"] = round(time.time() - start, 1)

        expect_error = entry["expect_error"]
        if "error" in result:
            result["success"] = False
        elif expect_error is None:
            result["success"] = True
        else:
            result["success"] = bool(result["page_load_error"]) == expect_error
        results.append(result)

        status = "[green]PASS[/green]" if result["success"] else "[red]FAIL[/red]"
        console.print(f"  Result: {status}")
        if result.get("error"):
            console.print(f"  Error: [red]{result['error']}[/red]")
        console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("URL", max_width=40)
    table.add_column("Status")
    table.add_column("Load error")
    table.add_column("Warnings", justify="right")
    table.add_column("Benchmark", justify="right")
    table.add_column("Time (s)", justify="right")
    for r in results:
        status = "[green]PASS[/green]" if r["success"] else "[red]FAIL[/red]"
        table.add_row(
            r["url"],
            status,
            r["page_load_error"] or "-",
            str(r["warnings"]),
            f"{r['benchmark_index']:.0f}",
            str(r["elapsed_sec"]),
        )
    console.print(table)

    passed = sum(1 for r in results if r["success"])
    console.print(f"\n[bold]Pass rate: {passed}/{len(results)}[/bold]")

    results_path = output_dir / "smoke_results.json"
    results_path.write_text(json.dumps(results, indent=2, default=str))
    console.print(f"Detailed results: {results_path}")


if __name__ == "__main__":
    main()
