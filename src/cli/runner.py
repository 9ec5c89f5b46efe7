# src/cli/runner.py

"""Headless CLI commands: one-shot scrape, history dump, health probe."""

import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from src.models.observation import Observation, Source
from src.services.container import build_services
from src.services.scrape_pipeline import ScrapeResult

logger = logging.getLogger("gold_watch.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_sources(source_arg: str) -> list[Source]:
    """Map ``ccb``, ``cmb`` or ``all`` to the sources to scrape.

    Raises ``SystemExit`` on unknown IDs.
    """
    if source_arg == "all":
        return list(Source)
    try:
        return [Source(source_arg)]
    except ValueError:
        valid = ", ".join(s.value for s in Source)
        _err.print(f"[red]Unknown source: {source_arg}[/red]")
        _err.print(f"[dim]Available: {valid}, all[/dim]")
        raise SystemExit(1) from None


def _print_history_table(
    source: Source, history: list[Observation],
) -> None:
    table = Table(
        title=f"Gold price history ({source.value})",
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=6)
    table.add_column("Captured (UTC)")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Unit")

    for obs in history:
        table.add_row(
            str(obs.id),
            obs.captured_at.strftime("%Y-%m-%d %H:%M:%S"),
            obs.formatted_price,
            obs.unit,
        )
    Console().print(table)


async def run_scrape(source_arg: str) -> int:
    """Scrape the requested sources once and store the results."""
    sources = resolve_sources(source_arg)
    services = build_services()
    results: list[ScrapeResult] = []
    try:
        for source in sources:
            _err.print(f"[bold]Scraping[/bold] {source.value}...")
            results.append(await services.pipeline.run(source))
    finally:
        services.close()

    any_failed = False
    for r in results:
        if r.ok and r.reading is not None:
            _err.print(
                f"[green]✓ {r.source.value}: {r.reading.full_text}"
                f" → {r.reading.price:.2f}{r.reading.unit}[/green]"
            )
        else:
            any_failed = True
            _err.print(f"[red]✗ {r.source.value}: {r.error}[/red]")
    return 1 if any_failed else 0


def run_history(
    source_arg: str, days: int | None, output_format: str,
) -> int:
    """Print stored observations for one source, newest first."""
    source = Source.from_param(source_arg)
    services = build_services()
    try:
        history = services.observations.list_since(source, days)
    finally:
        services.close()

    if not history:
        _err.print("[yellow]No observations stored yet.[/yellow]")
        return 1

    if output_format == "table":
        _print_history_table(source, history)
    else:
        json.dump(
            [o.to_dict() for o in history],
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


async def run_health_check() -> int:
    """Probe every configured source URL over plain HTTP."""
    from src.services.health_checker import HealthChecker

    services = build_services()
    try:
        urls = services.config.get_scraper_urls()
    finally:
        services.close()

    _err.print("[bold]Running source health check...[/bold]")
    results = await HealthChecker(urls).check_all()

    table = Table(
        title="Source Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Source", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]OK[/green]"
        elif r.status == "slow":
            status = "[yellow]SLOW[/yellow]"
        else:
            status = "[red]DOWN[/red]"
            any_down = True
        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(r.source_id, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
