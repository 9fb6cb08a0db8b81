"""Threat aggregation and cache summary commands."""

import asyncio

from rich.console import Console
from rich.table import Table

from homesoc.cli.common import load_cli_config, prepare
from homesoc.config.schema import HomeSocConfig
from homesoc.intel.aggregator import ThreatAggregator, load_cache
from homesoc.intel.feeds import build_sources
from homesoc.intel.models import ThreatReport

console = Console()


def build_aggregator(config: HomeSocConfig) -> ThreatAggregator:
    """Wire a threat aggregator from configuration."""
    return ThreatAggregator(
        build_sources(config.intel),
        config.data.cache_path,
        timeout=config.intel.timeout_s,
        max_items=config.intel.max_items,
    )


def aggregate_command(config_path: str | None = None, verbose: bool = False) -> int:
    """Run one aggregation cycle. Returns the process exit code."""
    config = prepare(config_path, verbose)
    if config is None:
        return 2

    result = asyncio.run(build_aggregator(config).aggregate())
    if result.skipped:
        console.print("[yellow]Skipped: previous cycle still running[/yellow]")
        return 0

    if result.report is not None:
        print_summary(result.report)
    if not result.persisted:
        console.print("[red]Threat cache was not written[/red]")
        return 1
    console.print(f"Threat data cached to: {config.data.cache_path}")
    return 0


def summary_command(config_path: str | None = None) -> int:
    """Print the summary of the persisted cache."""
    config = load_cli_config(config_path)
    if config is None:
        return 2

    report = load_cache(config.data.cache_path)
    if report is None:
        console.print(
            f"[yellow]No threat cache at {config.data.cache_path}.[/yellow] "
            "Run [bold]homesoc aggregate[/bold] first."
        )
        return 1

    print_summary(report)
    return 0


def print_summary(report: ThreatReport) -> None:
    """Render the aggregate summary as a table."""
    summary = report.summary
    table = Table(
        title=f"Threat Intelligence ({summary.timestamp})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Source", style="white")
    table.add_column("Status", width=8)
    table.add_column("Items", justify="right")

    for source in summary.sources:
        status = "[green]✓[/green]" if source.status == "ok" else "[red]✗[/red]"
        table.add_row(source.name, status, str(source.count))

    console.print(table)
    console.print(f"Total threats: [bold]{summary.total_threats}[/bold]")
    console.print(f"High severity: [bold red]{summary.high_severity}[/bold red]")
