"""Network snapshot cycle command."""

import asyncio

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from homesoc.alerts.dispatcher import AlertDispatcher, WebhookNotifier
from homesoc.cli.common import prepare
from homesoc.config.schema import HomeSocConfig
from homesoc.network.collector import SnapshotCollector
from homesoc.network.detector import AnomalyDetector
from homesoc.network.monitor import CycleResult, NetworkMonitor
from homesoc.network.store import StateStore

console = Console()

SEVERITY_STYLE = {
    "low": "white",
    "medium": "yellow",
    "high": "red",
    "critical": "bold red",
}


def build_monitor(config: HomeSocConfig) -> NetworkMonitor:
    """Wire a network monitor from configuration."""
    notifier = None
    if config.alerts.webhook_url:
        notifier = WebhookNotifier(
            config.alerts.webhook_url,
            username=config.alerts.username,
            timeout=config.alerts.timeout_s,
        )

    return NetworkMonitor(
        collector=SnapshotCollector(config.network.command, timeout=config.network.timeout_s),
        detector=AnomalyDetector(config.network.detection),
        store=StateStore(config.data.state_path),
        dispatcher=AlertDispatcher(notifier),
    )


async def _run_cycle(monitor: NetworkMonitor) -> CycleResult:
    try:
        return await monitor.run_one_cycle()
    finally:
        # Let in-flight alerts settle before the event loop closes
        await monitor.dispatcher.close()


def scan_command(config_path: str | None = None, verbose: bool = False) -> int:
    """Run one network cycle. Returns the process exit code."""
    config = prepare(config_path, verbose)
    if config is None:
        return 2

    result = asyncio.run(_run_cycle(build_monitor(config)))
    _print_result(result)
    return 0 if result.ok else 1


def _print_result(result: CycleResult) -> None:
    if result.skipped:
        console.print("[yellow]Skipped: previous cycle still running[/yellow]")
        return
    if result.snapshot is None:
        console.print(f"[red]Scan failed:[/red] {escape(result.error or '')}")
        return

    stats = result.snapshot.stats
    console.print(
        f"Connections: {stats.total_connections} "
        f"({stats.established_connections} established), "
        f"listening ports: {stats.listening_ports}"
    )

    if not result.anomalies:
        console.print("[green]No anomalies detected[/green]")
    else:
        table = Table(title="Anomalies", show_header=True, header_style="bold cyan")
        table.add_column("Severity", width=10)
        table.add_column("Type")
        for anomaly in result.anomalies:
            style = SEVERITY_STYLE.get(anomaly.severity, "white")
            table.add_row(f"[{style}]{anomaly.severity.upper()}[/{style}]", anomaly.type.value)
        console.print(table)

    if not result.persisted:
        console.print("[yellow]Warning: snapshot was not saved[/yellow]")
