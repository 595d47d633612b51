"""
Rich-based terminal dashboard for speed test results.

All formatting helpers live in ``netmeter.stats`` and ``ui.output`` -- this
module only does presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from netmeter.models import SpeedTestResult
from netmeter.service import DOWNLOAD, LATENCY, UPLOAD, MeasurementReport
from netmeter.simulated import SIMULATED
from netmeter.stats import format_latency, format_speed

from .output import format_history_table, sparkline

console = Console()


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]netmeter[/bold cyan]\n"
            "[dim]Latency, jitter and throughput against public endpoints[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_network_info(ip: str, isp: str, location: str = "") -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("IP Address:", ip or "?")
    table.add_row("ISP:", isp or "?")
    if location:
        table.add_row("Location:", location)
    console.print(Panel(table, title="[bold]Network[/bold]", border_style="blue"))


def _source_label(source: str) -> str:
    if source == SIMULATED:
        return "[bold red]simulated[/bold red]"
    return f"[green]{source}[/green]"


def print_measurement_details(report: MeasurementReport) -> None:
    """Per-metric table showing which strategy produced each value."""
    table = Table(title="Measurement Sources", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Source")

    table.add_row(
        "Ping",
        format_latency(report.ping_ms),
        _source_label(report.sources.get(LATENCY, "?")),
    )
    table.add_row(
        "Jitter",
        f"{report.jitter_ms:.2f} ms",
        _source_label(report.sources.get(LATENCY, "?")),
    )
    table.add_row(
        "Download",
        format_speed(report.download_mbps),
        _source_label(report.sources.get(DOWNLOAD, "?")),
    )
    table.add_row(
        "Upload",
        format_speed(report.upload_mbps),
        _source_label(report.sources.get(UPLOAD, "?")),
    )
    console.print(table)

    for metric in (DOWNLOAD, UPLOAD):
        connections = report.details.get(metric, {}).get("connections", [])
        if not connections:
            continue
        ct = Table(title=f"{metric.title()} Connections", box=box.SIMPLE)
        ct.add_column("ID", style="dim")
        ct.add_column("Server")
        ct.add_column("Bytes", justify="right")
        ct.add_column("Speed", justify="right")
        ct.add_column("Error", style="red")
        for conn in connections:
            ct.add_row(
                str(conn["id"]),
                conn["server"][:30],
                f"{conn['bytes'] / 1_000_000:.1f} MB",
                format_speed(conn["speed_mbps"]),
                (conn["error"] or "")[:40],
            )
        console.print(ct)


def print_final_results(result: SpeedTestResult, report: Optional[MeasurementReport] = None) -> None:
    warning = ""
    if report is not None and report.simulated:
        warning = (
            f"\n\n[bold red]Simulated:[/bold red] "
            f"{', '.join(sorted(report.simulated))} could not be measured"
        )

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Result:[/bold cyan] {result.id}\n\n"
            f"[bold white]   Ping:[/bold white]  [bold yellow]{result.ping:.1f} ms[/bold yellow]  "
            f"[dim](jitter: {result.jitter:.2f} ms)[/dim]\n"
            f"[bold white]   Download:[/bold white]  [bold green]{format_speed(result.download_speed)}[/bold green]\n"
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_speed(result.upload_speed)}[/bold blue]"
            f"{warning}",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )
    console.print()


def print_history(results: List[SpeedTestResult]) -> None:
    if not results:
        console.print("[dim]No stored results.[/dim]")
        return

    table = Table(title="History", box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("When")
    table.add_column("Location")
    table.add_column("Ping", justify="right")
    table.add_column("Download", justify="right", style="green")
    table.add_column("Upload", justify="right", style="blue")

    rows = format_history_table(results)
    for row in rows:
        table.add_row(
            row["id"],
            row["timestamp"],
            row["location"],
            format_latency(row["ping"]),
            format_speed(row["download"]),
            format_speed(row["upload"]),
        )
    console.print(table)

    if len(rows) > 1:
        console.print(f"  Download  [green]{sparkline([r['download'] for r in rows])}[/green]")
        console.print(f"  Upload    [blue]{sparkline([r['upload'] for r in rows])}[/blue]")
