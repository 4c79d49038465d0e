"""
Rich-based terminal dashboard for network quality results.

All grading helpers live in ``netquality.grading`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from netquality.config import TestConfiguration
from netquality.grading import (
    DOWNLOAD_REFERENCE_MBPS,
    UPLOAD_REFERENCE_MBPS,
    latency_bar,
    overall_quality,
    performance_bar,
)
from netquality.quality import QualityResult
from netquality.stats import format_latency, format_speed

console = Console()

_RESPONSIVENESS_COLORS = {"High": "green", "Medium": "yellow", "Low": "red"}

_STAGE_DESCRIPTIONS = {
    "idle-latency": "Measuring idle latency",
    "download": "Measuring download capacity",
    "upload": "Measuring upload capacity",
}


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool = False) -> None:
    """Route log records through the shared console."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Networkquality[/bold cyan]\n"
            "[dim]Throughput, latency and responsiveness under load[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_configuration(config: TestConfiguration) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("Test duration:", f"{config.test_duration:g} s")
    table.add_row("Connections:", str(config.connection_count))
    table.add_row("Download:", config.download_url)
    table.add_row("Latency probe:", config.latency_url)
    for url in config.upload_endpoints:
        table.add_row("Upload:", url)
    console.print(Panel(table, title="[bold]Configuration[/bold]", border_style="magenta"))


def print_summary(result: QualityResult) -> None:
    color = _RESPONSIVENESS_COLORS.get(result.responsiveness, "white")
    console.print(
        Panel.fit(
            f"[bold white]Uplink capacity:[/bold white]   [bold blue]{format_speed(result.uplink_mbps)}[/bold blue]\n"
            f"[bold white]Downlink capacity:[/bold white] [bold green]{format_speed(result.downlink_mbps)}[/bold green]\n"
            f"[bold white]Responsiveness:[/bold white]    [bold {color}]{result.responsiveness}[/bold {color}] "
            f"[dim]({format_latency(result.responsiveness_ms)})[/dim]\n"
            f"[bold white]Idle Latency:[/bold white]      [bold yellow]{format_latency(result.idle_latency_ms)}[/bold yellow]",
            title="[bold]Summary[/bold]",
            border_style="cyan",
        )
    )


def print_quality(result: QualityResult) -> None:
    rating, color = overall_quality(result)
    console.print(f"\n[bold]Overall:[/bold] [bold {color}]{rating}[/bold {color}]")


def print_performance(result: QualityResult) -> None:
    table = Table(title="Performance", show_header=False, box=None, padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Download:", performance_bar(result.downlink_mbps, DOWNLOAD_REFERENCE_MBPS))
    table.add_row("Upload:", performance_bar(result.uplink_mbps, UPLOAD_REFERENCE_MBPS))
    table.add_row("Latency:", latency_bar(result.idle_latency_ms))
    console.print(table)


def print_final_results(result: QualityResult) -> None:
    console.print()
    print_summary(result)
    print_quality(result)
    print_performance(result)
    console.print()


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Spinner showing which measurement stage is running."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task_id: Optional[int] = None

    def start(self, description: str = "Running network quality test...") -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=None)

    def stage(self, name: str) -> None:
        if self._task_id is None:
            return
        self.progress.update(self._task_id, description=_STAGE_DESCRIPTIONS.get(name, name))

    def stop(self, success: bool = True) -> None:
        self.progress.stop()
        self._task_id = None
        if success:
            console.print("[bold green]Running network quality test... done[/bold green]")
        else:
            console.print("[bold red]Running network quality test... failed[/bold red]")
