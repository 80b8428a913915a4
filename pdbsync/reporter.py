from __future__ import annotations

from datetime import datetime
from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from pdbsync.sync.driver import SyncReport


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip() if value else "N/A"


def print_report(report: SyncReport, console: Optional[Console] = None) -> None:
    """
    Render a committed synchronization run as a rich table, one row per
    collection, in the order they were applied.
    """
    console = console or Console()

    if not report.collections:
        console.print("[yellow]No collections were synchronized.[/yellow]")
        return

    since = "full fetch" if not report.since else str(report.since)
    table = Table(
        title=f"pdbsync run\n[dim]since: {since}[/dim]",
        box=box.ROUNDED,
        caption=f"Finished {_fmt_time(report.finished_at)}",
    )
    table.add_column("Collection", style="cyan", no_wrap=True)
    table.add_column("Table", style="blue")
    table.add_column("Records", justify="right", style="magenta")
    table.add_column("Written", justify="right", style="green")
    table.add_column("Deleted", justify="right", style="red")
    table.add_column("Generated", justify="right", style="yellow")
    table.add_column("Duration (s)", justify="right")

    for item in report.collections:
        table.add_row(
            item.collection,
            item.table,
            f"{item.records:,}",
            f"{item.inserted:,}",
            f"{item.deleted:,}",
            _fmt_time(item.generated),
            f"{item.duration_seconds:.2f}",
        )

    console.print(table)


__all__ = ["print_report"]
