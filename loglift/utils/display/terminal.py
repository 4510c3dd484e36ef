"""Terminal summaries for harvesting runs.

Events may be streamed to stdout, so cycle summaries are written to stderr.
"""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from loglift.api_objects.types import CycleSummary
from loglift.constants import CYCLE_OK
from loglift.internal.events import InternalEvent
from loglift.models import Checkpoint, ms_to_datetime

_stderr = Console(stderr=True)


def _status_style(status: str) -> str:
    if status == CYCLE_OK:
        return "bold green"
    return "bold red"


def print_cycle_summary(summary: CycleSummary, console: Console | None = None) -> None:
    console = console or _stderr
    style = _status_style(summary.status)
    header = (
        f"status=[{style}]{summary.status}[/{style}] | "
        f"files_listed={summary.files_listed} | "
        f"files_processed={summary.files_processed} | "
        f"chunks={summary.chunks_fetched} | "
        f"lines={summary.lines_read} | "
        f"events={summary.events_emitted} | "
        f"duration={summary.duration_seconds:.2f}s"
    )
    console.print(Panel(header, title=f"Cycle: {summary.source_instance}", border_style="cyan"))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Watermark")
    table.add_column("Before")
    table.add_column("After")
    table.add_row(
        "ms",
        str(summary.watermark_before),
        str(summary.watermark_after),
    )
    table.add_row(
        "utc",
        ms_to_datetime(summary.watermark_before).isoformat(timespec="seconds"),
        ms_to_datetime(summary.watermark_after).isoformat(timespec="seconds"),
    )
    console.print(table)

    if summary.skipped_files:
        skipped = Table(title="Skipped Files", show_header=True, header_style="bold yellow")
        skipped.add_column("File", style="bold")
        skipped.add_column("Reason", overflow="fold")
        for item in summary.skipped_files:
            skipped.add_row(escape(item.file_name), escape(item.reason))
        console.print(skipped)

    if summary.error_message:
        console.print(f"[bold red]error:[/bold red] {escape(summary.error_message)}")


def print_cycle_summary_json(summary: CycleSummary) -> None:
    _stderr.print_json(json.dumps(summary.to_dict(), ensure_ascii=True))


def print_checkpoint(location: str, checkpoint: Checkpoint, console: Console | None = None) -> None:
    console = console or Console()
    console.print(
        Panel(
            f"watermark={checkpoint.watermark} "
            f"({ms_to_datetime(checkpoint.watermark).isoformat(timespec='seconds')})",
            title=f"Checkpoint: {location}",
            border_style="cyan",
        )
    )
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Cursor Key", style="bold")
    table.add_column("Marker", overflow="fold")
    for key, marker in sorted(checkpoint.cursors.items()):
        table.add_row(escape(key), escape(marker))
    console.print(table)


def print_internal_events(events: list[InternalEvent], console: Console | None = None) -> None:
    if not events:
        return

    console = console or _stderr
    table = Table(title="Recent Internal Events", show_header=True, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Topic")
    table.add_column("Payload", overflow="fold")
    for event in events:
        table.add_row(
            event.ts.isoformat(timespec="seconds"),
            event.topic,
            json.dumps(event.payload, ensure_ascii=True, sort_keys=True, default=str),
        )
    console.print(table)
