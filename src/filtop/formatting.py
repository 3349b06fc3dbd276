"""Derived values and display strings for the dashboard widgets."""

import math
from collections.abc import Mapping
from typing import Any

from rich.markup import escape

from filtop.models import HarvesterStats, Input, LoadAverage, ModuleStatus, QueueStats, Snapshot

BYTE_UNITS = "KMGTPE"
QUEUE_BAR_STEP = 5.0  # Percent per block
QUEUE_PLACEHOLDER = "[green]0/0[/green] | [dim]....................[/dim]"


def cpu_percent(snapshot: Snapshot) -> float:
    """CPU time as a share of process uptime. 0.0 while uptime is 0."""
    if snapshot.uptime_ms == 0:
        return 0.0
    return snapshot.cpu.total.time_ms / snapshot.uptime_ms * 100


def rss_megabytes(snapshot: Snapshot) -> float:
    return snapshot.memory.rss / (1024 * 1024)


def format_uptime(uptime_ms: int) -> str:
    """Format uptime truncated to whole minutes, e.g. ``2h5m``."""
    hours, minutes = divmod(uptime_ms // 60_000, 60)
    return f"{hours}h{minutes}m"


def format_load(load: LoadAverage) -> str:
    return f"{load.load1:.2f} {load.load5:.2f} {load.load15:.2f}"


def queue_percent(queue: QueueStats) -> float:
    if queue.max_events == 0:
        return 0.0
    return queue.filled_events / queue.max_events * 100


def queue_bar_length(percent: float) -> int:
    """Number of blocks for a fill percentage. Not capped at 100%."""
    return max(0, math.floor(percent / QUEUE_BAR_STEP))


def format_queue(queue: QueueStats) -> str:
    bars = queue_bar_length(queue_percent(queue))
    return f"[green]{queue.filled_events}/{queue.max_events}[/green] | {'█' * bars}"


def format_harvester(harvester: HarvesterStats) -> str:
    return f"Active: {harvester.running} | Open Files: {harvester.open_files}"


def format_bytes(size: int) -> str:
    """Format a byte count with binary (1024-based) units."""
    if size < 1024:
        return f"{size} B"
    divisor, exponent = 1024, 0
    quotient = size // 1024
    while quotient >= 1024 and exponent < len(BYTE_UNITS) - 1:
        divisor *= 1024
        exponent += 1
        quotient //= 1024
    return f"{size / divisor:.1f} {BYTE_UNITS[exponent]}iB"


def module_glyph(enabled: bool) -> str:
    return "[green]✓[/green]" if enabled else "[red]✗[/red]"


def format_module(module: ModuleStatus) -> str:
    return f"{module_glyph(module.enabled)} {escape(module.name)} ({module.errors} errors)"


def input_row(item: Input) -> tuple[str, str, str, str, str]:
    """Cells for one inputs-table row: type, active, events, throughput, files."""
    return (
        item.type,
        "true" if item.active else "false",
        str(item.events),
        f"{item.throughput_bytes:.2f}",
        str(item.files),
    )


def input_label(item: Input) -> str:
    return f"{item.type} ({item.device})"


def format_histogram(histogram: Mapping[str, Any]) -> str:
    """
    Render ``label: value`` lines for the numeric buckets of a histogram.

    Non-numeric values are skipped. Line order follows the mapping and is
    not meaningful.
    """
    lines = []
    for label, value in histogram.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        lines.append(f"  {label:<15}: {value:.2f}\n")
    return "".join(lines)


def format_input_details(item: Input) -> str:
    """Detail text for one input, with markup."""
    return (
        f"[yellow]Type:[/yellow] {escape(item.type)}\n"
        f"[yellow]Device:[/yellow] {escape(item.device)}\n"
        f"[yellow]Packets:[/yellow] {item.packets}\n"
        f"[yellow]Bytes:[/yellow] {format_bytes(item.bytes)}\n"
        f"[yellow]Events:[/yellow] {item.events}\n"
        f"[yellow]Active:[/yellow] {'true' if item.active else 'false'}\n"
        "\n[yellow]Histograms:[/yellow]\n"
        f"Arrival Period:\n{escape(format_histogram(item.arrival_histogram))}"
        f"\nProcessing Time:\n{escape(format_histogram(item.processing_histogram))}"
    )
