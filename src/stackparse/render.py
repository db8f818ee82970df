"""Text and JSON rendering of stacks and analysis results."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol, TypeAlias

from pydantic import TypeAdapter
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from stackparse.models import (
    FrameCount,
    FunctionSummary,
    Stack,
    StackCluster,
    SuspiciousReport,
)

FormatKind: TypeAlias = Literal["default", "json"]

# ============================================================
# CONSOLES
# ============================================================

STACKPARSE_THEME = Theme(
    {
        "critical": "bold red",
        "warning": "bold yellow",
        "success": "bold green",
        "info": "cyan",
        "metric": "white",
        "label": "dim white",
        "header": "bold magenta",
    }
)

console = Console(theme=STACKPARSE_THEME)
err_console = Console(theme=STACKPARSE_THEME, stderr=True)

_STACKS_ADAPTER: TypeAdapter[list[Stack]] = TypeAdapter(list[Stack])
_SUMMARIES_ADAPTER: TypeAdapter[list[FunctionSummary]] = TypeAdapter(list[FunctionSummary])
_FRAME_COUNTS_ADAPTER: TypeAdapter[list[FrameCount]] = TypeAdapter(list[FrameCount])
_CLUSTERS_ADAPTER: TypeAdapter[list[StackCluster]] = TypeAdapter(list[StackCluster])


def write_raw(output: Console, text: str) -> None:
    """Write text verbatim, keeping the tabs of goroutine dump lines."""
    output.file.write(text + "\n")


# ============================================================
# FORMATTERS
# ============================================================


class Formatter(Protocol):
    """Renders stack collections and analysis results to a console."""

    def format_stacks(self, stacks: Sequence[Stack]) -> None: ...

    def format_summaries(self, summaries: Sequence[FunctionSummary]) -> None: ...

    def format_report(self, report: SuspiciousReport) -> None: ...

    def format_frame_counts(self, frame_counts: Sequence[FrameCount]) -> None: ...

    def format_clusters(self, clusters: Sequence[StackCluster]) -> None: ...


class TextFormatter:
    """Goroutine dump text for stacks, tables and rules for analysis results."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def format_stacks(self, stacks: Sequence[Stack]) -> None:
        for stack in stacks:
            write_raw(self.console, str(stack))

    def format_summaries(self, summaries: Sequence[FunctionSummary]) -> None:
        self.console.print(create_summary_table(summaries))

    def format_report(self, report: SuspiciousReport) -> None:
        render_suspicious_report(report, self.console)

    def format_frame_counts(self, frame_counts: Sequence[FrameCount]) -> None:
        render_frame_statistics(frame_counts, self.console)

    def format_clusters(self, clusters: Sequence[StackCluster]) -> None:
        render_clusters(clusters, self.console)


class JsonFormatter:
    """Lossless JSON encoding for machine consumption."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def format_stacks(self, stacks: Sequence[Stack]) -> None:
        self._emit(_STACKS_ADAPTER.dump_json(list(stacks), indent=2))

    def format_summaries(self, summaries: Sequence[FunctionSummary]) -> None:
        self._emit(_SUMMARIES_ADAPTER.dump_json(list(summaries), indent=2))

    def format_report(self, report: SuspiciousReport) -> None:
        self._emit(report.model_dump_json(indent=2).encode("utf-8"))

    def format_frame_counts(self, frame_counts: Sequence[FrameCount]) -> None:
        self._emit(_FRAME_COUNTS_ADAPTER.dump_json(list(frame_counts), indent=2))

    def format_clusters(self, clusters: Sequence[StackCluster]) -> None:
        self._emit(_CLUSTERS_ADAPTER.dump_json(list(clusters), indent=2))

    def _emit(self, payload: bytes) -> None:
        write_raw(self.console, payload.decode("utf-8"))


def create_formatter(kind: FormatKind, output: Console | None = None) -> Formatter:
    if kind == "json":
        return JsonFormatter(output)
    return TextFormatter(output)


# ============================================================
# TABLES & REPORTS
# ============================================================


def create_summary_table(summaries: Sequence[FunctionSummary]) -> Table:
    table = Table(box=None, padding=(0, 2), show_header=True, header_style="header")
    table.add_column("Function", style="metric", overflow="fold")
    table.add_column("Count", style="info", justify="right")
    for summary in summaries:
        table.add_row(escape(summary.function), str(summary.count))
    return table


def create_frame_count_table(title: str, frame_counts: Sequence[FrameCount]) -> Table:
    table = Table(title=title, box=None, padding=(0, 2), header_style="header")
    table.add_column("Frame", style="metric", overflow="fold")
    table.add_column("Goroutines", style="info", justify="right")
    for fc in frame_counts:
        table.add_row(escape(fc.frame_key), str(fc.count))
    return table


def render_clusters(clusters: Sequence[StackCluster], output: Console | None = None) -> None:
    """Print each cluster's size, wait statistics and representative stack."""
    out = output or console
    for cluster in clusters:
        out.print(f"[label]count:[/label] [metric]{cluster.count}[/metric]")
        out.print(f"[label]wait:[/label] [metric]{cluster.wait_stats}[/metric]")
        write_raw(out, str(cluster.representative))


def render_suspicious_report(report: SuspiciousReport, output: Console | None = None) -> None:
    out = output or console
    if not report.ranked_frames:
        out.print("[info]No frames to analyze[/info]")
        return

    out.print(create_frame_count_table("Most shared frames", report.ranked_frames))
    for group in report.groups:
        out.print()
        out.rule(f"[header]FRAME SUS STAT[/header] {escape(group.frame_key)} - {group.count}")
        render_clusters(group.clusters, out)


def render_frame_statistics(
    frame_counts: Sequence[FrameCount], output: Console | None = None
) -> None:
    out = output or console
    for fc in frame_counts:
        write_raw(out, f"{fc.frame_key}\t{fc.count}")
