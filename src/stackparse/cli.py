#!/usr/bin/env python3
"""stackparse - goroutine stack dump analyzer.

Parses a Go goroutine dump (a panic trace, SIGQUIT output or
/debug/pprof/goroutine?debug=2) and supports:
- Filtering by frame text, state and wait time
- Sorting by wait time, stack depth or goroutine number
- Summaries by innermost function
- Suspicious-pattern detection (shared call sites split into same-shape clusters)
- JSON output for machine consumption
- An interactive shell for iterative narrowing
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, TextIO

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from stackparse import __version__
from stackparse.analysis import bucket_sameish, find_suspicious, frame_statistics
from stackparse.errors import StackparseError
from stackparse.models import AnalysisOptions, OutputKind, Stack
from stackparse.parser import parse_stacks
from stackparse.query import (
    Filter,
    apply_filters,
    has_frame_matching,
    match_state,
    negate,
    parse_duration,
    sort_stacks,
    summarize,
    time_greater_than,
)
from stackparse.render import console, create_formatter, err_console
from stackparse.repl import StackRepl

OUTPUT_KINDS: tuple[OutputKind, ...] = ("full", "summary", "suspicious", "framestat", "unique")

app = typer.Typer(
    name="stackparse",
    help="Goroutine stack dump analyzer: filter, sort, summarize and find stuck patterns",
    add_completion=False,
    rich_markup_mode="rich",
)


@contextmanager
def open_dump(dump_file: str) -> Iterator[TextIO]:
    """Open the dump file, or standard input for '-'."""
    if dump_file == "-":
        yield sys.stdin
        return
    with Path(dump_file).open(encoding="utf-8", errors="replace") as f:
        yield f


def build_filters(
    frame_match: list[str] | None,
    frame_not_match: list[str] | None,
    wait_more_than: str | None,
    wait_less_than: str | None,
    state_match: list[str] | None,
    state_not_match: list[str] | None,
) -> list[Filter]:
    """Translate command-line filter options into predicates."""
    filters: list[Filter] = []
    filters.extend(has_frame_matching(p) for p in frame_match or [])
    filters.extend(negate(has_frame_matching(p)) for p in frame_not_match or [])
    if wait_more_than:
        filters.append(time_filter(wait_more_than))
    if wait_less_than:
        filters.append(negate(time_filter(wait_less_than)))
    filters.extend(match_state(s) for s in state_match or [])
    filters.extend(negate(match_state(s)) for s in state_not_match or [])
    return filters


def time_filter(text: str) -> Filter:
    return time_greater_than(parse_duration(text))


def resolve_output_kind(output: str, summary: bool, suspicious: bool) -> OutputKind:
    if summary:
        return "summary"
    if suspicious:
        return "suspicious"
    if output not in OUTPUT_KINDS:
        raise ValueError(
            f"unrecognized output type: {output} (valid options are: {', '.join(OUTPUT_KINDS)})"
        )
    return output  # type: ignore[return-value]


def render_output(
    stacks: list[Stack],
    output_kind: OutputKind,
    as_json: bool,
    options: AnalysisOptions,
    output: Console | None = None,
) -> None:
    formatter = create_formatter("json" if as_json else "default", output)

    if output_kind == "full":
        formatter.format_stacks(stacks)
    elif output_kind == "summary":
        formatter.format_summaries(summarize(stacks))
    elif output_kind == "suspicious":
        formatter.format_report(find_suspicious(stacks, options))
    elif output_kind == "framestat":
        formatter.format_frame_counts(frame_statistics(stacks))
    elif output_kind == "unique":
        formatter.format_clusters(bucket_sameish(stacks))


@app.command()
def analyze(
    dump_file: Annotated[
        str,
        typer.Argument(help="Path to a goroutine dump, or '-' to read standard input"),
    ] = "-",
    frame_match: Annotated[
        list[str] | None,
        typer.Option(
            "--frame-match",
            "--fm",
            help="Only stacks with a frame (function or file:line) containing this text",
        ),
    ] = None,
    frame_not_match: Annotated[
        list[str] | None,
        typer.Option(
            "--frame-not-match",
            "--fnm",
            help="Only stacks with no frame containing this text",
        ),
    ] = None,
    wait_more_than: Annotated[
        str | None,
        typer.Option(
            "--wait-more-than",
            help="Only stacks blocked at least this long (e.g. 10m, 1h30m)",
        ),
    ] = None,
    wait_less_than: Annotated[
        str | None,
        typer.Option(
            "--wait-less-than",
            help="Only stacks blocked less than this long",
        ),
    ] = None,
    state_match: Annotated[
        list[str] | None,
        typer.Option("--state-match", help="Only stacks whose state is exactly this"),
    ] = None,
    state_not_match: Annotated[
        list[str] | None,
        typer.Option("--state-not-match", help="Only stacks whose state is not this"),
    ] = None,
    sort: Annotated[
        str,
        typer.Option("--sort", help="Sort order: waittime, stacksize or goronum"),
    ] = "waittime",
    line_prefix: Annotated[
        str | None,
        typer.Option(
            "--line-prefix",
            help="Regex prefix stripped from every line (e.g. a journald prefix)",
        ),
    ] = None,
    output: Annotated[
        str,
        typer.Option(
            "--output",
            "-o",
            help="Output type: full, summary, suspicious, framestat or unique",
        ),
    ] = "full",
    summary: Annotated[
        bool,
        typer.Option("--summary", "-s", help="Summarize stacks by innermost function"),
    ] = False,
    suspicious: Annotated[
        bool,
        typer.Option("--suspicious", "--sus", help="Report shared frames and stuck patterns"),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", "-j", help="Print output as JSON"),
    ] = False,
    top_frames: Annotated[
        int,
        typer.Option("--top-frames", help="Shared frames listed in the suspicious report", min=1),
    ] = 20,
    detail_frames: Annotated[
        int,
        typer.Option(
            "--detail-frames", help="Shared frames clustered in the suspicious report", min=0
        ),
    ] = 5,
    repl: Annotated[
        bool,
        typer.Option("--repl", help="Start an interactive shell on the filtered stacks"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print parsing and filtering details"),
    ] = False,
) -> None:
    """Parse a goroutine dump, then filter, sort and report on it.

    Exit codes: 0 = success, 1 = parse or usage error.
    """
    try:
        options = AnalysisOptions(
            top_frame_keys=top_frames,
            detail_frame_keys=detail_frames,
            sort_key=sort,
            line_prefix=line_prefix,
        )
        output_kind = resolve_output_kind(output, summary, suspicious)
        filters = build_filters(
            frame_match,
            frame_not_match,
            wait_more_than,
            wait_less_than,
            state_match,
            state_not_match,
        )

        with open_dump(dump_file) as stream:
            if verbose:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    console=err_console,
                    transient=True,
                ) as progress:
                    progress.add_task("[cyan]Parsing goroutines...", total=None)
                    stacks = parse_stacks(stream, options.line_prefix)
            else:
                stacks = parse_stacks(stream, options.line_prefix)

        if verbose:
            err_console.print(
                f"[info]Parsed {len(stacks)} goroutines from {escape(dump_file)}[/info]"
            )

        stacks = sort_stacks(stacks, options.sort_key)
        stacks = apply_filters(stacks, filters)

        if verbose:
            err_console.print(
                f"[info]{len(stacks)} goroutines left after {len(filters)} filter(s)[/info]"
            )

        render_output(stacks, output_kind, as_json, options)

        if repl:
            StackRepl(stacks, options=options).run()

    except (StackparseError, ValueError) as e:
        err_console.print(
            f"[critical]ERROR: {escape(str(e))}[/critical]", highlight=False, soft_wrap=True
        )
        sys.exit(1)
    except Exception as e:
        err_console.print(
            f"[critical]ERROR: {escape(str(e))}[/critical]", highlight=False, soft_wrap=True
        )
        if verbose:
            err_console.print_exception()
        sys.exit(1)


@app.command()
def version() -> None:
    """Display version."""
    console.print(f"stackparse {__version__}")


if __name__ == "__main__":
    app()
