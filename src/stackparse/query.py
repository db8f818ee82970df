"""Filters, sort keys and summaries over parsed stacks."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from datetime import timedelta
from typing import Any, TypeAlias

from stackparse.models import FunctionSummary, SortKeyName, Stack

Filter: TypeAlias = Callable[[Stack], bool]
SortKey: TypeAlias = Callable[[Stack], Any]

# ============================================================
# FILTERS
# ============================================================


def has_frame_matching(pattern: str) -> Filter:
    """Keep stacks with a frame whose function or 'file:line' contains pattern."""

    def predicate(stack: Stack) -> bool:
        return any(
            pattern in frame.function or pattern in frame.location for frame in stack.frames
        )

    return predicate


def match_state(state: str) -> Filter:
    def predicate(stack: Stack) -> bool:
        return stack.state == state

    return predicate


def time_greater_than(threshold: timedelta) -> Filter:
    """Keep stacks that have waited at least threshold (inclusive)."""

    def predicate(stack: Stack) -> bool:
        return stack.wait_time >= threshold

    return predicate


def negate(inner: Filter) -> Filter:
    def predicate(stack: Stack) -> bool:
        return not inner(stack)

    return predicate


def apply_filters(stacks: Iterable[Stack], filters: Sequence[Filter]) -> list[Stack]:
    """Keep the stacks that pass every filter, preserving input order."""
    return [stack for stack in stacks if all(f(stack) for f in filters)]


# ============================================================
# SORTING
# ============================================================


def by_wait_time(stack: Stack) -> timedelta:
    return stack.wait_time


def by_depth(stack: Stack) -> int:
    return len(stack.frames)


def by_number(stack: Stack) -> int:
    return stack.number


SORT_KEYS: dict[SortKeyName, SortKey] = {
    "waittime": by_wait_time,
    "stacksize": by_depth,
    "goronum": by_number,
}


def sort_stacks(stacks: Iterable[Stack], key: SortKeyName | SortKey = "waittime") -> list[Stack]:
    """Stable ascending sort by one of the named keys or a key function."""
    if isinstance(key, str):
        try:
            key = SORT_KEYS[key]
        except KeyError:
            raise ValueError(
                f"unknown sorting parameter: {key} (options: goronum, stacksize, waittime)"
            ) from None
    return sorted(stacks, key=key)


# ============================================================
# SUMMARIES
# ============================================================


def summarize(stacks: Iterable[Stack]) -> list[FunctionSummary]:
    """Count stacks per innermost function, ascending by count.

    Frameless stacks have no innermost function and are left out.
    """
    counts: dict[str, int] = {}
    for stack in stacks:
        function = stack.top_function
        if function is None:
            continue
        counts[function] = counts.get(function, 0) + 1

    ranked = sorted(counts.items(), key=lambda item: item[1])
    return [FunctionSummary(function=function, count=count) for function, count in ranked]


# ============================================================
# DURATIONS
# ============================================================

DURATION_PATTERN: re.Pattern[str] = re.compile(
    r"(?P<value>\d+(?:\.\d*)?|\.\d+)(?P<unit>ns|us|µs|ms|s|m|h)"
)

DURATION_UNITS: dict[str, timedelta] = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as '10m', '1h30m' or '90s'."""
    text = text.strip()
    if text == "0":
        return timedelta(0)

    total = timedelta(0)
    position = 0
    while position < len(text):
        match = DURATION_PATTERN.match(text, position)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group("value")) * DURATION_UNITS[match.group("unit")]
        position = match.end()

    if position == 0:
        raise ValueError(f"invalid duration {text!r}")
    return total
