"""Line-oriented parser for goroutine stack dumps.

A dump is a sequence of blocks::

    goroutine 18 [chan receive, 3 minutes, locked to thread]:
    main.worker(0xc000010000, 0x1)
    	/src/main.go:42 +0x1a
    created by main.main
    	/src/main.go:20 +0x5c

separated by blank lines. The parser is a small explicit state machine that
reads one line at a time and either returns every stack in the input or raises
a single StackParseError naming the offending line.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from datetime import timedelta
from typing import Any

from stackparse.errors import (
    InternalFault,
    InvalidPrefixPattern,
    MalformedEntryLine,
    MalformedHeaderLine,
    StackParseError,
    TruncatedCreatedBy,
)
from stackparse.models import LOCKED_TO_THREAD, CreatedBy, Frame, Stack

HEADER_PREFIX = "goroutine "
CREATED_BY_PREFIX = "created by "

INT_TOKEN_PATTERN: re.Pattern[str] = re.compile(r"(?P<hex>0[xX][0-9a-fA-F]+)|(?P<dec>\d+)")
WAIT_SEGMENT_PATTERN: re.Pattern[str] = re.compile(r"(?P<minutes>\d+) minutes?")
GOROUTINE_NUMBER_PATTERN: re.Pattern[str] = re.compile(r"[0-9]+")

# ============================================================
# LINE GRAMMARS
# ============================================================


def parse_int_token(token: str) -> int:
    """Parse a decimal or 0x-prefixed hexadecimal integer."""
    match = INT_TOKEN_PATTERN.fullmatch(token)
    if not match:
        raise ValueError(f"not an integer: {token!r}")
    if match.group("hex"):
        return int(token[2:], 16)
    return int(token)


def parse_entry_line(line: str) -> tuple[str, int, int]:
    """Parse '<file>:<line> [<entry>]' into (file, line, entry).

    The entry address may carry Go's leading '+' and defaults to 0 when absent.
    """
    parts = line.split(":")
    if len(parts) != 2:
        raise MalformedEntryLine(f"expected exactly one colon in {line!r}")

    file = parts[0].strip(" \t\n")
    tokens = parts[1].split()
    if not tokens:
        raise MalformedEntryLine(f"missing line number in {line!r}")

    try:
        line_number = parse_int_token(tokens[0])
    except ValueError:
        raise MalformedEntryLine(f"error finding line number in {line!r}") from None

    entry = 0
    if len(tokens) > 1:
        try:
            entry = parse_int_token(tokens[1].removeprefix("+"))
        except ValueError:
            raise MalformedEntryLine(f"bad entry address in {line!r}") from None

    return file, line_number, entry


def parse_header_line(line: str) -> dict[str, Any]:
    """Parse 'goroutine <n> [<state>(, <N> minutes)?(, locked to thread)?]:'."""
    parts = line.split(" ")
    if len(parts) < 3:
        raise MalformedHeaderLine(repr(line))

    if not GOROUTINE_NUMBER_PATTERN.fullmatch(parts[1]):
        raise MalformedHeaderLine(f"bad goroutine number in {line!r}")
    number = int(parts[1])

    segments = " ".join(parts[2:]).strip().strip("[]:").split(",")
    wait_time = timedelta(0)
    locked = False
    # The first segment is always the state; wait time and thread lock are optional.
    for raw_segment in segments[1:]:
        segment = raw_segment.strip()
        if segment == LOCKED_TO_THREAD:
            locked = True
            continue
        wait_match = WAIT_SEGMENT_PATTERN.fullmatch(segment)
        if not wait_match:
            raise MalformedHeaderLine(f"weirdly formatted header segment {raw_segment!r}")
        wait_time = timedelta(minutes=int(wait_match.group("minutes")))

    return {
        "number": number,
        "state": segments[0],
        "wait_time": wait_time,
        "thread_locked": locked,
    }


def parse_function_line(line: str) -> tuple[str, tuple[str, ...]]:
    """Split 'pkg.Func(arg1, arg2)' into the function name and its raw params."""
    open_index = line.rfind("(")
    if open_index == -1:
        return line, ()

    close_index = line.find(")", open_index)
    if close_index == -1:
        close_index = len(line)
    inner = line[open_index + 1 : close_index]
    params = tuple(inner.split(", ")) if inner else ()
    return line[:open_index], params


# ============================================================
# PREFIX STRIPPING
# ============================================================


class LinePrefix:
    """Strips a log prefix (timestamps, hostnames) from every raw line."""

    def __init__(self, pattern: str | None) -> None:
        self.pattern: re.Pattern[str] | None = None
        if pattern:
            try:
                self.pattern = re.compile(pattern)
            except re.error as e:
                raise InvalidPrefixPattern(pattern, str(e)) from e

    def strip(self, line: str) -> str:
        if self.pattern is None:
            return line
        match = self.pattern.match(line)
        prefix_length = match.end() if match else 0
        if prefix_length == len(line):
            return ""
        return line[prefix_length:].strip()


# ============================================================
# STACK PARSER
# ============================================================


class StackParser:
    """Per-line state machine that assembles Stack records.

    States: idle (no open stack), in a stack, in a stack with a pending frame
    (function line seen, location line expected), or in a stack with a pending
    'created by' line.
    """

    def __init__(self, line_prefix: str | None = None) -> None:
        self.prefix = LinePrefix(line_prefix)
        self._reset()

    def _reset(self) -> None:
        self.stacks: list[Stack] = []
        self._header: dict[str, Any] | None = None
        self._frames: list[Frame] = []
        self._created_by: CreatedBy | None = None
        self._pending_frame: tuple[str, tuple[str, ...]] | None = None
        self._pending_creator: tuple[str, int] | None = None

    @property
    def in_stack(self) -> bool:
        return self._header is not None

    def parse(self, lines: Iterable[str]) -> list[Stack]:
        """Consume every line and return the stacks in input order."""
        self._reset()
        line_number = 0
        for line_number, raw_line in enumerate(lines, start=1):
            try:
                self.feed(raw_line.rstrip("\r\n"), line_number)
            except StackParseError as e:
                raise e.at_line(line_number)
            except Exception as e:
                raise InternalFault(f"{type(e).__name__}: {e}", line_number) from e

        if self._pending_creator is not None:
            raise TruncatedCreatedBy(self._pending_creator[0], self._pending_creator[1])
        if self._pending_frame is not None:
            raise MalformedEntryLine(
                f"input ends before the location line of {self._pending_frame[0]!r}", line_number
            )
        self._close_stack()
        stacks = self.stacks
        self._reset()
        return stacks

    def feed(self, raw_line: str, line_number: int) -> None:
        """Advance the state machine by one raw input line."""
        line = self.prefix.strip(raw_line)

        if self._pending_creator is not None:
            function, _ = self._pending_creator
            self._pending_creator = None
            file, lnum, entry = parse_entry_line(line)
            self._created_by = CreatedBy(function=function, file=file, line=lnum, entry=entry)
            return

        if self._pending_frame is not None:
            function, params = self._pending_frame
            file, lnum, entry = parse_entry_line(line)
            self._frames.append(
                Frame(function=function, params=params, file=file, line=lnum, entry=entry)
            )
            self._pending_frame = None
            return

        if line.startswith(HEADER_PREFIX):
            self._close_stack()
            self._header = parse_header_line(line)
            return

        if not line.strip():
            self._close_stack()
            return

        if not self.in_stack:
            # Stray text between blocks is tolerated.
            return

        if line.startswith(CREATED_BY_PREFIX):
            self._pending_creator = (line.removeprefix(CREATED_BY_PREFIX).strip(), line_number)
            return

        self._pending_frame = parse_function_line(line)

    def _close_stack(self) -> None:
        if self._header is None:
            return
        self.stacks.append(
            Stack(**self._header, frames=tuple(self._frames), created_by=self._created_by)
        )
        self._header = None
        self._frames = []
        self._created_by = None


def iter_lines(stream: Iterable[str | bytes]) -> Iterator[str]:
    """Yield text lines from a text or binary stream."""
    for line in stream:
        if isinstance(line, bytes):
            yield line.decode("utf-8", errors="replace")
        else:
            yield line


def parse_stacks(stream: Iterable[str | bytes], line_prefix: str | None = None) -> list[Stack]:
    """Parse a whole goroutine dump from an iterable of lines."""
    return StackParser(line_prefix).parse(iter_lines(stream))


def parse_text(text: str, line_prefix: str | None = None) -> list[Stack]:
    return parse_stacks(text.splitlines(), line_prefix)
