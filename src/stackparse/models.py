"""Pydantic models for parsed goroutine dumps and analysis results."""

from __future__ import annotations

from datetime import timedelta
from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, computed_field

# ============================================================
# TYPE ALIASES
# ============================================================

SortKeyName: TypeAlias = Literal["waittime", "stacksize", "goronum"]
OutputKind: TypeAlias = Literal["full", "summary", "suspicious", "framestat", "unique"]

LOCKED_TO_THREAD = "locked to thread"

# ============================================================
# STACK MODELS
# ============================================================


def _format_location(file: str, line: int, entry: int) -> str:
    location = f"{file}:{line}"
    if entry:
        location += f" +{entry:#x}"
    return location


class Frame(BaseModel):
    """One call site within a goroutine stack."""

    model_config = ConfigDict(frozen=True)

    function: str
    params: tuple[str, ...] = ()
    file: str
    line: int = Field(ge=0)
    entry: int = Field(default=0, ge=0)

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}"

    def frame_key(self) -> str:
        """Identify the call site as a single '(file, line, function)' string."""
        return f"{self.file}:{self.line} {self.function}"

    def __str__(self) -> str:
        params = ", ".join(self.params)
        return f"{self.function}({params})\n\t{_format_location(self.file, self.line, self.entry)}"


class CreatedBy(BaseModel):
    """The call site that spawned a goroutine."""

    model_config = ConfigDict(frozen=True)

    function: str
    file: str
    line: int = Field(ge=0)
    entry: int = Field(default=0, ge=0)

    def __str__(self) -> str:
        return (
            f"created by {self.function}\n"
            f"\t{_format_location(self.file, self.line, self.entry)}"
        )


class Stack(BaseModel):
    """A single goroutine: header metadata plus frames, innermost first."""

    model_config = ConfigDict(frozen=True)

    number: int
    state: str
    wait_time: timedelta = timedelta(0)
    thread_locked: bool = False
    frames: tuple[Frame, ...] = ()
    created_by: CreatedBy | None = None

    @property
    def wait_minutes(self) -> int:
        return int(self.wait_time.total_seconds() // 60)

    @property
    def depth(self) -> int:
        return len(self.frames)

    @property
    def top_function(self) -> str | None:
        """Function name of the innermost frame, None for a frameless stack."""
        if not self.frames:
            return None
        return self.frames[0].function

    def sameish(self, other: Stack) -> bool:
        """Same shape: equal frame count and the same function names in order."""
        if len(self.frames) != len(other.frames):
            return False
        return all(a.function == b.function for a, b in zip(self.frames, other.frames))

    def header(self) -> str:
        clauses = [self.state]
        if self.wait_minutes:
            clauses.append(f"{self.wait_minutes} minutes")
        if self.thread_locked:
            clauses.append(LOCKED_TO_THREAD)
        return f"goroutine {self.number} [{', '.join(clauses)}]:"

    def __str__(self) -> str:
        parts = [self.header()]
        parts.extend(str(frame) for frame in self.frames)
        if self.created_by is not None:
            parts.append(str(self.created_by))
        return "\n".join(parts) + "\n"


# ============================================================
# ANALYSIS RESULT MODELS
# ============================================================


class FunctionSummary(BaseModel):
    """Number of goroutines whose innermost frame is in the same function."""

    function: str
    count: int = Field(ge=1)


class FrameCount(BaseModel):
    frame_key: str
    count: int = Field(ge=0)


class WaitStats(BaseModel):
    """Wait time distribution of a group of goroutines."""

    minimum: timedelta
    maximum: timedelta
    mean: timedelta
    median: timedelta

    def __str__(self) -> str:
        return (
            f"av/min/max/med: {format_duration(self.mean)}/{format_duration(self.minimum)}/"
            f"{format_duration(self.maximum)}/{format_duration(self.median)}"
        )


class StackCluster(BaseModel):
    """Goroutines judged 'sameish' to a representative stack."""

    representative: Stack
    members: list[Stack]
    wait_stats: WaitStats

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.members)


class SharedFrameGroup(BaseModel):
    """Stacks sharing one call site, split into same-shape clusters."""

    frame_key: str
    count: int
    clusters: list[StackCluster] = Field(default_factory=list)


class SuspiciousReport(BaseModel):
    ranked_frames: list[FrameCount] = Field(default_factory=list)
    groups: list[SharedFrameGroup] = Field(default_factory=list)


# ============================================================
# CONFIGURATION
# ============================================================


class AnalysisOptions(BaseModel):
    """Tunables for sorting, prefix stripping and the suspicious-pattern report."""

    top_frame_keys: int = Field(default=20, ge=1)
    detail_frame_keys: int = Field(default=5, ge=0)
    sort_key: SortKeyName = "waittime"
    line_prefix: str | None = None


def format_duration(value: timedelta) -> str:
    """Render a duration compactly, e.g. '1h5m0s', '25m0s', '0s'."""
    total_seconds = value.total_seconds()
    if total_seconds == 0:
        return "0s"
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    seconds_text = f"{seconds:g}s"
    if hours:
        return f"{int(hours)}h{int(minutes)}m{seconds_text}"
    if minutes:
        return f"{int(minutes)}m{seconds_text}"
    return seconds_text
