"""Goroutine stack dump parsing and analysis."""

from stackparse.analysis import (
    bucket_sameish,
    compute_wait_stats,
    find_suspicious,
    frame_statistics,
    rank_frame_keys,
    shared_frames,
)
from stackparse.errors import (
    InternalFault,
    InvalidPrefixPattern,
    MalformedEntryLine,
    MalformedHeaderLine,
    StackparseError,
    StackParseError,
    TruncatedCreatedBy,
)
from stackparse.models import (
    AnalysisOptions,
    CreatedBy,
    Frame,
    FunctionSummary,
    Stack,
    SuspiciousReport,
    WaitStats,
)
from stackparse.parser import StackParser, parse_entry_line, parse_stacks, parse_text
from stackparse.query import (
    apply_filters,
    has_frame_matching,
    match_state,
    negate,
    sort_stacks,
    summarize,
    time_greater_than,
)

__version__ = "1.0.0"

__all__ = [
    "AnalysisOptions",
    "CreatedBy",
    "Frame",
    "FunctionSummary",
    "InternalFault",
    "InvalidPrefixPattern",
    "MalformedEntryLine",
    "MalformedHeaderLine",
    "Stack",
    "StackParseError",
    "StackParser",
    "StackparseError",
    "SuspiciousReport",
    "TruncatedCreatedBy",
    "WaitStats",
    "apply_filters",
    "bucket_sameish",
    "compute_wait_stats",
    "find_suspicious",
    "frame_statistics",
    "has_frame_matching",
    "match_state",
    "negate",
    "parse_entry_line",
    "parse_stacks",
    "parse_text",
    "rank_frame_keys",
    "shared_frames",
    "sort_stacks",
    "summarize",
    "time_greater_than",
]
