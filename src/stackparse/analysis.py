"""Suspicious-pattern detection: shared call sites and same-shape clusters.

Hundreds of goroutines blocked at one call site usually collapse into a few
distinct shapes. The report ranks call sites by how many goroutines pass
through them, then splits each of the busiest into clusters of 'sameish'
stacks with their wait time distribution.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import timedelta

from stackparse.models import (
    AnalysisOptions,
    FrameCount,
    SharedFrameGroup,
    Stack,
    StackCluster,
    SuspiciousReport,
    WaitStats,
)


def shared_frames(stacks: Iterable[Stack]) -> dict[str, list[Stack]]:
    """Map each frame key to the stacks containing it, once per stack."""
    index: dict[str, list[Stack]] = {}
    for stack in stacks:
        seen: set[str] = set()
        for frame in stack.frames:
            key = frame.frame_key()
            if key in seen:
                continue
            seen.add(key)
            index.setdefault(key, []).append(stack)
    return index


def rank_frame_keys(index: dict[str, list[Stack]], top: int | None = None) -> list[FrameCount]:
    """Frame keys by descending stack count; ties keep first-seen order."""
    ranked = sorted(
        (FrameCount(frame_key=key, count=len(members)) for key, members in index.items()),
        key=lambda fc: fc.count,
        reverse=True,
    )
    if top is not None:
        ranked = ranked[:top]
    return ranked


def compute_wait_stats(stacks: Sequence[Stack]) -> WaitStats:
    """Min, max, mean and (upper) median wait time of a non-empty group."""
    if not stacks:
        raise ValueError("cannot compute wait statistics of an empty group")

    durations = sorted(stack.wait_time for stack in stacks)
    total = sum(durations, timedelta(0))
    return WaitStats(
        minimum=durations[0],
        maximum=durations[-1],
        mean=total / len(durations),
        median=durations[len(durations) // 2],
    )


def bucket_sameish(stacks: Iterable[Stack]) -> list[StackCluster]:
    """Partition stacks into same-shape clusters, first matching cluster wins."""
    representatives: list[Stack] = []
    buckets: list[list[Stack]] = []
    for stack in stacks:
        for representative, bucket in zip(representatives, buckets):
            if stack.sameish(representative):
                bucket.append(stack)
                break
        else:
            representatives.append(stack)
            buckets.append([stack])

    return [
        StackCluster(
            representative=representative,
            members=bucket,
            wait_stats=compute_wait_stats(bucket),
        )
        for representative, bucket in zip(representatives, buckets)
    ]


def find_suspicious(
    stacks: Sequence[Stack], options: AnalysisOptions | None = None
) -> SuspiciousReport:
    """Rank shared call sites and cluster the stacks behind the busiest ones."""
    options = options or AnalysisOptions()
    index = shared_frames(stacks)
    ranked = rank_frame_keys(index, options.top_frame_keys)

    groups = [
        SharedFrameGroup(
            frame_key=fc.frame_key,
            count=fc.count,
            clusters=bucket_sameish(index[fc.frame_key]),
        )
        for fc in ranked[: options.detail_frame_keys]
    ]
    return SuspiciousReport(ranked_frames=ranked, groups=groups)


def frame_statistics(stacks: Iterable[Stack]) -> list[FrameCount]:
    """Count every frame occurrence as 'file:line\\nfunction', ascending."""
    counts: dict[str, int] = {}
    for stack in stacks:
        for frame in stack.frames:
            key = f"{frame.location}\n{frame.function}"
            counts[key] = counts.get(key, 0) + 1

    ranked = sorted(counts.items(), key=lambda item: item[1])
    return [FrameCount(frame_key=key, count=count) for key, count in ranked]
