"""
chunkscribe.transcribe.timeline - Per-chunk timestamps to one timeline.

Each chunk is transcribed in isolation, so its segment times start at
zero. The reconciler shifts them by the sum of the durations the service
reported for all earlier successful chunks.
"""

from __future__ import annotations

from typing import Iterable

from chunkscribe.logging import logger
from chunkscribe.models import ChunkResult, GlobalSegment
from chunkscribe.utils import format_clock


def reconcile_timeline(
    results: Iterable[ChunkResult | None],
) -> tuple[list[GlobalSegment], float]:
    """Merge chunk results into absolute-time segments.

    Failed, dropped (None) and skipped chunks add no offset, leaving a
    gap in the timeline at their position.

    Args:
        results: Chunk results in chunk index order

    Returns:
        Tuple of (global segments, total duration in seconds)
    """
    ordered = sorted((r for r in results if r is not None), key=lambda r: r.index)

    segments: list[GlobalSegment] = []
    offset = 0.0
    for result in ordered:
        if not result.success:
            continue
        logger.debug("Chunk %d has %d segments, offset %.2fs", result.index, len(result.segments), offset)
        for seg in result.segments:
            segments.append(
                GlobalSegment(
                    text=seg.text,
                    start=offset + seg.start,
                    end=offset + seg.end,
                    source_chunk_index=result.index,
                )
            )
        offset += result.duration

    logger.info("Total segments collected: %d, total duration %s", len(segments), format_clock(offset))
    return segments, offset


def join_transcript(results: Iterable[ChunkResult | None]) -> str:
    """Concatenate the text of successful chunks in index order."""
    ordered = sorted((r for r in results if r is not None and r.success), key=lambda r: r.index)
    return " ".join(r.text for r in ordered)
