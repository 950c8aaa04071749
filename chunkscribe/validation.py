"""
chunkscribe.validation - Input, credential and output sanity checks.

Validates the audio input before a job starts, checks that credentials
resolve, and reports soft problems in LLM topic segments.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from chunkscribe.exceptions import ConfigError, DependencyError, ValidationError
from chunkscribe.models import TopicSegment
from chunkscribe.utils import format_clock, parse_clock

SPAN_TOLERANCE_SECONDS = 5


def check_audio_file(path: Path) -> dict[str, Any]:
    """Validate an audio file exists and is not empty.

    Args:
        path: Path to audio file

    Returns:
        Dict with 'path' and 'size_bytes'

    Raises:
        ValidationError: If file doesn't exist, is not a file, or is empty
    """
    if not path.exists():
        raise ValidationError(f"File not found: {path}")

    if not path.is_file():
        raise ValidationError(f"Not a file: {path}")

    size = path.stat().st_size
    if size == 0:
        raise ValidationError(f"Audio file is empty: {path}")

    return {
        "path": str(path),
        "size_bytes": size,
    }


def check_secret(source: Any, name: str) -> None:
    """Check that a secret resolves.

    Raises:
        DependencyError: If the secret cannot be resolved
    """
    try:
        source.get_secret(name)
    except ConfigError as e:
        raise DependencyError(name, str(e), f"Provide the credential for '{name}'") from e


def check_topic_segments(
    segments: Sequence[TopicSegment],
    total_duration: float,
    tolerance: float = SPAN_TOLERANCE_SECONDS,
) -> list[str]:
    """Report soft problems with LLM topic segments.

    None of these reject the segments; they are surfaced as warnings.

    Args:
        segments: Topic segments in order
        total_duration: Reconciled timeline duration in seconds
        tolerance: Allowed difference in seconds for the final end time

    Returns:
        List of warning strings (empty if everything lines up)
    """
    warnings: list[str] = []
    if not segments:
        return ["No topic segments returned"]

    if parse_clock(segments[0].start_time) != 0:
        warnings.append(f"First segment starts at {segments[0].start_time}, expected 00:00")

    last_end = parse_clock(segments[-1].end_time)
    if abs(last_end - int(total_duration)) > tolerance:
        warnings.append(
            f"Last segment ends at {segments[-1].end_time}, expected {format_clock(total_duration)}"
        )

    for previous, current in zip(segments, segments[1:]):
        if parse_clock(current.start_time) != parse_clock(previous.end_time):
            warnings.append(
                f"Gap or overlap between {previous.end_time} and {current.start_time} "
                f"('{previous.topic}' -> '{current.topic}')"
            )

    return warnings
