"""
chunkscribe.utils - Shared time formatting helpers.

Contains the clock formats used in prompts, topic segments and CLI output.
"""

from __future__ import annotations


def format_clock(seconds: float) -> str:
    """Format seconds as zero-padded MM:SS.

    Minutes are not wrapped into hours, so 3725 seconds is "62:05". This
    is the format topic segments and prompt transcripts use.

    Args:
        seconds: Time offset in seconds

    Returns:
        Formatted string
    """
    seconds = max(0.0, seconds)
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes:02d}:{secs:02d}"


def parse_clock(value: str) -> int:
    """Parse an MM:SS or HH:MM:SS string into whole seconds.

    Raises:
        ValueError: If the string is not a clock value
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Not a clock value: {value!r}")
    total = 0
    for part in parts:
        total = total * 60 + int(part)
    return total


def format_bytes(size: int) -> str:
    """Format a byte count for display (B, KB, MB)."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
