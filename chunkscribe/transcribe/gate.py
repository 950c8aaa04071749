"""
chunkscribe.transcribe.gate - Dynamic success threshold.

Small jobs tolerate no losses; larger jobs tolerate at most three failed
chunks, never dropping below a 60% success floor.
"""

from __future__ import annotations

import math

from chunkscribe.exceptions import InsufficientSuccessRateError
from chunkscribe.logging import logger


def success_threshold(total_chunks: int) -> float:
    """Minimum fraction of chunks that must succeed.

    Args:
        total_chunks: Number of chunks submitted for transcription

    Returns:
        Required success ratio between 0.6 and 1.0
    """
    if total_chunks <= 3:
        return 1.0
    if total_chunks <= 5:
        return 0.8
    if total_chunks <= 10:
        return 0.7
    return max(0.6, 1 - 3 / total_chunks)


def check_success_rate(successful: int, total: int, failed: int = 0) -> float:
    """Compare the achieved success ratio against the threshold.

    Args:
        successful: Chunks with a successful transcription
        total: Chunks submitted (dropped chunks excluded)
        failed: Chunks that exhausted their retries, for the degraded warning

    Returns:
        The actual success ratio

    Raises:
        InsufficientSuccessRateError: If the ratio is below the threshold,
            or if nothing was submitted at all
    """
    required_ratio = success_threshold(total)

    if total <= 0:
        raise InsufficientSuccessRateError(0, 0, 1, required_ratio)

    actual = successful / total
    # Float products like 21 * (1 - 3/21) land a hair above the integer.
    required = math.ceil(total * required_ratio - 1e-9)
    logger.info(
        "Success threshold: %.1f%% (required), %.1f%% (actual), %d/%d chunks",
        required_ratio * 100,
        actual * 100,
        successful,
        total,
    )

    if successful < required:
        logger.error(
            "Insufficient success rate: %d/%d (%.1f%%), %d required",
            successful,
            total,
            actual * 100,
            required,
        )
        raise InsufficientSuccessRateError(successful, total, required, required_ratio)

    if successful < total:
        logger.warning(
            "Some chunks failed (%d/%d, %d after retries) but meeting %.1f%% threshold",
            total - successful,
            total,
            failed,
            required_ratio * 100,
        )
    return actual
