"""
chunkscribe.transcribe.chunks - Byte-range chunk planning and reading.

Audio is split on byte boundaries rather than decoded, so every chunk is
an opaque slice of the source file that the transcription API decodes on
its own.
"""

from __future__ import annotations

from pathlib import Path

from chunkscribe.exceptions import TranscriptionError
from chunkscribe.logging import logger
from chunkscribe.models import ChunkSpec

MIN_CHUNK_BYTES = 4096


def plan_chunks(total_bytes: int, chunk_size: int) -> list[ChunkSpec]:
    """Split ``[0, total_bytes)`` into contiguous ranges of at most chunk_size.

    Args:
        total_bytes: Length of the source file
        chunk_size: Maximum bytes per chunk

    Returns:
        Ordered list of ChunkSpec; the last one may be shorter

    Raises:
        ValueError: If chunk_size is not positive or total_bytes is negative
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if total_bytes < 0:
        raise ValueError(f"total_bytes must not be negative, got {total_bytes}")

    chunks = []
    offset = 0
    while offset < total_bytes:
        end = min(offset + chunk_size, total_bytes)
        chunks.append(ChunkSpec(index=len(chunks), start_byte=offset, end_byte=end))
        offset = end
    return chunks


def fetch_chunk(
    audio_path: Path,
    spec: ChunkSpec,
    min_chunk_bytes: int = MIN_CHUNK_BYTES,
) -> bytes | None:
    """Read one chunk's bytes from the source file.

    Slices smaller than min_chunk_bytes are not worth sending: a fragment
    shorter than an audio frame comes back from the API as malformed
    input. They are skipped by returning None.

    Args:
        audio_path: Local path to the source audio
        spec: Byte range to read
        min_chunk_bytes: Smallest slice that will be returned

    Returns:
        Exactly ``spec.size`` bytes, or None if the slice is too small

    Raises:
        TranscriptionError: If the file is shorter than the range
    """
    if spec.size < min_chunk_bytes:
        logger.info("Chunk %d is %d bytes, below %d, skipping", spec.index, spec.size, min_chunk_bytes)
        return None

    with open(audio_path, "rb") as f:
        f.seek(spec.start_byte)
        data = f.read(spec.size)

    if len(data) != spec.size:
        raise TranscriptionError(
            f"Short read for chunk {spec.index}: expected {spec.size} bytes, got {len(data)}"
        )
    return data
