"""
chunkscribe.transcribe.scheduler - Concurrency-bounded batch execution.

Chunks run in batches of at most ``concurrency``. Every chunk in a batch
reads its bytes, transcribes and retries on its own worker thread; the
batch is joined only when all of them have finished, and the next batch
starts after that. At most one batch of chunk buffers is in memory.
"""

from __future__ import annotations

import time
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Callable

from chunkscribe.logging import logger
from chunkscribe.models import BatchOutcome, ChunkResult, ChunkSpec
from chunkscribe.transcribe.chunks import MIN_CHUNK_BYTES, fetch_chunk
from chunkscribe.transcribe.retry import RetryPolicy, transcribe_with_retry


class BatchScheduler:
    """Runs fetch + transcribe-with-retry for every chunk, batch by batch."""

    def __init__(
        self,
        client: Any,
        policy: RetryPolicy | None = None,
        concurrency: int = 5,
        min_chunk_bytes: int = MIN_CHUNK_BYTES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.client = client
        self.policy = policy or RetryPolicy()
        self.concurrency = concurrency
        self.min_chunk_bytes = min_chunk_bytes
        self.sleep = sleep

    def _process_chunk(self, audio_path: Path, spec: ChunkSpec) -> ChunkResult | None:
        audio = fetch_chunk(audio_path, spec, self.min_chunk_bytes)
        if audio is None:
            return None
        return transcribe_with_retry(self.client, audio, spec.index, self.policy, self.sleep)

    def run(self, audio_path: Path, chunks: list[ChunkSpec], console=None) -> BatchOutcome:
        """Process all chunks.

        Args:
            audio_path: Local path to the source audio
            chunks: Planned chunks, in index order
            console: Optional rich console for output

        Returns:
            BatchOutcome with one result slot per chunk
        """
        results: list[ChunkResult | None] = [None] * len(chunks)
        failed: list[ChunkSpec] = []
        dropped: list[ChunkSpec] = []

        batch_count = (len(chunks) + self.concurrency - 1) // self.concurrency
        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            for batch_number, start in enumerate(range(0, len(chunks), self.concurrency), 1):
                batch = chunks[start : start + self.concurrency]
                logger.info("Processing batch %d/%d (%d chunks)", batch_number, batch_count, len(batch))
                if console:
                    console.print(f"[dim]  Batch {batch_number}/{batch_count}: {len(batch)} chunk(s)[/dim]")

                futures = {executor.submit(self._process_chunk, audio_path, spec): spec for spec in batch}
                wait(futures, return_when=ALL_COMPLETED)

                for future, spec in futures.items():
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.error("Chunk %d crashed: %s", spec.index, e)
                        result = ChunkResult(index=spec.index, success=False, error_detail=str(e))

                    if result is None:
                        dropped.append(spec)
                        continue

                    results[spec.index] = result
                    if result.success:
                        continue
                    if result.permanent:
                        logger.error("Chunk %d failed permanently: %s", spec.index, result.error_detail)
                    else:
                        logger.error("Chunk %d failed after retries: %s", spec.index, result.error_detail)
                        failed.append(spec)

        failed.sort(key=lambda s: s.index)
        dropped.sort(key=lambda s: s.index)
        outcome = BatchOutcome(
            results=tuple(results),
            failed_chunks=tuple(failed),
            dropped_chunks=tuple(dropped),
        )
        logger.info(
            "Processing complete - Success: %d/%d, dropped %d",
            outcome.successful,
            outcome.submitted,
            len(dropped),
        )
        return outcome
