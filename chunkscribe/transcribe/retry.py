"""
chunkscribe.transcribe.retry - Failure classification and retry loop.

Permanent failures (bad request, auth, payload too large) are returned
at once. Everything else is retried in place with backoff: rate limits
wait for the service's reset hint, other errors back off exponentially.
"""

from __future__ import annotations

import re
import time
from typing import Any, Callable

from chunkscribe.logging import logger
from chunkscribe.models import ChunkResult, TranscriptSegment

PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 413})
RATE_LIMIT_STATUS = 429
RESET_HEADER = "x-ratelimit-reset-requests"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")


def error_status(error: BaseException) -> int | None:
    """Extract an HTTP status code from an API exception, if it carries one."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def error_headers(error: BaseException) -> dict[str, str]:
    """Collect response headers attached to an API exception (lower-cased keys)."""
    headers: dict[str, str] = {}
    sources = [
        getattr(getattr(error, "response", None), "headers", None),
        getattr(error, "litellm_response_headers", None),
        getattr(error, "headers", None),
    ]
    for source in sources:
        if not source:
            continue
        try:
            items = source.items()
        except AttributeError:
            continue
        for key, value in items:
            headers.setdefault(str(key).lower(), str(value))
    return headers


def parse_reset_hint(value: str | None) -> int | None:
    """Convert a rate-limit reset header into milliseconds.

    A bare number is taken as milliseconds. Duration strings such as
    "1.5s", "250ms" or "1m30s" are summed by unit.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if re.fullmatch(r"\d+(?:\.\d+)?", value):
        return int(float(value))

    parts = _DURATION_PART.findall(value)
    if not parts or "".join(num + unit for num, unit in parts) != value:
        return None
    scale = {"h": 3_600_000, "m": 60_000, "s": 1000, "ms": 1}
    return int(sum(float(num) * scale[unit] for num, unit in parts))


class RetryPolicy:
    """Decides whether a failed transcription is retried and how long to wait."""

    def __init__(
        self,
        max_retries: int = 3,
        rate_limit_backoff_ms: int = 2000,
        base_backoff_ms: int = 1000,
    ) -> None:
        self.max_retries = max_retries
        self.rate_limit_backoff_ms = rate_limit_backoff_ms
        self.base_backoff_ms = base_backoff_ms

    @classmethod
    def from_config(cls, config: Any) -> RetryPolicy:
        return cls(
            max_retries=config.max_retries,
            rate_limit_backoff_ms=config.rate_limit_backoff_ms,
            base_backoff_ms=config.base_backoff_ms,
        )

    def is_permanent(self, error: BaseException) -> bool:
        return error_status(error) in PERMANENT_STATUS_CODES

    def backoff_ms(self, error: BaseException, attempt: int) -> int:
        """Delay before retry number ``attempt + 1`` (attempt counts from 0)."""
        if error_status(error) == RATE_LIMIT_STATUS:
            hint = parse_reset_hint(error_headers(error).get(RESET_HEADER))
            return hint if hint is not None else self.rate_limit_backoff_ms
        return (2**attempt) * self.base_backoff_ms


def transcribe_with_retry(
    client: Any,
    audio: bytes,
    index: int,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> ChunkResult:
    """Transcribe a chunk, retrying transient failures in place.

    Never raises for API failures: the outcome is always a ChunkResult,
    so one chunk's error cannot escape into its batch.

    Args:
        client: TranscriptionClient (anything with ``transcribe(audio, index)``)
        audio: Chunk bytes, reused unchanged on every attempt
        index: Chunk index
        policy: RetryPolicy
        sleep: Called with the backoff in seconds

    Returns:
        ChunkResult for the chunk
    """
    attempt = 0
    while True:
        logger.debug("Processing chunk %d, attempt %d", index, attempt + 1)
        try:
            data = client.transcribe(audio, index)
        except Exception as e:
            status = error_status(e)

            if policy.is_permanent(e):
                logger.error("Permanent error for chunk %d (%s): %s", index, status, e)
                return ChunkResult(
                    index=index,
                    success=False,
                    permanent=True,
                    error_detail=str(e),
                    status_code=status,
                    attempts=attempt + 1,
                )

            if attempt >= policy.max_retries:
                logger.error("Chunk %d failed after %d attempts: %s", index, attempt + 1, e)
                return ChunkResult(
                    index=index,
                    success=False,
                    permanent=False,
                    error_detail=str(e),
                    status_code=status,
                    attempts=attempt + 1,
                )

            delay_ms = policy.backoff_ms(e, attempt)
            if status == RATE_LIMIT_STATUS:
                logger.warning("Rate limited on chunk %d, waiting %dms", index, delay_ms)
            else:
                logger.warning("Retrying chunk %d after %dms: %s", index, delay_ms, e)
            sleep(delay_ms / 1000)
            attempt += 1
            continue

        return ChunkResult(
            index=index,
            success=True,
            text=data.get("text", ""),
            segments=tuple(TranscriptSegment(**seg) for seg in data.get("segments", [])),
            duration=data.get("duration", 0.0),
            attempts=attempt + 1,
        )
