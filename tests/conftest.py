"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest

from chunkscribe.config import ChunkscribeConfig
from chunkscribe.models import ChunkResult, TranscriptSegment


class FakeAPIError(Exception):
    """Stands in for an SDK exception carrying an HTTP status and headers."""

    def __init__(self, status_code: int | None, message: str = "api error", headers=None):
        super().__init__(message)
        self.status_code = status_code
        self.headers = headers or {}


class FakeTranscriptionClient:
    """Scripted transcription client.

    ``script`` maps a chunk index to a list of outcomes consumed one per
    call: a dict is returned, an exception is raised. Indices without a
    script succeed with a single 30-second segment.
    """

    def __init__(self, script: dict[int, list[Any]] | None = None) -> None:
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.calls: list[int] = []
        self.sizes: dict[int, int] = {}
        self._lock = threading.Lock()

    def transcribe(self, audio: bytes, index: int = 0) -> dict[str, Any]:
        with self._lock:
            self.calls.append(index)
            self.sizes[index] = len(audio)
            outcomes = self.script.get(index)
            outcome = outcomes.pop(0) if outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is not None:
            return outcome
        return {
            "text": f"chunk {index}",
            "segments": [{"text": f"chunk {index}", "start": 0.0, "end": 30.0}],
            "duration": 30.0,
        }


def make_result(
    index: int,
    segments: list[tuple[float, float]] | None = None,
    duration: float = 30.0,
    success: bool = True,
    text: str | None = None,
) -> ChunkResult:
    """Build a ChunkResult with segments given as (start, end) pairs."""
    segs = tuple(
        TranscriptSegment(text=f"c{index}s{i}", start=start, end=end)
        for i, (start, end) in enumerate(segments or [])
    )
    return ChunkResult(
        index=index,
        success=success,
        text=text if text is not None else f"chunk {index}",
        segments=segs if success else (),
        duration=duration if success else 0.0,
        error_detail=None if success else "boom",
    )


@pytest.fixture
def fake_client() -> FakeTranscriptionClient:
    return FakeTranscriptionClient()


@pytest.fixture
def sleeps() -> list[float]:
    """Records backoff sleeps instead of sleeping."""
    return []


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    """A 50 000-byte fake audio file with position-dependent content."""
    path = tmp_path / "episode.mp3"
    path.write_bytes(bytes(i % 251 for i in range(50_000)))
    return path


@pytest.fixture
def small_chunk_config() -> ChunkscribeConfig:
    """Config splitting audio_file into five 10 000-byte chunks."""
    return ChunkscribeConfig(chunk_size_bytes=10_000, max_concurrency=2)


@pytest.fixture
def sample_llm_response() -> dict:
    """Return a sample segmentation response."""
    return {
        "segments": [
            {
                "startTime": "00:00",
                "endTime": "01:15",
                "topic": "Opening",
                "description": "Hosts introduce the show",
            },
            {
                "startTime": "01:15",
                "endTime": "02:30",
                "topic": "Weather",
                "description": "Forecast for the weekend",
            },
        ]
    }
