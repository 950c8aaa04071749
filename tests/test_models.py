"""Tests for chunkscribe.models module."""

from __future__ import annotations

import pytest
from conftest import make_result
from pydantic import ValidationError

from chunkscribe.models import (
    BatchOutcome,
    ChunkResult,
    ChunkSpec,
    ChunkStatus,
    JobResult,
    JobState,
    TopicSegment,
)


class TestChunkSpec:
    def test_size(self) -> None:
        assert ChunkSpec(index=1, start_byte=100, end_byte=350).size == 250

    def test_frozen(self) -> None:
        spec = ChunkSpec(index=0, start_byte=0, end_byte=10)
        with pytest.raises(ValidationError):
            spec.index = 2


class TestChunkResult:
    def test_status(self) -> None:
        assert make_result(0).status == ChunkStatus.SUCCESS
        assert ChunkResult(index=0, success=False, permanent=True).status == ChunkStatus.FAILED_PERMANENT
        assert ChunkResult(index=0, success=False).status == ChunkStatus.FAILED_TRANSIENT_EXHAUSTED

    def test_failed_output_includes_error(self) -> None:
        output = ChunkResult(index=3, success=False, permanent=True, error_detail="bad").to_output()
        assert output["permanent"] is True
        assert output["error"] == "bad"
        assert output["segments"] == []

    def test_success_output(self) -> None:
        output = make_result(0, [(0, 5)]).to_output()
        assert "error" not in output
        assert output["segments"] == [{"text": "c0s0", "start": 0.0, "end": 5.0}]


class TestTopicSegment:
    def test_accepts_aliases(self) -> None:
        seg = TopicSegment.model_validate({"startTime": "00:00", "endTime": "01:00", "topic": "A"})
        assert seg.start_time == "00:00"


class TestBatchOutcome:
    def test_counts_exclude_dropped(self) -> None:
        outcome = BatchOutcome(results=(make_result(0), make_result(1, success=False), None))
        assert outcome.submitted == 2
        assert outcome.successful == 1


class TestJobResult:
    def test_output_shape(self) -> None:
        result = JobResult(transcription="hola", transcription_results=(make_result(0),))
        output = result.to_output()
        assert set(output) == {"transcription", "transcriptionResults", "topicAnalysis", "analysisError"}
        assert output["topicAnalysis"] is None

    def test_degraded(self) -> None:
        assert not JobResult(transcription="", history=(JobState.DONE,)).degraded
        degraded = JobResult(
            transcription="",
            analysis_error="llm down",
            history=(JobState.DEGRADED_NO_TOPICS, JobState.DONE),
        )
        assert degraded.degraded


class TestChunkSpecRange:
    @pytest.mark.parametrize(("start", "end"), [(10, 5), (10, 10)])
    def test_end_must_follow_start(self, start: int, end: int) -> None:
        with pytest.raises(ValidationError):
            ChunkSpec(index=0, start_byte=start, end_byte=end)
