"""
chunkscribe.models - Records passed between pipeline stages.

All records are frozen pydantic models: they are created once by the stage
that owns them and never mutated afterwards.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class JobState(str, Enum):
    """Lifecycle of a transcription job."""

    PLANNED = "planned"
    CHUNKING = "chunking"
    GATE_CHECK = "gate_check"
    FAILED_INSUFFICIENT = "failed_insufficient"
    RECONCILED = "reconciled"
    SEGMENTING = "segmenting"
    SEGMENTED = "segmented"
    DEGRADED_NO_TOPICS = "degraded_no_topics"
    DONE = "done"


class ChunkStatus(str, Enum):
    """Terminal state of a transcribed chunk."""

    SUCCESS = "success"
    FAILED_PERMANENT = "failed_permanent"
    FAILED_TRANSIENT_EXHAUSTED = "failed_transient_exhausted"


class ChunkSpec(BaseModel):
    """A contiguous byte range of the source audio, end exclusive."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    start_byte: int = Field(ge=0)
    end_byte: int = Field(gt=0)

    @model_validator(mode="after")
    def check_range(self) -> ChunkSpec:
        if self.end_byte <= self.start_byte:
            raise ValueError(
                f"end_byte {self.end_byte} must be greater than start_byte {self.start_byte}"
            )
        return self

    @property
    def size(self) -> int:
        return self.end_byte - self.start_byte


class TranscriptSegment(BaseModel):
    """A timestamped span of a chunk transcript, in chunk-relative seconds."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    start: float = 0.0
    end: float = 0.0


class ChunkResult(BaseModel):
    """Outcome of transcribing one chunk, successful or not."""

    model_config = ConfigDict(frozen=True)

    index: int
    success: bool
    text: str = ""
    segments: tuple[TranscriptSegment, ...] = ()
    duration: float = 0.0
    permanent: bool = False
    error_detail: str | None = None
    status_code: int | None = None
    attempts: int = 1

    @property
    def status(self) -> ChunkStatus:
        if self.success:
            return ChunkStatus.SUCCESS
        if self.permanent:
            return ChunkStatus.FAILED_PERMANENT
        return ChunkStatus.FAILED_TRANSIENT_EXHAUSTED

    def to_output(self) -> dict[str, Any]:
        """Serialize for the job output document."""
        data: dict[str, Any] = {
            "index": self.index,
            "success": self.success,
            "text": self.text,
            "segments": [seg.model_dump() for seg in self.segments],
            "duration": self.duration,
        }
        if not self.success:
            data["permanent"] = self.permanent
            data["error"] = self.error_detail
        return data


class GlobalSegment(BaseModel):
    """A transcript segment placed on the reconstructed absolute timeline."""

    model_config = ConfigDict(frozen=True)

    text: str
    start: float
    end: float
    source_chunk_index: int


class TopicSegment(BaseModel):
    """An LLM-derived topic span, with MM:SS start and end times."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    topic: str
    description: str = ""


class TopicAnalysis(BaseModel):
    """Structured segmentation response."""

    model_config = ConfigDict(frozen=True)

    segments: tuple[TopicSegment, ...] = ()

    def to_output(self) -> dict[str, Any]:
        return {"segments": [seg.model_dump(by_alias=True) for seg in self.segments]}


class TopicRange(BaseModel):
    """Target number of topic segments for a recording length."""

    model_config = ConfigDict(frozen=True)

    category: str
    min_topics: int
    max_topics: int


class BatchOutcome(BaseModel):
    """Everything the batch scheduler learned about a file's chunks.

    ``results`` has one slot per planned chunk, ``None`` where the chunk
    was dropped for being below the minimum size.
    """

    model_config = ConfigDict(frozen=True)

    results: tuple[ChunkResult | None, ...] = ()
    failed_chunks: tuple[ChunkSpec, ...] = ()
    dropped_chunks: tuple[ChunkSpec, ...] = ()

    @property
    def submitted(self) -> int:
        return sum(1 for r in self.results if r is not None)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r is not None and r.success)


class JobResult(BaseModel):
    """Final output of a transcription job."""

    model_config = ConfigDict(frozen=True)

    transcription: str
    transcription_results: tuple[ChunkResult, ...] = ()
    topic_analysis: TopicAnalysis | None = None
    analysis_error: str | None = None
    segments: tuple[GlobalSegment, ...] = ()
    total_duration: float = 0.0
    success_ratio: float = 0.0
    history: tuple[JobState, ...] = ()

    @property
    def degraded(self) -> bool:
        return JobState.DEGRADED_NO_TOPICS in self.history

    def to_output(self) -> dict[str, Any]:
        """Serialize to the document shape downstream stages consume."""
        return {
            "transcription": self.transcription,
            "transcriptionResults": [r.to_output() for r in self.transcription_results],
            "topicAnalysis": self.topic_analysis.to_output() if self.topic_analysis else None,
            "analysisError": self.analysis_error,
        }
