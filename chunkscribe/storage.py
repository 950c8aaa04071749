"""
chunkscribe.storage - Result packaging and object store persistence.

Builds the transcription and topics documents that downstream stages
read, and writes them through an object store interface. The bundled
LocalObjectStore keeps buckets as directories.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Protocol

from chunkscribe.io import read_bytes, read_json, write_bytes, write_json
from chunkscribe.logging import logger
from chunkscribe.models import JobResult, TopicSegment
from chunkscribe.utils import parse_clock

DETECTION_METHOD = "whisper_timestamps_llm_analysis"


class ObjectStore(Protocol):
    def get(self, bucket: str, key: str) -> bytes: ...

    def put(
        self,
        bucket: str,
        key: str,
        data: bytes | dict[str, Any],
        content_type: str = "application/json",
        metadata: dict[str, str] | None = None,
    ) -> None: ...


class LocalObjectStore:
    """Object store backed by a directory: ``<root>/<bucket>/<key>``.

    Metadata and content type are kept in a ``<key>.metadata.json``
    sidecar next to the object.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, bucket: str, key: str) -> Path:
        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Invalid object key: {key}")
        return self.root / bucket / Path(*relative.parts)

    def get(self, bucket: str, key: str) -> bytes:
        return read_bytes(self._path(bucket, key))

    def get_metadata(self, bucket: str, key: str) -> dict[str, Any]:
        path = self._path(bucket, key)
        return read_json(path.with_name(path.name + ".metadata.json"))

    def put(
        self,
        bucket: str,
        key: str,
        data: bytes | dict[str, Any],
        content_type: str = "application/json",
        metadata: dict[str, str] | None = None,
    ) -> None:
        path = self._path(bucket, key)
        if isinstance(data, dict):
            write_json(path, data)
        else:
            write_bytes(path, data)
        write_json(
            path.with_name(path.name + ".metadata.json"),
            {"content_type": content_type, "metadata": metadata or {}},
        )
        logger.info("Uploaded %s/%s", bucket, key)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def base_name(file_key: str) -> str:
    """File name of a key without directories or extension."""
    return file_key.rsplit("/", 1)[-1].split(".")[0]


def output_keys(file_key: str) -> tuple[str, str]:
    """Object keys for the transcription and topics documents."""
    name = base_name(file_key)
    return f"transcription/{name}.json", f"topics/{name}.json"


def average_segment_duration(segments: list[TopicSegment] | tuple[TopicSegment, ...]) -> int:
    """Average topic segment length in whole seconds (0 if there are none)."""
    if not segments:
        return 0
    total = sum(parse_clock(seg.end_time) - parse_clock(seg.start_time) for seg in segments)
    return round(total / len(segments))


def _file_metadata(file_key: str, audio_key: str) -> dict[str, str]:
    return {
        "original_file": file_key,
        "audio_file": audio_key,
        "processed_at": _now(),
    }


def build_transcription_document(result: JobResult, file_key: str, audio_key: str) -> dict[str, Any]:
    return {
        "transcription": result.transcription,
        "metadata": _file_metadata(file_key, audio_key),
        "debug": {
            "chunks_processed": len(result.transcription_results),
            "total_segments": sum(len(r.segments) for r in result.transcription_results),
        },
    }


def build_topics_document(result: JobResult, file_key: str, audio_key: str) -> dict[str, Any] | None:
    """Topics document, or None when segmentation produced nothing."""
    if result.topic_analysis is None:
        return None
    segments = result.topic_analysis.segments
    return {
        "topicSegments": [seg.model_dump(by_alias=True) for seg in segments],
        "segmentationMetadata": {
            "totalSegments": len(segments),
            "averageSegmentDuration": average_segment_duration(segments),
            "detectionMethod": DETECTION_METHOD,
            "analysisError": result.analysis_error,
        },
        "metadata": _file_metadata(file_key, audio_key),
    }


def build_object_metadata(
    metadata: dict[str, Any] | None,
    file_key: str,
    audio_key: str,
    file_extension: str = "",
) -> dict[str, str]:
    """Flat string metadata attached to uploaded documents."""
    metadata = metadata or {}
    return {
        "contentid": str(metadata.get("contentId") or ""),
        "type": str(metadata.get("type") or ""),
        "title": str(metadata.get("title") or ""),
        "parentid": str(metadata.get("parentId") or ""),
        "orderindex": str(metadata.get("orderIndex") or 0),
        "fileextension": file_extension,
        "originalobjectkey": file_key,
        "audiokey": audio_key,
    }


def persist_job_result(
    store: ObjectStore,
    bucket: str,
    result: JobResult,
    file_key: str,
    audio_key: str,
    metadata: dict[str, Any] | None = None,
    file_extension: str = "",
) -> dict[str, str | None]:
    """Upload the transcription document, and the topics document if any.

    Returns:
        Dict with 'transcription_key' and 'topics_key' (None if not uploaded)
    """
    transcription_key, topics_key = output_keys(file_key)
    object_metadata = build_object_metadata(metadata, file_key, audio_key, file_extension)

    store.put(
        bucket,
        transcription_key,
        build_transcription_document(result, file_key, audio_key),
        "application/json",
        object_metadata,
    )

    topics = build_topics_document(result, file_key, audio_key)
    if topics is None:
        logger.error("No topics data to upload (analysis failed or not performed)")
        return {"transcription_key": transcription_key, "topics_key": None}

    store.put(bucket, topics_key, topics, "application/json", object_metadata)
    return {"transcription_key": transcription_key, "topics_key": topics_key}
