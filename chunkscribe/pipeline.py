"""
chunkscribe.pipeline - Job orchestration.

Runs one audio file through the whole engine: plan chunks, transcribe
them in batches, apply the success gate, reconcile the timeline and
request topic segments. A job either returns a complete JobResult
(possibly without topics) or raises a single descriptive error.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable

from chunkscribe.config import ChunkscribeConfig, chunk_config_for_size
from chunkscribe.exceptions import InsufficientSuccessRateError, SegmentationError
from chunkscribe.logging import logger
from chunkscribe.models import JobResult, JobState, TopicAnalysis
from chunkscribe.transcribe.chunks import plan_chunks
from chunkscribe.transcribe.gate import check_success_rate
from chunkscribe.transcribe.retry import RetryPolicy
from chunkscribe.transcribe.scheduler import BatchScheduler
from chunkscribe.transcribe.timeline import join_transcript, reconcile_timeline
from chunkscribe.utils import format_bytes, format_clock


def create_clients(config: ChunkscribeConfig, secrets: Any) -> tuple[Any, Any]:
    """Build the transcription and segmentation clients for a process.

    The clients hold no per-job state; build them once and pass them to
    every run_job call so credentials are resolved only once.

    Args:
        config: ChunkscribeConfig instance
        secrets: SecretSource for API keys

    Returns:
        Tuple of (TranscriptionClient, SegmentationClient)
    """
    from chunkscribe.llm.client import create_client_from_config
    from chunkscribe.llm.templates import PromptTemplateManager
    from chunkscribe.llm.topics import SegmentationClient
    from chunkscribe.transcribe.client import TranscriptionClient

    transcription_client = TranscriptionClient(
        secrets=secrets,
        model=config.transcription_model,
        language=config.language,
        secret_name=config.transcription_secret,
    )
    segmentation_client = SegmentationClient(
        client=create_client_from_config(config, secrets),
        template_manager=PromptTemplateManager(config.prompts_dir),
        language=config.language,
        context=config.prompt_context,
        temperature=config.llm_temperature,
    )
    return transcription_client, segmentation_client


def run_job(
    audio_path: Path,
    config: ChunkscribeConfig,
    transcription_client: Any,
    segmentation_client: Any,
    enable_fallback: bool | None = None,
    sleep: Callable[[float], None] = time.sleep,
    console=None,
) -> JobResult:
    """Transcribe an audio file and segment it into topics.

    Args:
        audio_path: Local path to the source audio
        config: ChunkscribeConfig instance
        transcription_client: Client with ``transcribe(audio, index)``
        segmentation_client: Client with ``segment(segments, total_duration)``
        enable_fallback: Override config.enable_fallback for this job
        sleep: Backoff sleep, injectable for tests
        console: Optional rich console for output

    Returns:
        JobResult

    Raises:
        ValidationError: If the audio file is missing or empty
        InsufficientSuccessRateError: If too many chunks failed
        SegmentationError: If segmentation failed and fallback is disabled
    """
    from chunkscribe.validation import check_audio_file, check_topic_segments

    fallback = config.enable_fallback if enable_fallback is None else enable_fallback
    history = [JobState.PLANNED]

    size = check_audio_file(audio_path)["size_bytes"]
    chunk_size, concurrency = chunk_config_for_size(size, config)
    chunks = plan_chunks(size, chunk_size)
    logger.info(
        "%s: %s split into %d chunks of ~%s, concurrency %d",
        audio_path.name,
        format_bytes(size),
        len(chunks),
        format_bytes(chunk_size),
        concurrency,
    )
    if console:
        console.print(
            f"[cyan]Transcribing {audio_path.name}[/cyan] "
            f"[dim]({format_bytes(size)}, {len(chunks)} chunks, {concurrency} concurrent)[/dim]"
        )

    history.append(JobState.CHUNKING)
    scheduler = BatchScheduler(
        client=transcription_client,
        policy=RetryPolicy.from_config(config),
        concurrency=concurrency,
        min_chunk_bytes=config.min_chunk_bytes,
        sleep=sleep,
    )
    outcome = scheduler.run(audio_path, chunks, console=console)

    history.append(JobState.GATE_CHECK)
    try:
        ratio = check_success_rate(outcome.successful, outcome.submitted, len(outcome.failed_chunks))
    except InsufficientSuccessRateError:
        history.append(JobState.FAILED_INSUFFICIENT)
        raise

    results = tuple(r for r in outcome.results if r is not None)
    segments, total_duration = reconcile_timeline(results)
    transcription = join_transcript(results)
    history.append(JobState.RECONCILED)

    history.append(JobState.SEGMENTING)
    topic_analysis: TopicAnalysis | None = None
    analysis_error: str | None = None
    try:
        topic_analysis = segmentation_client.segment(segments, total_duration, console=console)
    except SegmentationError as e:
        if not fallback:
            raise
        logger.warning("Topic analysis failed, proceeding with transcription only: %s", e)
        analysis_error = str(e)
        history.append(JobState.DEGRADED_NO_TOPICS)
        if console:
            console.print(f"[yellow]  Topic analysis failed: {e}[/yellow]")
    else:
        history.append(JobState.SEGMENTED)
        for warning in check_topic_segments(topic_analysis.segments, total_duration):
            logger.warning("Topic segments: %s", warning)

    history.append(JobState.DONE)
    logger.info(
        "Job complete: %d chars, %d segments, %s, topics %s",
        len(transcription),
        len(segments),
        format_clock(total_duration),
        len(topic_analysis.segments) if topic_analysis else "none",
    )

    return JobResult(
        transcription=transcription,
        transcription_results=results,
        topic_analysis=topic_analysis,
        analysis_error=analysis_error,
        segments=tuple(segments),
        total_duration=total_duration,
        success_ratio=ratio,
        history=tuple(history),
    )
