"""
chunkscribe.exceptions - Custom exception classes.

All chunkscribe-specific exceptions inherit from ChunkscribeError.
"""

from __future__ import annotations


class ChunkscribeError(Exception):
    """Base exception for all chunkscribe errors."""

    pass


class ConfigError(ChunkscribeError):
    """Configuration loading, validation or secret resolution error."""

    pass


class TranscriptionError(ChunkscribeError):
    """Transcription error."""

    pass


class InsufficientSuccessRateError(TranscriptionError):
    """Too few chunks transcribed successfully for the job to be usable."""

    def __init__(self, successful: int, total: int, required: int, threshold: float):
        self.successful = successful
        self.total = total
        self.required = required
        self.threshold = threshold
        super().__init__(
            f"Transcription failed: {successful}/{total} chunks succeeded, need {required}"
        )


class LLMError(ChunkscribeError):
    """LLM backend or prompt error."""

    pass


class LLMResponseError(LLMError):
    """LLM returned malformed or unexpected response."""

    pass


class SegmentationError(LLMError):
    """Topic segmentation could not be produced."""

    pass


class ValidationError(ChunkscribeError):
    """Data validation error."""

    pass


class DependencyError(ChunkscribeError):
    """Required dependency or credential missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
