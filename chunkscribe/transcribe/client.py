"""
chunkscribe.transcribe.client - Speech-to-text API client.

Sends chunk bytes to a hosted Whisper-compatible transcription endpoint
through litellm and normalizes the verbose JSON response into text,
chunk-relative segments, and the audio duration the service measured.
"""

from __future__ import annotations

import threading
from typing import Any

from chunkscribe.credentials import SecretSource
from chunkscribe.logging import logger


class TranscriptionClient:
    """Transcription API wrapper with once-only credential resolution.

    The client holds no per-job state, so one instance can serve many
    jobs and many concurrent chunk requests.
    """

    def __init__(
        self,
        secrets: SecretSource,
        model: str = "whisper-1",
        language: str = "es",
        secret_name: str = "openai/api-key",
        filename: str = "chunk.mp3",
        timeout: int = 600,
    ) -> None:
        self.secrets = secrets
        self.model = model
        self.language = language
        self.secret_name = secret_name
        self.filename = filename
        self.timeout = timeout
        self._api_key: str | None = None
        self._lock = threading.Lock()

    def _get_api_key(self) -> str:
        if self._api_key is None:
            with self._lock:
                if self._api_key is None:
                    logger.info("Resolving transcription API key '%s'", self.secret_name)
                    self._api_key = self.secrets.get_secret(self.secret_name)
        return self._api_key

    def transcribe(self, audio: bytes, index: int = 0) -> dict[str, Any]:
        """Transcribe one chunk.

        Args:
            audio: Raw chunk bytes
            index: Chunk index, used for logging only

        Returns:
            Dict with 'text', 'segments' (list of {text, start, end}) and
            'duration' in seconds

        Raises:
            Exception: Whatever the API layer raised; callers classify it
                with RetryPolicy
        """
        import litellm

        litellm.telemetry = False

        response = litellm.transcription(
            model=self.model,
            file=(self.filename, audio),
            language=self.language,
            response_format="verbose_json",
            timestamp_granularities=["segment"],
            api_key=self._get_api_key(),
            timeout=self.timeout,
        )

        result = parse_transcription_response(response)
        segments = result["segments"]
        logger.debug(
            "Chunk %d transcription completed: %d chars, %d segments, first start %s, last end %s",
            index,
            len(result["text"]),
            len(segments),
            segments[0]["start"] if segments else None,
            segments[-1]["end"] if segments else None,
        )
        return result


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_transcription_response(response: Any) -> dict[str, Any]:
    """Parse a verbose JSON transcription response into our chunk format.

    Accepts either a dict or a response object exposing the same fields.
    A missing duration falls back to the last segment end.
    """
    segments = []
    for seg in _field(response, "segments") or []:
        segments.append(
            {
                "text": (_field(seg, "text", "") or "").strip(),
                "start": float(_field(seg, "start", 0) or 0),
                "end": float(_field(seg, "end", 0) or 0),
            }
        )

    duration = _field(response, "duration")
    if duration is None:
        duration = segments[-1]["end"] if segments else 0.0

    return {
        "text": (_field(response, "text", "") or "").strip(),
        "segments": segments,
        "duration": float(duration),
    }
