"""Tests for chunkscribe.transcribe.client module."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from chunkscribe.transcribe.client import TranscriptionClient, parse_transcription_response


class TestParseTranscriptionResponse:
    def test_parse_dict(self) -> None:
        response = {
            "text": " Hola a todos ",
            "duration": 42.5,
            "segments": [
                {"id": 0, "text": " Hola", "start": 0.0, "end": 2.0},
                {"id": 1, "text": " a todos", "start": 2.0, "end": 41.0},
            ],
        }
        result = parse_transcription_response(response)
        assert result["text"] == "Hola a todos"
        assert result["duration"] == 42.5
        assert result["segments"][1] == {"text": "a todos", "start": 2.0, "end": 41.0}

    def test_parse_object(self) -> None:
        response = SimpleNamespace(
            text="hola",
            duration=10.0,
            segments=[SimpleNamespace(text="hola", start=1.0, end=3.0)],
        )
        result = parse_transcription_response(response)
        assert result["segments"] == [{"text": "hola", "start": 1.0, "end": 3.0}]
        assert result["duration"] == 10.0

    def test_missing_duration_uses_last_segment_end(self) -> None:
        response = {"text": "x", "segments": [{"text": "x", "start": 0, "end": 12.5}]}
        assert parse_transcription_response(response)["duration"] == 12.5

    def test_empty_response(self) -> None:
        assert parse_transcription_response({}) == {"text": "", "segments": [], "duration": 0.0}


class TestTranscriptionClient:
    def test_transcribe_sends_chunk(self) -> None:
        secrets = MagicMock()
        secrets.get_secret.return_value = "sk-test"
        client = TranscriptionClient(secrets, model="whisper-1", language="es")
        response = {"text": "hola", "duration": 5.0, "segments": []}

        with patch("litellm.transcription", return_value=response) as mock:
            result = client.transcribe(b"audio-bytes", index=3)
            client.transcribe(b"more", index=4)

        assert result == {"text": "hola", "segments": [], "duration": 5.0}
        kwargs = mock.call_args_list[0].kwargs
        assert kwargs["file"] == ("chunk.mp3", b"audio-bytes")
        assert kwargs["language"] == "es"
        assert kwargs["response_format"] == "verbose_json"
        assert kwargs["timestamp_granularities"] == ["segment"]
        assert kwargs["api_key"] == "sk-test"
        secrets.get_secret.assert_called_once_with("openai/api-key")

    def test_api_errors_propagate(self) -> None:
        secrets = MagicMock()
        secrets.get_secret.return_value = "sk-test"
        client = TranscriptionClient(secrets)

        with patch("litellm.transcription", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                client.transcribe(b"x")
