"""Tests for chunkscribe.llm modules."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from chunkscribe.exceptions import LLMError, LLMResponseError
from chunkscribe.llm.client import LLMClient, create_client_from_config
from chunkscribe.llm.parsing import parse_llm_json, repair_json, validate_segments_response
from chunkscribe.llm.templates import PromptTemplateManager, format_transcript_for_prompt
from chunkscribe.models import GlobalSegment


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


class TestParseLLMJson:
    def test_parse_clean_json(self) -> None:
        result = parse_llm_json('{"segments": [{"topic": "Test"}]}')
        assert result["segments"][0]["topic"] == "Test"

    def test_parse_json_with_markdown(self) -> None:
        result = parse_llm_json('```json\n{"segments": []}\n```')
        assert result["segments"] == []

    def test_parse_json_with_trailing_commas(self) -> None:
        result = parse_llm_json('{"segments": [{"topic": "A",}, {"topic": "B",}],}')
        assert len(result["segments"]) == 2

    def test_parse_json_with_surrounding_text(self) -> None:
        response = 'Here is the result:\n{"segments": []}\nLet me know if you need more.'
        assert parse_llm_json(response)["segments"] == []

    def test_parse_truncated_json(self) -> None:
        response = '{"segments": [{"topic": "A", "startTime": "00:00", "endTime": "01:00'
        result = parse_llm_json(response)
        assert result["segments"][0]["topic"] == "A"

    def test_no_json_raises(self) -> None:
        with pytest.raises(LLMResponseError):
            parse_llm_json("I could not find any topics.")

    def test_repair_closes_structures(self) -> None:
        assert repair_json('{"a": [1, 2') == '{"a": [1, 2]}'


class TestValidateSegmentsResponse:
    def test_valid_response(self, sample_llm_response: dict) -> None:
        analysis = validate_segments_response(sample_llm_response)
        assert [s.topic for s in analysis.segments] == ["Opening", "Weather"]
        assert analysis.segments[1].start_time == "01:15"
        assert analysis.to_output()["segments"][0]["startTime"] == "00:00"

    def test_missing_description_defaults_to_empty(self) -> None:
        data = {"segments": [{"startTime": "00:00", "endTime": "00:30", "topic": "Intro"}]}
        assert validate_segments_response(data).segments[0].description == ""

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"segments": "none"},
            {"segments": ["x"]},
            {"segments": [{"startTime": "00:00", "endTime": "00:30"}]},
            {"segments": [{"startTime": "00:00", "topic": "A"}]},
            {"segments": [{"startTime": "soon", "endTime": "00:30", "topic": "A"}]},
        ],
    )
    def test_invalid_responses(self, data: dict) -> None:
        with pytest.raises(LLMResponseError):
            validate_segments_response(data)


class TestFormatTranscriptForPrompt:
    def test_format_empty_segments(self) -> None:
        assert format_transcript_for_prompt([]) == ""

    def test_format_segments(self) -> None:
        segments = [
            GlobalSegment(text=" Buenos días ", start=0.0, end=4.5, source_chunk_index=0),
            GlobalSegment(text="Hoy hablamos", start=65.2, end=70.9, source_chunk_index=1),
        ]
        assert format_transcript_for_prompt(segments) == (
            "[00:00 - 00:04] Buenos días\n[01:05 - 01:10] Hoy hablamos"
        )


class TestPromptTemplateManager:
    def test_lists_bundled_templates(self) -> None:
        assert "topic_segments.txt" in PromptTemplateManager().list_templates()

    def test_missing_template(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            PromptTemplateManager(tmp_path).get_template("nope.txt")

    def test_custom_prompts_dir(self, tmp_path) -> None:
        (tmp_path / "hello.txt").write_text("Hello {{ NAME }}")
        assert PromptTemplateManager(tmp_path).render("hello.txt", {"NAME": "radio"}) == "Hello radio"


class TestLLMClient:
    def test_model_strings(self) -> None:
        assert LLMClient("gemini", "gemini-2.0-flash")._get_model_string() == "gemini/gemini-2.0-flash"
        assert LLMClient("ollama", "llama3")._get_model_string() == "ollama/llama3"
        assert LLMClient("lmstudio", "qwen")._get_model_string() == "openai/qwen"
        assert LLMClient("openai", "gpt-4o")._get_model_string() == "gpt-4o"

    def test_key_resolved_once(self) -> None:
        secrets = MagicMock()
        secrets.get_secret.return_value = "k"
        client = LLMClient(secrets=secrets, secret_name="gemini/api-key")

        with patch("litellm.completion", return_value=_completion('{"segments": []}')) as mock:
            client.complete("one", json_mode=True)
            client.complete("two")

        secrets.get_secret.assert_called_once_with("gemini/api-key")
        first = mock.call_args_list[0].kwargs
        assert first["model"] == "gemini/gemini-2.0-flash"
        assert first["api_key"] == "k"
        assert first["response_format"] == {"type": "json_object"}
        assert "response_format" not in mock.call_args_list[1].kwargs
        assert client.get_token_usage()["total_tokens"] == 30

    def test_local_backend_needs_no_key(self) -> None:
        secrets = MagicMock()
        client = LLMClient("ollama", "llama3", secrets=secrets, secret_name="gemini/api-key")

        with patch("litellm.completion", return_value=_completion("{}")) as mock:
            client.complete("hi")

        secrets.get_secret.assert_not_called()
        assert mock.call_args.kwargs["api_base"] == "http://localhost:11434"
        assert "api_key" not in mock.call_args.kwargs

    def test_failure_raises_llm_error(self) -> None:
        client = LLMClient(max_retries=1)
        with patch("litellm.completion", side_effect=RuntimeError("unavailable")):
            with pytest.raises(LLMError, match="unavailable"):
                client.complete("hi")

    def test_retries_then_succeeds(self) -> None:
        client = LLMClient(max_retries=2, retry_delay=0)
        with patch("litellm.completion", side_effect=[RuntimeError("flaky"), _completion("ok")]):
            assert client.complete("hi") == "ok"

    def test_missing_content(self) -> None:
        client = LLMClient(max_retries=3)
        with patch("litellm.completion", return_value=_completion(None)) as mock:
            with pytest.raises(LLMResponseError):
                client.complete("hi")
        assert mock.call_count == 1

    def test_create_client_from_config(self, small_chunk_config) -> None:
        client = create_client_from_config(small_chunk_config, secrets=None)
        assert client.backend == "gemini"
        assert client.secret_name == "gemini/api-key"
        assert client.max_retries == 1
