"""
chunkscribe.llm.parsing - LLM output JSON parsing with validation.

Handles parsing LLM responses into structured JSON with error recovery.
"""

from __future__ import annotations

import json
import re
from typing import Any

from chunkscribe.exceptions import LLMResponseError
from chunkscribe.models import TopicAnalysis, TopicSegment
from chunkscribe.utils import parse_clock

_FENCE = re.compile(r"```(?:json)?\s*")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def extract_json_from_response(response: str) -> str:
    """Pull the outermost JSON object out of an LLM reply.

    Code fences and any prose before or after the object are discarded.

    Raises:
        LLMResponseError: If the reply contains no object
    """
    text = _FENCE.sub("", response).strip()
    start = text.find("{")
    if start < 0:
        raise LLMResponseError("No JSON object found in response")
    end = text.rfind("}")
    return text[start : end + 1] if end > start else text[start:]


def _close_open_structures(text: str) -> str:
    """Append the closers for every bracket or brace left open, innermost first."""
    closers = []
    in_string = escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            closers.append("}")
        elif ch == "[":
            closers.append("]")
        elif ch in "}]" and closers:
            closers.pop()
    return text + "".join(reversed(closers))


def repair_json(text: str) -> str:
    """Fix trailing commas and unclosed brackets or braces."""
    return _close_open_structures(_TRAILING_COMMA.sub(r"\1", text))


def parse_llm_json(response: str) -> dict[str, Any]:
    """Parse the JSON object in an LLM reply, repairing it if needed.

    Tries the extracted text as-is, then a repaired copy, then a copy cut
    back to the last complete string value (for replies truncated by the
    token limit).

    Args:
        response: Raw LLM response text

    Returns:
        Parsed JSON dict

    Raises:
        LLMResponseError: If no attempt parses
    """
    text = extract_json_from_response(response)

    candidates = [text, repair_json(text)]
    last_value = text.rfind('",')
    if last_value > 0:
        candidates.append(_close_open_structures(text[: last_value + 1]))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise LLMResponseError(
        f"Failed to parse LLM response as JSON after repair attempts.\n\n"
        f"Response (first 500 chars):\n{text[:500]}"
    )


def validate_segments_response(data: dict[str, Any]) -> TopicAnalysis:
    """Validate and normalize a topic segmentation response.

    Args:
        data: Parsed JSON from LLM

    Returns:
        TopicAnalysis with one TopicSegment per entry

    Raises:
        LLMResponseError: If validation fails
    """
    if not isinstance(data, dict) or "segments" not in data:
        raise LLMResponseError("Segmentation response missing 'segments' key")
    if not isinstance(data["segments"], list):
        raise LLMResponseError("Segmentation response 'segments' is not a list")

    segments = []
    for i, seg in enumerate(data["segments"]):
        if not isinstance(seg, dict):
            raise LLMResponseError(f"Segment {i} is not an object")
        if not seg.get("topic"):
            raise LLMResponseError(f"Segment {i} missing 'topic'")
        for key in ("startTime", "endTime"):
            value = seg.get(key)
            if not isinstance(value, str):
                raise LLMResponseError(f"Segment {i} missing '{key}'")
            try:
                parse_clock(value)
            except ValueError as e:
                raise LLMResponseError(f"Segment {i} has invalid '{key}': {value!r}") from e

        segments.append(
            TopicSegment(
                start_time=seg["startTime"].strip(),
                end_time=seg["endTime"].strip(),
                topic=str(seg["topic"]).strip(),
                description=str(seg.get("description") or "").strip(),
            )
        )

    return TopicAnalysis(segments=tuple(segments))
