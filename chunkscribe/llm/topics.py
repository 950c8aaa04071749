"""
chunkscribe.llm.topics - Topic segmentation (LLM pass).

Splits the reconstructed transcript into topic segments. The number of
topics requested scales with the recording length.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

from chunkscribe.exceptions import SegmentationError
from chunkscribe.logging import logger
from chunkscribe.models import GlobalSegment, TopicAnalysis, TopicRange
from chunkscribe.utils import format_clock

# (category, min seconds inclusive, max seconds exclusive, min topics, max topics)
DURATION_TOPIC_RANGES: tuple[tuple[str, int, float, int, int], ...] = (
    ("very_short", 0, 60, 2, 3),
    ("short", 60, 1200, 3, 6),
    ("medium", 1200, 2400, 5, 8),
    ("long", 2400, math.inf, 8, 10),
)

TEMPLATE_NAME = "topic_segments.txt"


def topic_range_for_duration(duration_seconds: float) -> TopicRange:
    """Map a recording length to the number of topics to ask for.

    Args:
        duration_seconds: Total reconciled duration; fractions are dropped

    Returns:
        TopicRange with category and min/max topic counts
    """
    duration = math.floor(max(0.0, duration_seconds))
    for category, low, high, min_topics, max_topics in DURATION_TOPIC_RANGES:
        if low <= duration < high:
            return TopicRange(category=category, min_topics=min_topics, max_topics=max_topics)
    raise ValueError(f"No topic range for duration {duration_seconds}")


class SegmentationClient:
    """Builds the segmentation prompt, calls the LLM and parses the result."""

    def __init__(
        self,
        client: Any,
        template_manager: Any,
        language: str = "es",
        context: str = "",
        temperature: float = 0.3,
    ) -> None:
        self.client = client
        self.template_manager = template_manager
        self.language = language
        self.context = context
        self.temperature = temperature

    def build_prompt(self, segments: Sequence[GlobalSegment], total_duration: float) -> str:
        from chunkscribe.llm.templates import format_transcript_for_prompt

        topic_range = topic_range_for_duration(total_duration)
        logger.info(
            "Duration %s (%ds) - category %s - topics %d-%d",
            format_clock(total_duration),
            int(total_duration),
            topic_range.category,
            topic_range.min_topics,
            topic_range.max_topics,
        )
        variables = {
            "TRANSCRIPT": format_transcript_for_prompt(segments),
            "CONTEXT": self.context,
            "LANGUAGE": self.language,
            "MIN_TOPICS": topic_range.min_topics,
            "MAX_TOPICS": topic_range.max_topics,
            "DURATION": format_clock(total_duration),
        }
        return self.template_manager.render(TEMPLATE_NAME, variables)

    def segment(
        self,
        segments: Sequence[GlobalSegment],
        total_duration: float,
        console=None,
    ) -> TopicAnalysis:
        """Ask the LLM for topic segments.

        Args:
            segments: Reconciled transcript segments
            total_duration: Total timeline duration in seconds
            console: Optional rich console for output

        Returns:
            Validated TopicAnalysis

        Raises:
            SegmentationError: On any failure (request, parsing, validation)
        """
        from chunkscribe.llm.parsing import parse_llm_json, validate_segments_response

        try:
            prompt = self.build_prompt(segments, total_duration)
            if console:
                console.print(f"[dim]  Sending segmentation prompt ({len(prompt)} chars)...[/dim]")

            response = self.client.complete(
                prompt,
                temperature=self.temperature,
                json_mode=True,
                console=console,
            )
            analysis = validate_segments_response(parse_llm_json(response))
        except Exception as e:
            logger.error("Topic segmentation failed: %s", e)
            raise SegmentationError(str(e) or type(e).__name__) from e

        logger.info(
            "Topic analysis completed: %d segments (%s)",
            len(analysis.segments),
            ", ".join(seg.topic for seg in analysis.segments),
        )
        return analysis
