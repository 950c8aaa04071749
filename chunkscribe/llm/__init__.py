"""
chunkscribe.llm - LLM topic segmentation.

Stage 2: pick a topic-count range from the recording length, send the
timestamped transcript to the LLM, and parse the topic segments it returns.
"""

from __future__ import annotations
