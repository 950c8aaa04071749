"""
chunkscribe - Chunked transcription and topic segmentation engine.

Splits a long audio recording into byte-range chunks, transcribes them in
concurrent batches through a speech-to-text API, stitches the per-chunk
timestamps back into one timeline, and asks an LLM to segment the result
into topics: chunking → transcription → success gate → timeline → topics.
"""

__version__ = "0.1.0"
