"""
chunkscribe.transcribe - Chunked transcription.

Stage 1: plan byte-range chunks, transcribe them in concurrent batches
with retry and backoff, gate the job on its success ratio, and reconcile
the per-chunk timestamps into one timeline.
"""

from __future__ import annotations
