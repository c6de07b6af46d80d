"""Transcript segment models and transcript source resolution."""

from .models import Chunk, TranscriptSegment, has_timed_segments, normalise_segments
from .sources import (
    TranscriptLoadError,
    load_transcript,
    resolve_transcript_segments,
    split_sentences,
)

__all__ = [
    "Chunk",
    "TranscriptSegment",
    "has_timed_segments",
    "normalise_segments",
    "TranscriptLoadError",
    "load_transcript",
    "resolve_transcript_segments",
    "split_sentences",
]
