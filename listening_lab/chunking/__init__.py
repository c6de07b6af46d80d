"""Chunk partitioning for active-mode practice.

Splits a recording's timeline into sentence-respecting chunks and selects the
transcript segments that belong to each chunk.
"""

from .partitioner import build_chunks, fixed_length_chunks, segments_in_chunk

__all__ = [
    "build_chunks",
    "fixed_length_chunks",
    "segments_in_chunk",
]
