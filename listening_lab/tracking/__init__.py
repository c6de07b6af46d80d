"""Playback position tracking against transcript segments and chunks."""

from .position import (
    chunk_relative_index,
    clamp_index,
    find_active_segment_index,
    find_chunk_index,
)

__all__ = [
    "chunk_relative_index",
    "clamp_index",
    "find_active_segment_index",
    "find_chunk_index",
]
