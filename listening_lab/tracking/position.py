"""Map a continuous playback position onto transcript segments and chunks.

All lookups are pure and tolerant of missing timing: without timestamps the
active segment is estimated proportionally from the playback fraction.
Segment counts are small (tens to a few hundred), so linear scans are used.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from listening_lab.transcript.models import Chunk, TranscriptSegment

__all__ = [
    "find_active_segment_index",
    "chunk_relative_index",
    "find_chunk_index",
    "clamp_index",
]


def clamp_index(index: int, length: int) -> int:
    """Clamp *index* into ``[0, length - 1]``; 0 for empty sequences."""
    if length <= 0:
        return 0
    return min(max(index, 0), length - 1)


def _proportional_index(count: int, position: float, duration: float | None) -> int:
    if duration is None or not math.isfinite(duration) or duration <= 0:
        return 0
    return clamp_index(math.floor((position / duration) * count), count)


def find_active_segment_index(
    segments: Sequence[TranscriptSegment],
    position: float,
    duration: float | None = None,
) -> int:
    """Return the index of the segment being heard at *position*.

    Timed segments use half-open ``[start, end)`` intervals: a position equal
    to one segment's end and the next one's start selects the next segment.
    Positions before the first timed segment map to it, positions at or after
    the last timed end map to the last. A position inside a gap maps to the
    segment whose start is nearest. Zero-length segments are never selected.

    Without any timed segment the index is ``floor(position / duration * n)``
    clamped to the list.

    Args:
        segments: Full transcript segment list (indices refer to it).
        position: Playback position in seconds.
        duration: Total playback duration, used only for the proportional
            fallback.

    Returns:
        int: Segment index, or ``-1`` when *segments* is empty.
    """
    if not segments:
        return -1
    if not math.isfinite(position):
        position = 0.0

    timed = [
        (index, segment)
        for index, segment in enumerate(segments)
        if segment.has_timing and segment.end > segment.start  # type: ignore[operator]
    ]
    if not timed:
        return _proportional_index(len(segments), position, duration)

    first_index, first = timed[0]
    if position < first.start:  # type: ignore[operator]
        return first_index
    last_index, last = timed[-1]
    if position >= last.end:  # type: ignore[operator]
        return last_index

    for index, segment in timed:
        if segment.start <= position < segment.end:  # type: ignore[operator]
            return index

    nearest_index, _ = min(
        timed,
        key=lambda item: abs(position - item[1].start),  # type: ignore[operator]
    )
    return nearest_index


def chunk_relative_index(
    segments: Sequence[TranscriptSegment],
    active_index: int,
    chunk_segments: Sequence[TranscriptSegment],
) -> int:
    """Translate a global active segment index into a chunk's segment list.

    Segments are matched on ``(start, end)`` when the chunk list carries any
    timing, otherwise on text equality.

    Args:
        segments: Full transcript segment list.
        active_index: Index into *segments* (``-1`` for none).
        chunk_segments: Segments belonging to the active chunk.

    Returns:
        int: Index into *chunk_segments*, or ``-1`` when the active segment
            lies outside the chunk.
    """
    if not chunk_segments or not 0 <= active_index < len(segments):
        return -1
    active = segments[active_index]

    if any(segment.has_timing for segment in chunk_segments):
        for index, segment in enumerate(chunk_segments):
            if segment.start == active.start and segment.end == active.end:
                return index
        return -1

    for index, segment in enumerate(chunk_segments):
        if segment.text == active.text:
            return index
    return -1


def find_chunk_index(chunks: Sequence[Chunk], position: float) -> int:
    """Return the index of the chunk containing *position*.

    The last chunk also owns its end point; positions outside the timeline are
    clamped to the first/last chunk.

    Args:
        chunks: Ordered, contiguous chunk list.
        position: Playback position in seconds.

    Returns:
        int: Chunk index, or ``-1`` when *chunks* is empty.
    """
    if not chunks:
        return -1
    if not math.isfinite(position) or position < chunks[0].start:
        return 0
    for chunk in chunks:
        if chunk.contains(position):
            return chunk.index
    return len(chunks) - 1
