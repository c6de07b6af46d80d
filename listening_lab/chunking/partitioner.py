"""Sentence-aware chunk partitioner for active listening.

This module divides a recording's timeline into practice chunks of roughly
``target_seconds``. When the transcript carries timestamps, chunks end on
segment boundaries so a learner never hears a sentence cut in half; otherwise
the timeline is sliced into fixed-length windows.

Chunk lists are pure functions of ``(segments, duration, config)``. Callers
rebuild them wholesale whenever either input changes.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from listening_lab.config import ChunkingConfig
from listening_lab.transcript.models import Chunk, TranscriptSegment

logger = logging.getLogger(__name__)

__all__ = [
    "build_chunks",
    "fixed_length_chunks",
    "segments_in_chunk",
]

# (start, end, first segment index, last segment index)
_Bounds = tuple[float, float, int | None, int | None]


def _known_duration(duration: float | None) -> float | None:
    if duration is None or not math.isfinite(duration) or duration <= 0:
        return None
    return float(duration)


def _timed_spans(
    segments: Sequence[TranscriptSegment],
    duration: float | None,
) -> list[tuple[float, float]]:
    """Return sorted ``(start, end)`` spans of timed segments within *duration*.

    Ends are made monotonic so overlapping input can never produce a cut point
    that moves backwards.
    """
    timed = sorted(
        (segment for segment in segments if segment.has_timing),
        key=lambda segment: segment.start,  # type: ignore[arg-type, return-value]
    )
    spans: list[tuple[float, float]] = []
    running_end = 0.0
    for segment in timed:
        start = float(segment.start)  # type: ignore[arg-type]
        end = float(segment.end)  # type: ignore[arg-type]
        if duration is not None:
            if start >= duration:
                continue
            end = min(end, duration)
        running_end = max(running_end, end)
        spans.append((start, running_end))
    return spans


def _tile(start: float, end: float, length: float) -> list[_Bounds]:
    count = math.ceil((end - start) / length)
    return [
        (start + i * length, min(start + (i + 1) * length, end), None, None)
        for i in range(count)
    ]


def _to_chunks(bounds: Sequence[_Bounds]) -> list[Chunk]:
    return [
        Chunk(
            index=index,
            start=start,
            end=end,
            segment_start_index=first,
            segment_end_index=last,
        )
        for index, (start, end, first, last) in enumerate(bounds)
    ]


def fixed_length_chunks(duration: float, length: float) -> list[Chunk]:
    """Slice ``[0, duration]`` into windows of exactly *length* seconds.

    The last window is truncated to *duration*.

    Args:
        duration: Total timeline length in seconds.
        length: Window length in seconds.

    Returns:
        list[Chunk]: ``ceil(duration / length)`` chunks, or an empty list when
            *duration* is not positive.

    Raises:
        ValueError: If *length* is not positive.
    """
    if length <= 0:
        raise ValueError("length must be > 0")
    known = _known_duration(duration)
    if known is None:
        return []
    return _to_chunks(_tile(0.0, known, length))


def _segment_aware_bounds(
    spans: Sequence[tuple[float, float]],
    config: ChunkingConfig,
) -> list[_Bounds]:
    target = config.target_seconds
    low, high = config.min_seconds, config.max_seconds

    bounds: list[_Bounds] = []
    chunk_start = 0.0
    chunk_first = 0
    prev_end: float | None = None
    prev_index: int | None = None

    i = 0
    while i < len(spans):
        seg_end = spans[i][1]
        span = seg_end - chunk_start
        if span < target:
            prev_end, prev_index = seg_end, i
            i += 1
            continue

        prev_span = prev_end - chunk_start if prev_end is not None else None
        prev_ok = prev_span is not None and low <= prev_span <= high
        cur_ok = low <= span <= high
        if prev_ok and cur_ok:
            use_prev = abs(prev_span - target) <= abs(span - target)  # type: ignore[operator]
        elif prev_ok or cur_ok:
            use_prev = prev_ok
        else:
            use_prev = prev_span is not None and prev_span >= low

        if use_prev:
            # The current segment opens the next chunk and is evaluated again.
            cut, last = prev_end, prev_index
        else:
            cut, last = seg_end, i
            i += 1
            if span > high:
                logger.debug(
                    f"Oversized chunk {len(bounds)}: {span:.2f}s exceeds {high:.2f}s"
                )

        bounds.append((chunk_start, cut, chunk_first, last))  # type: ignore[arg-type]
        chunk_start = cut  # type: ignore[assignment]
        chunk_first = last + 1  # type: ignore[operator]
        prev_end = prev_index = None

    last_end = spans[-1][1]
    if last_end > chunk_start:
        bounds.append((chunk_start, last_end, chunk_first, len(spans) - 1))
    return bounds


def build_chunks(
    segments: Sequence[TranscriptSegment],
    duration: float | None,
    config: ChunkingConfig | None = None,
) -> list[Chunk]:
    """Partition the timeline into contiguous practice chunks.

    With at least one timed segment, chunks are cut on segment ends. Once the
    running chunk reaches the target length, the cut falls either on the
    previous or on the current segment end, whichever lies inside the
    ``[min, max]`` band and closer to the target. A single segment longer than
    ``max_seconds`` yields an oversized chunk; segments are never split.

    The chunk list always covers ``[0, duration]``: a short untranscribed tail
    (below ``min_seconds``) is folded into the last chunk, a longer one is
    tiled with fixed-length windows. When *duration* is unknown the last
    segment end is used instead.

    Without any timed segment the timeline is sliced into fixed windows of
    ``target_seconds``.

    Args:
        segments: Transcript segments in any order; untimed ones are ignored
            in segment-aware mode.
        duration: Total playback duration in seconds; ``None``/``0`` when not
            yet known.
        config: Chunk sizing; defaults to :class:`ChunkingConfig`.

    Returns:
        list[Chunk]: Ordered chunks, empty when nothing can be partitioned.
    """
    config = config or ChunkingConfig()
    known = _known_duration(duration)
    spans = _timed_spans(segments, known)

    if not spans:
        if known is None:
            return []
        return fixed_length_chunks(known, config.target_seconds)

    bounds = _segment_aware_bounds(spans, config)
    timeline_end = known if known is not None else spans[-1][1]

    if not bounds:
        # Only zero-length segments at the very start.
        if timeline_end <= 0:
            return []
        return fixed_length_chunks(timeline_end, config.target_seconds)

    last_start, last_end, last_first, last_last = bounds[-1]
    tail = timeline_end - last_end
    if tail > 0:
        if tail < config.min_seconds:
            bounds[-1] = (last_start, timeline_end, last_first, last_last)
        else:
            bounds.extend(_tile(last_end, timeline_end, config.target_seconds))

    chunks = _to_chunks(bounds)
    logger.debug(f"Built {len(chunks)} chunks over {timeline_end:.2f}s from {len(spans)} segments")
    return chunks


def segments_in_chunk(
    segments: Sequence[TranscriptSegment],
    chunk: Chunk | None,
) -> list[TranscriptSegment]:
    """Return the segments that belong to *chunk*.

    A timed segment belongs to the chunk whose ``[start, end)`` contains its
    start. When no segment is timed the whole list is returned (there is no
    way to map it onto the timeline); with mixed input untimed entries are
    dropped.

    Args:
        segments: Full transcript segment list.
        chunk: Active chunk; ``None`` returns all segments.

    Returns:
        list[TranscriptSegment]: Segments in input order.
    """
    if chunk is None:
        return list(segments)
    if not any(segment.has_timing for segment in segments):
        return list(segments)
    return [
        segment
        for segment in segments
        if segment.has_timing and chunk.start <= segment.start < chunk.end  # type: ignore[operator]
    ]
