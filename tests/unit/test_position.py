"""Unit tests for playback position tracking."""

from __future__ import annotations

import pytest

from listening_lab.chunking import build_chunks, segments_in_chunk
from listening_lab.tracking import (
    chunk_relative_index,
    clamp_index,
    find_active_segment_index,
    find_chunk_index,
)
from listening_lab.transcript import normalise_segments

SEGMENTS = normalise_segments(
    [
        {"start": 0, "end": 2, "text": "a"},
        {"start": 2, "end": 5, "text": "b"},
        {"start": 6, "end": 9, "text": "c"},
    ]
)


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        (0.0, 0),
        (1.99, 0),
        (2.0, 1),  # a segment end selects the next segment
        (4.5, 1),
        (5.2, 2),  # gap: nearest start
        (9.0, 2),
        (50.0, 2),
    ],
)
def test_find_active_segment_half_open(position: float, expected: int) -> None:
    """Timed lookup uses half-open intervals and nearest-start for gaps."""
    assert find_active_segment_index(SEGMENTS, position) == expected


def test_position_before_first_segment_selects_first() -> None:
    """Positions before the first timed start map to the first segment."""
    segments = normalise_segments(
        [{"text": "untimed intro"}, {"start": 3, "end": 6, "text": "x"}]
    )
    assert find_active_segment_index(segments, 1.0) == 1


def test_zero_length_segments_are_skipped() -> None:
    """A segment with ``end == start`` is never selected."""
    segments = normalise_segments(
        [{"start": 0, "end": 0, "text": "blip"}, {"start": 0, "end": 3, "text": "real"}]
    )
    assert find_active_segment_index(segments, 0.0) == 1


def test_proportional_fallback_without_timing() -> None:
    """Untimed segments are picked proportionally to the playback fraction."""
    segments = normalise_segments(["a", "b", "c", "d"])
    assert find_active_segment_index(segments, 50.0, 100.0) == 2
    assert find_active_segment_index(segments, 100.0, 100.0) == 3
    assert find_active_segment_index(segments, 50.0, None) == 0
    assert find_active_segment_index([], 10.0, 100.0) == -1


def test_chunk_relative_index_matches_timing(six_second_segments: list[dict]) -> None:
    """The global active index is translated into the chunk's list."""
    segments = normalise_segments(six_second_segments)
    chunks = build_chunks(segments, 120.0)
    second = segments_in_chunk(segments, chunks[1])

    active = find_active_segment_index(segments, 67.0)
    assert active == 11
    assert chunk_relative_index(segments, active, second) == 1
    assert chunk_relative_index(segments, 3, second) == -1
    assert chunk_relative_index(segments, -1, second) == -1


def test_chunk_relative_index_matches_text_when_untimed() -> None:
    """Untimed chunk lists are matched on text."""
    segments = normalise_segments(["a", "b", "c"])
    assert chunk_relative_index(segments, 2, segments) == 2


def test_find_chunk_index_and_clamp() -> None:
    """Chunk lookup is half-open, the last chunk owns its end, and edges clamp."""
    chunks = build_chunks(
        normalise_segments(
            [
                {"start": 0, "end": 58, "text": "a"},
                {"start": 58, "end": 64, "text": "b"},
                {"start": 64, "end": 121, "text": "c"},
            ]
        ),
        121.0,
    )
    assert find_chunk_index(chunks, 57.9) == 0
    assert find_chunk_index(chunks, 58.0) == 1
    assert find_chunk_index(chunks, 121.0) == 1
    assert find_chunk_index(chunks, -3.0) == 0
    assert find_chunk_index([], 10.0) == -1

    assert clamp_index(5, 2) == 1
    assert clamp_index(-1, 2) == 0
    assert clamp_index(3, 0) == 0
