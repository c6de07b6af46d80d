"""Data models for transcript segments and practice chunks.

This module defines the pydantic models shared by the chunk partitioner, the
position tracker and the session view. Raw transcript input is coerced through
:func:`normalise_segments`, which never raises for malformed timing.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from listening_lab.utils.timefmt import format_label

__all__ = [
    "TranscriptSegment",
    "Chunk",
    "normalise_segments",
    "has_timed_segments",
]


class TranscriptSegment(BaseModel):
    """A single transcript utterance with optional timing."""

    model_config = ConfigDict(frozen=True)

    text: str = Field("", description="Utterance text, stripped.")
    start: float | None = Field(None, description="Start time (seconds), if known.")
    end: float | None = Field(None, description="End time (seconds), if known.")

    @property
    def has_timing(self) -> bool:
        """Whether both timestamps are present."""
        return self.start is not None and self.end is not None


class Chunk(BaseModel):
    """A bounded practice window of the full timeline."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position in the chunk list.")
    start: float = Field(..., description="Chunk start time (seconds).")
    end: float = Field(..., description="Chunk end time (seconds).")
    segment_start_index: int | None = Field(
        None, description="First timed segment in the chunk (sorted order)."
    )
    segment_end_index: int | None = Field(
        None, description="Last timed segment in the chunk (sorted order, inclusive)."
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration(self) -> float:
        """Chunk length in seconds."""
        return max(0.0, self.end - self.start)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def label_start(self) -> str:
        """Start time rendered as ``MM:SS``."""
        return format_label(self.start)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def label_end(self) -> str:
        """End time rendered as ``MM:SS``."""
        return format_label(self.end)

    def contains(self, position: float) -> bool:
        """Return True when *position* lies in ``[start, end)``."""
        return self.start <= position < self.end


def _coerce_time(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _coerce_segment(raw: Any) -> TranscriptSegment | None:
    if raw is None:
        return None
    if isinstance(raw, TranscriptSegment):
        return raw
    if isinstance(raw, str):
        return TranscriptSegment(text=raw.strip())
    if not isinstance(raw, Mapping):
        return None

    start = _coerce_time(raw.get("start"))
    end = _coerce_time(raw.get("end"))
    if start is not None and end is not None and end < start:
        # Inverted timing cannot be mapped onto the timeline.
        start = end = None
    text = raw.get("text")
    return TranscriptSegment(
        text=str(text).strip() if text is not None else "",
        start=start,
        end=end,
    )


def normalise_segments(raw_segments: Iterable[Any] | None) -> list[TranscriptSegment]:
    """Coerce raw transcript entries into :class:`TranscriptSegment` objects.

    ``None``, strings, mappings and other non-iterable inputs yield an empty
    list and unsupported entries are dropped. Non-numeric or non-finite
    timestamps become ``None`` and text is stripped. Segments with
    ``end < start`` lose both timestamps and fall back to index-based
    handling. Order is preserved.

    Args:
        raw_segments: Mappings with ``start``/``end``/``text`` keys, bare
            strings, or existing segments. ``None`` is treated as empty.

    Returns:
        list[TranscriptSegment]: Normalised segments in input order.
    """
    if (
        not raw_segments
        or isinstance(raw_segments, (str, bytes, Mapping))
        or not isinstance(raw_segments, Iterable)
    ):
        return []
    normalised: list[TranscriptSegment] = []
    for raw in raw_segments:
        segment = _coerce_segment(raw)
        if segment is not None:
            normalised.append(segment)
    return normalised


def has_timed_segments(segments: Iterable[TranscriptSegment]) -> bool:
    """Return True when at least one segment carries both timestamps."""
    return any(segment.has_timing for segment in segments)
