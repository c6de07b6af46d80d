"""Configuration dataclasses for the active-listening engine.

This module groups the tunables of each engine layer so that callers pass a
single object instead of a handful of loose floats. Defaults come from
:mod:`listening_lab.utils.constant` and can therefore be overridden through
the environment or the project ``.env`` file.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from listening_lab.utils.constant import (
    CHUNK_BOUNDARY_TOLERANCE_SEC,
    CHUNK_MAX_SEC,
    CHUNK_MIN_SEC,
    CHUNK_TARGET_SEC,
    COVERAGE_SLACK_SEC,
    DEFAULT_SCRUB_SEC,
    MAX_UPDATE_GAP_SEC,
    PASS_COMPLETION_EPSILON_SEC,
    REMOTE_MIN_UPDATE_INTERVAL_SEC,
    REMOTE_POLL_INTERVAL_SEC,
)


class ListeningMode(str, enum.Enum):  # noqa: UP042
    """Listening Lab modes.

    Only ``ACTIVE`` drives the chunk/pass engine; the other two are linear or
    sentence-by-sentence flows that merely share the playback source.

    Attributes:
        EXTENSIVE: Uninterrupted listening of the whole recording.
        ACTIVE: Chunked four-pass practice.
        INTENSIVE: Sentence-by-sentence study.
    """

    EXTENSIVE = "extensive"
    ACTIVE = "active"
    INTENSIVE = "intensive"


@dataclass(frozen=True)
class ChunkingConfig:
    """Groups chunk partitioning settings.

    Attributes:
        target_seconds: Preferred chunk length.
        min_seconds: Shortest acceptable chunk when cutting on a segment end.
        max_seconds: Longest acceptable chunk when cutting on a segment end.

    Raises:
        ValueError: If the values are not positive or not ordered
            ``min <= target <= max``.
    """

    target_seconds: float = CHUNK_TARGET_SEC
    min_seconds: float = CHUNK_MIN_SEC
    max_seconds: float = CHUNK_MAX_SEC

    def __post_init__(self) -> None:
        if self.target_seconds <= 0 or self.min_seconds <= 0 or self.max_seconds <= 0:
            raise ValueError("chunk lengths must be > 0")
        if not self.min_seconds <= self.target_seconds <= self.max_seconds:
            raise ValueError("chunk lengths must satisfy min <= target <= max")


@dataclass(frozen=True)
class PassConfig:
    """Groups pass state machine settings.

    Attributes:
        completion_epsilon: A pass completes once coverage reaches
            ``chunk.end - completion_epsilon``.
        boundary_tolerance: Positions further than this outside the active
            chunk are force-seeked back to the nearest bound.
        coverage_slack: Extra seconds allowed on top of ``elapsed * rate``
            before a forward step counts as a jump instead of playback.
        max_update_gap: Largest forward step credited when updates carry no
            timestamp.
        auto_advance: Move through passes and chunks automatically when a
            pass completes instead of waiting for the host.
    """

    completion_epsilon: float = PASS_COMPLETION_EPSILON_SEC
    boundary_tolerance: float = CHUNK_BOUNDARY_TOLERANCE_SEC
    coverage_slack: float = COVERAGE_SLACK_SEC
    max_update_gap: float = MAX_UPDATE_GAP_SEC
    auto_advance: bool = False


@dataclass(frozen=True)
class PlaybackConfig:
    """Groups playback source and transport settings.

    Attributes:
        remote_min_update_interval: Minimum seconds between applied remote
            device state updates.
        remote_poll_interval: Seconds between remote device state polls.
        scrub_seconds: Default rewind/forward interval.
    """

    remote_min_update_interval: float = REMOTE_MIN_UPDATE_INTERVAL_SEC
    remote_poll_interval: float = REMOTE_POLL_INTERVAL_SEC
    scrub_seconds: float = DEFAULT_SCRUB_SEC
