"""Side-effect intents emitted by pass state machine transitions.

Transitions never touch a player. They describe what should happen and the
caller (normally :class:`listening_lab.session.ListeningSession`) executes the
intents in order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

__all__ = [
    "Seek",
    "Pause",
    "Play",
    "PassCompleted",
    "ChunkCompleted",
    "Intent",
]


@dataclass(frozen=True)
class Seek:
    """Move the playhead to *position* seconds.

    ``reason`` is ``"boundary"`` for out-of-chunk corrections, which must not
    be recorded as a user seek.
    """

    position: float
    reason: str = "navigation"


@dataclass(frozen=True)
class Pause:
    """Pause playback."""

    reason: str = ""


@dataclass(frozen=True)
class Play:
    """Start or resume playback."""

    reason: str = ""


@dataclass(frozen=True)
class PassCompleted:
    """A pass was completed for a chunk (emitted once per chunk and pass)."""

    chunk_index: int
    pass_number: int


@dataclass(frozen=True)
class ChunkCompleted:
    """The final pass of a chunk was completed."""

    chunk_index: int


Intent = Union[Seek, Pause, Play, PassCompleted, ChunkCompleted]
