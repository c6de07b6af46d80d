"""Transport controls shared by every playback source.

:class:`PlaybackControlSurface` turns user gestures (play/pause, seek, scrub,
speed, restart, skip) into source commands. When given chunk bounds it keeps
every target inside the active chunk. Command failures are caught here: the
surface logs a warning, exposes a short user-facing message through
:attr:`PlaybackControlSurface.error` and reports failure to the caller. There
is no automatic retry.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from listening_lab.config import PlaybackConfig
from listening_lab.playback.sources import PlaybackCommandError, PlaybackSource, PlaybackState
from listening_lab.utils.constant import MAX_PLAYBACK_RATE, MIN_PLAYBACK_RATE

logger = logging.getLogger(__name__)

__all__ = ["Bounds", "PlaybackControlSurface"]

Bounds = tuple[float, float]


class PlaybackControlSurface:
    """Bounded transport controls over a :class:`PlaybackSource`.

    Args:
        source: Playback source to command.
        bounds: Callable returning the ``(start, end)`` of the active chunk,
            or ``None`` when playback is unbounded.
        config: Playback settings (scrub interval).
    """

    def __init__(
        self,
        source: PlaybackSource,
        *,
        bounds: Callable[[], Bounds | None] | None = None,
        config: PlaybackConfig | None = None,
    ) -> None:
        config = config or PlaybackConfig()
        self._source = source
        self._bounds = bounds or (lambda: None)
        self.scrub_seconds: float = config.scrub_seconds
        self.error: str | None = None
        self._state = source.get_state()

    @property
    def state(self) -> PlaybackState:
        """Last known playback state (refreshed or optimistically updated)."""
        return self._state

    def refresh(self, state: PlaybackState | None = None) -> PlaybackState:
        """Replace the cached state with *state* or a fresh read from the source."""
        self._state = state if state is not None else self._source.get_state()
        return self._state

    def clamp(self, seconds: float) -> float:
        """Clamp *seconds* into the active chunk.

        Without chunk bounds the target is passed through unchanged and the
        player applies its own limits. Non-finite targets become ``0.0``.
        """
        target = seconds if math.isfinite(seconds) else 0.0
        bounds = self._bounds()
        if bounds is not None:
            start, end = bounds
            target = min(end, max(start, target))
        return target

    def seek(self, seconds: float) -> float | None:
        """Seek to the clamped *seconds*; returns the target or ``None`` on failure."""
        target = self.clamp(seconds)
        if not self._run("seek", self._source.seek, target):
            return None
        self._state = replace(self._state, position_seconds=target)
        return target

    def scrub(self, delta: float) -> float | None:
        """Move the playhead by *delta* seconds from the clamped current position."""
        return self.seek(self.clamp(self._state.position_seconds) + delta)

    def rewind(self) -> float | None:
        return self.scrub(-self.scrub_seconds)

    def forward(self) -> float | None:
        return self.scrub(self.scrub_seconds)

    def set_scrub_seconds(self, seconds: float) -> None:
        """Change the rewind/forward interval.

        Raises:
            ValueError: If *seconds* is not positive.
        """
        if not seconds > 0:
            raise ValueError("scrub interval must be > 0")
        self.scrub_seconds = seconds

    def set_rate(self, rate: float) -> bool:
        """Change the playback rate.

        Raises:
            ValueError: If *rate* is outside the supported range.
        """
        if not MIN_PLAYBACK_RATE <= rate <= MAX_PLAYBACK_RATE:
            raise ValueError(
                f"playback rate must be between {MIN_PLAYBACK_RATE} and {MAX_PLAYBACK_RATE}"
            )
        if not self._run("change speed", self._source.set_rate, rate):
            return False
        self._state = replace(self._state, rate=rate)
        return True

    def play(self) -> bool:
        if self._state.is_playing:
            return True
        if not self._run("play", self._source.play):
            return False
        self._state = replace(self._state, is_playing=True)
        return True

    def pause(self) -> bool:
        if not self._state.is_playing:
            return True
        if not self._run("pause", self._source.pause):
            return False
        self._state = replace(self._state, is_playing=False)
        return True

    def play_pause(self) -> bool:
        """Toggle playback.

        With chunk bounds, a playhead outside the active chunk is first moved
        to the chunk start.
        """
        if self._state.is_playing:
            return self.pause()
        bounds = self._bounds()
        if bounds is not None:
            start, end = bounds
            if not start <= self._state.position_seconds <= end:
                if self.seek(start) is None:
                    return False
        return self.play()

    def restart_chunk(self) -> float | None:
        """Seek to the start of the active chunk (no-op when unbounded)."""
        bounds = self._bounds()
        if bounds is None:
            return None
        return self.seek(bounds[0])

    def skip_to_start(self) -> float | None:
        bounds = self._bounds()
        return self.seek(bounds[0] if bounds is not None else 0.0)

    def skip_to_end(self) -> float | None:
        bounds = self._bounds()
        return self.seek(bounds[1] if bounds is not None else self._state.duration_seconds)

    def _run(self, name: str, func: Callable[..., Any], *args: Any) -> bool:
        try:
            func(*args)
        except PlaybackCommandError as exc:
            logger.warning(f"Playback command '{name}' failed: {exc}")
            self.error = f"Unable to {name} right now."
            return False
        self.error = None
        return True
