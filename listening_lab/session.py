"""Listening session wiring the engine to a playback source.

A :class:`ListeningSession` owns everything a host UI needs for Listening Lab:
the transcript segments, the chunk plan, the pass state machine and the
transport controls. Position updates (native media events, remote device
callbacks, the background poller) and user gestures are serialized with a
re-entrant lock. Each update runs through :func:`listening_lab.passes.observe`
and the resulting intents are executed against the control surface.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from listening_lab.chunking import build_chunks, segments_in_chunk
from listening_lab.config import ChunkingConfig, ListeningMode, PassConfig, PlaybackConfig
from listening_lab.passes import (
    Coverage,
    EngineState,
    Intent,
    Pause,
    Play,
    Seek,
    Transition,
    advance_chunk,
    begin_final_listen,
    can_advance_to_next_step,
    can_move_to_next_chunk,
    is_chunk_locked,
    is_session_complete,
    note_seek,
    observe,
    reconcile,
    restart_active_chunk,
    select_chunk,
    select_step,
)
from listening_lab.playback import (
    Bounds,
    PlaybackControlSurface,
    PlaybackSource,
    PlaybackState,
    StatePoller,
)
from listening_lab.tracking import chunk_relative_index, clamp_index, find_active_segment_index
from listening_lab.transcript import Chunk, TranscriptSegment, normalise_segments

logger = logging.getLogger(__name__)

__all__ = ["ActiveModeView", "ListeningSession"]

# Max re-observations per update after intents moved the playhead
_MAX_FOLLOW_UPS = 3


@dataclass(frozen=True)
class ActiveModeView:
    """Read-only view model rendered by the host UI.

    Attributes:
        mode: Current listening mode.
        chunks: Chunk plan (empty outside active mode or before timing is known).
        active_chunk_index: Chunk being practised.
        active_step: Pass being practised (1-4).
        completed_passes: Passes completed for the active chunk.
        completed_chunks: Chunks whose final pass is completed.
        locked_chunks: Chunks the learner cannot select yet.
        can_advance_to_next_step: Whether the next pass may be selected.
        can_move_to_next_chunk: Whether the next chunk may be entered.
        session_complete: Whether every chunk is completed.
        playback_position_seconds: Current playhead position.
        playback_duration_seconds: Media duration; 0 while unknown.
        is_playing: Whether audio is playing.
        playback_rate: Current playback rate.
        scrub_seconds: Rewind/forward interval.
        chunk_segments: Segments of the active chunk (all segments outside
            active mode).
        active_segment_index: Active segment in the full segment list.
        chunk_active_segment_index: Active segment within ``chunk_segments``.
        error: Last playback command error, if any.
    """

    mode: ListeningMode
    chunks: tuple[Chunk, ...]
    active_chunk_index: int
    active_step: int
    completed_passes: frozenset[int]
    completed_chunks: frozenset[int]
    locked_chunks: frozenset[int]
    can_advance_to_next_step: bool
    can_move_to_next_chunk: bool
    session_complete: bool
    playback_position_seconds: float
    playback_duration_seconds: float
    is_playing: bool
    playback_rate: float
    scrub_seconds: float
    chunk_segments: tuple[TranscriptSegment, ...]
    active_segment_index: int
    chunk_active_segment_index: int
    error: str | None


class ListeningSession:
    """Active-listening engine bound to one playback source.

    Args:
        source: Local or remote playback source.
        segments: Raw or normalised transcript segments.
        mode: Initial listening mode.
        chunking: Chunk sizing settings.
        passes: Pass state machine settings.
        playback: Transport and remote polling settings.
        clock: Monotonic clock used to timestamp position updates.
        on_intent: Optional callback receiving every executed intent, e.g.
            to persist progress on ``PassCompleted``/``ChunkCompleted``.

    Examples:
        >>> session = ListeningSession(LocalMediaSource(element), segments=raw)
        >>> session.set_mode(ListeningMode.ACTIVE)
        >>> session.on_play_pause()
        >>> session.view().active_step
        1
    """

    def __init__(
        self,
        source: PlaybackSource,
        *,
        segments: Iterable[Any] | None = None,
        mode: ListeningMode | str = ListeningMode.EXTENSIVE,
        chunking: ChunkingConfig | None = None,
        passes: PassConfig | None = None,
        playback: PlaybackConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_intent: Callable[[Intent], None] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._source = source
        self._clock = clock
        self._on_intent = on_intent
        self.chunking_config = chunking or ChunkingConfig()
        self.pass_config = passes or PassConfig()
        self.playback_config = playback or PlaybackConfig()

        self._mode = ListeningMode(mode)
        self._segments: list[TranscriptSegment] = normalise_segments(segments)
        self._state = EngineState()
        self._chunks: list[Chunk] = []
        self._duration = 0.0
        self._poller: StatePoller | None = None

        self.controls = PlaybackControlSurface(
            source, bounds=self._active_bounds, config=self.playback_config
        )
        self._rebuild_chunks(self.controls.state.duration_seconds)
        self._unsubscribe: Callable[[], None] | None = source.subscribe(self._on_source_state)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def mode(self) -> ListeningMode:
        return self._mode

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return tuple(self._chunks)

    @property
    def segments(self) -> tuple[TranscriptSegment, ...]:
        return tuple(self._segments)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def set_segments(self, segments: Iterable[Any] | None) -> None:
        """Replace the transcript and rebuild the chunk plan."""
        with self._lock:
            self._segments = normalise_segments(segments)
            self._rebuild_chunks(self._duration)

    def set_mode(self, mode: ListeningMode | str) -> None:
        """Switch listening mode, pausing playback before the hand-off.

        Entering active mode rewinds to the start of the active chunk. Leaving
        it resets practice to the first pass of the first chunk; completed
        chunks are kept.
        """
        mode = ListeningMode(mode)
        with self._lock:
            if mode is self._mode:
                return
            self.controls.pause()
            previous, self._mode = self._mode, mode
            if mode is ListeningMode.ACTIVE:
                self._apply(restart_active_chunk(self._state, self._chunks))
            else:
                self._state = replace(
                    self._state, active_chunk_index=0, active_pass=1, coverage=Coverage()
                )
            logger.info(f"Listening mode changed: {previous.value} -> {mode.value}")

    def handle_position(
        self,
        position: float,
        *,
        is_playing: bool,
        rate: float | None = None,
        timestamp: float | None = None,
    ) -> tuple[Intent, ...]:
        """Apply one playback position update and execute the resulting intents.

        Args:
            position: Playback position in seconds.
            is_playing: Whether the player is playing.
            rate: Playback rate; defaults to the last known rate.
            timestamp: Clock time of the update; defaults to ``clock()``.

        Returns:
            tuple[Intent, ...]: Intents executed for this update.
        """
        with self._lock:
            rate = self.controls.state.rate if rate is None else rate
            self.controls.refresh(
                replace(
                    self.controls.state,
                    position_seconds=position,
                    is_playing=is_playing,
                    rate=rate,
                )
            )
            if not self._is_active():
                return ()
            transition = observe(
                self._state,
                self._chunks,
                position,
                is_playing=is_playing,
                timestamp=self._clock() if timestamp is None else timestamp,
                rate=rate,
                config=self.pass_config,
            )
            return self._apply(transition)

    # ------------------------------------------------------------------
    # Host callbacks
    # ------------------------------------------------------------------
    def on_seek(self, seconds: float) -> float | None:
        """Seek on user request; the jump is never credited as listened time."""
        with self._lock:
            return self._user_seek(self.controls.seek(seconds))

    def on_play_pause(self) -> bool:
        with self._lock:
            before = self.controls.state.position_seconds
            ok = self.controls.play_pause()
            after = self.controls.state.position_seconds
            if after != before:
                self._user_seek(after)
            return ok

    def on_rewind(self) -> float | None:
        with self._lock:
            return self._user_seek(self.controls.rewind())

    def on_forward(self) -> float | None:
        with self._lock:
            return self._user_seek(self.controls.forward())

    def on_restart_chunk(self) -> float | None:
        with self._lock:
            return self._user_seek(self.controls.restart_chunk())

    def on_skip_to_start(self) -> float | None:
        with self._lock:
            return self._user_seek(self.controls.skip_to_start())

    def on_skip_to_end(self) -> float | None:
        with self._lock:
            return self._user_seek(self.controls.skip_to_end())

    def on_scrub_change(self, seconds: float) -> None:
        with self._lock:
            self.controls.set_scrub_seconds(seconds)

    def on_rate_change(self, rate: float) -> bool:
        with self._lock:
            return self.controls.set_rate(rate)

    def on_select_step(self, step: int) -> bool:
        with self._lock:
            if not self._is_active():
                return False
            return self._run_transition(select_step(self._state, self._chunks, step))

    def on_begin_final_listen(self) -> bool:
        with self._lock:
            if not self._is_active():
                return False
            transition = begin_final_listen(
                self._state, self._chunks, is_playing=self.controls.state.is_playing
            )
            return self._run_transition(transition)

    def on_select_chunk(self, chunk_index: int) -> bool:
        with self._lock:
            if not self._is_active():
                return False
            return self._run_transition(select_chunk(self._state, self._chunks, chunk_index))

    def on_advance_chunk(self) -> bool:
        with self._lock:
            if not self._is_active():
                return False
            return self._run_transition(advance_chunk(self._state, self._chunks))

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------
    def view(self) -> ActiveModeView:
        """Build the host UI view model from the current state."""
        with self._lock:
            playback = self.controls.state
            state = self._state
            chunks = tuple(self._chunks) if self._mode is ListeningMode.ACTIVE else ()
            count = len(chunks)

            chunk_segments: Sequence[TranscriptSegment] = self._segments
            if chunks:
                chunk = chunks[clamp_index(state.active_chunk_index, count)]
                chunk_segments = segments_in_chunk(self._segments, chunk)

            active_index = find_active_segment_index(
                self._segments, playback.position_seconds, playback.duration_seconds
            )
            return ActiveModeView(
                mode=self._mode,
                chunks=chunks,
                active_chunk_index=state.active_chunk_index,
                active_step=state.active_pass,
                completed_passes=state.completed_passes,
                completed_chunks=state.completed_chunks,
                locked_chunks=frozenset(i for i in range(count) if is_chunk_locked(state, i, count)),
                can_advance_to_next_step=bool(chunks) and can_advance_to_next_step(state),
                can_move_to_next_chunk=can_move_to_next_chunk(state, count),
                session_complete=is_session_complete(state, count),
                playback_position_seconds=playback.position_seconds,
                playback_duration_seconds=playback.duration_seconds,
                is_playing=playback.is_playing,
                playback_rate=playback.rate,
                scrub_seconds=self.controls.scrub_seconds,
                chunk_segments=tuple(chunk_segments),
                active_segment_index=active_index,
                chunk_active_segment_index=chunk_relative_index(
                    self._segments, active_index, chunk_segments
                ),
                error=self.controls.error,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start_polling(self, interval_sec: float | None = None) -> bool:
        """Poll remote sources for state on a background thread.

        Returns:
            bool: False when the source cannot be polled.
        """
        poll = getattr(self._source, "poll", None)
        if poll is None:
            logger.debug("Playback source does not support polling")
            return False
        with self._lock:
            if self._poller is None:
                self._poller = StatePoller(
                    poll, interval_sec or self.playback_config.remote_poll_interval
                )
            self._poller.start()
        return True

    def stop_polling(self) -> None:
        with self._lock:
            poller, self._poller = self._poller, None
        if poller is not None:
            poller.stop()

    def close(self) -> None:
        """Pause playback and detach from the source."""
        with self._lock:
            self.controls.pause()
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
        self.stop_polling()
        logger.debug("Listening session closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _is_active(self) -> bool:
        return self._mode is ListeningMode.ACTIVE and bool(self._chunks)

    def _active_bounds(self) -> Bounds | None:
        if not self._is_active():
            return None
        chunk = self._chunks[clamp_index(self._state.active_chunk_index, len(self._chunks))]
        return (chunk.start, chunk.end)

    def _on_source_state(self, playback: PlaybackState) -> None:
        with self._lock:
            self.controls.refresh(playback)
            if playback.duration_seconds != self._duration:
                self._rebuild_chunks(playback.duration_seconds)
            self.handle_position(
                playback.position_seconds, is_playing=playback.is_playing, rate=playback.rate
            )

    def _rebuild_chunks(self, duration: float) -> None:
        self._duration = duration
        chunks = build_chunks(self._segments, duration or None, self.chunking_config)
        if chunks == self._chunks:
            return
        self._chunks = chunks
        self._state = reconcile(self._state, len(chunks))
        self._state = replace(
            self._state,
            coverage=Coverage(
                last_position=self.controls.state.position_seconds,
                last_timestamp=self._clock(),
            ),
        )
        logger.debug(f"Chunk plan rebuilt: {len(chunks)} chunks (duration={duration:.2f}s)")

    def _user_seek(self, target: float | None) -> float | None:
        if target is not None:
            self._state = note_seek(self._state, target, self._clock())
        return target

    def _run_transition(self, transition: Transition) -> bool:
        if transition.accepted:
            self._apply(transition)
        return transition.accepted

    def _apply(self, transition: Transition) -> tuple[Intent, ...]:
        executed: list[Intent] = []
        for _ in range(_MAX_FOLLOW_UPS + 1):
            self._state = transition.state
            moved = False
            for intent in transition.intents:
                moved = self._execute(intent) or moved
                executed.append(intent)
            if not moved or not self._is_active():
                break
            playback = self.controls.state
            transition = observe(
                self._state,
                self._chunks,
                playback.position_seconds,
                is_playing=playback.is_playing,
                timestamp=self._clock(),
                rate=playback.rate,
                config=self.pass_config,
            )
        return tuple(executed)

    def _execute(self, intent: Intent) -> bool:
        """Run one intent; returns True when the playhead was moved."""
        moved = False
        if isinstance(intent, Seek):
            moved = self.controls.seek(intent.position) is not None
        elif isinstance(intent, Pause):
            self.controls.pause()
        elif isinstance(intent, Play):
            self.controls.play()
        if self._on_intent is not None:
            self._on_intent(intent)
        return moved
