"""Four-pass mastery state machine for active listening.

Every chunk is practised in four passes:

1. Listen
2. Listen + Read
3. Read + Adjust
4. Final Listen

Passes 1, 2 and 4 complete automatically once playback has continuously
covered the chunk up to its end. Pass 3 is a reading step and completes only
through :func:`begin_final_listen`, which also commits the learner to the
final listen.

The state is an immutable :class:`EngineState`. Every operation is a pure
function returning a :class:`Transition` with the next state and the
side-effect intents (seek, pause, play, completion notices) for the caller to
execute. Nothing here knows about players, timers or threads.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from listening_lab.config import PassConfig
from listening_lab.passes.intents import (
    ChunkCompleted,
    Intent,
    PassCompleted,
    Pause,
    Play,
    Seek,
)
from listening_lab.tracking.position import clamp_index
from listening_lab.transcript.models import Chunk

logger = logging.getLogger(__name__)

__all__ = [
    "PASSES",
    "REVIEW_PASS",
    "FINAL_PASS",
    "PassState",
    "Coverage",
    "EngineState",
    "Transition",
    "observe",
    "note_seek",
    "select_step",
    "begin_final_listen",
    "select_chunk",
    "advance_chunk",
    "restart_active_chunk",
    "reconcile",
    "can_advance_to_next_step",
    "can_move_to_next_chunk",
    "is_chunk_locked",
    "is_session_complete",
]

PASSES: tuple[int, ...] = (1, 2, 3, 4)
REVIEW_PASS = 3
FINAL_PASS = 4
AUTO_COMPLETING_PASSES: frozenset[int] = frozenset({1, 2, 4})


@dataclass(frozen=True)
class PassState:
    """Completion record of one chunk.

    Attributes:
        completed: Passes completed for the chunk.
        committed: Whether the learner committed pass 3 via the final listen.
    """

    completed: frozenset[int] = frozenset()
    committed: bool = False

    def is_completed(self, pass_number: int) -> bool:
        """Return True when *pass_number* is completed."""
        return pass_number in self.completed

    def complete(self, pass_number: int) -> PassState:
        """Return a copy with *pass_number* completed."""
        return replace(self, completed=self.completed | {pass_number})

    def commit(self) -> PassState:
        """Return a copy with pass 3 committed and completed."""
        return replace(self, completed=self.completed | {REVIEW_PASS}, committed=True)


_EMPTY_PASS_STATE = PassState()


@dataclass(frozen=True)
class Coverage:
    """Continuous playback coverage for the active (chunk, pass) pair.

    Attributes:
        max_played: Furthest position reached by uninterrupted playback that
            started at the chunk start; ``None`` until such playback begins.
        last_position: Position of the previous update.
        last_timestamp: Clock time of the previous update, if supplied.
    """

    max_played: float | None = None
    last_position: float | None = None
    last_timestamp: float | None = None


@dataclass(frozen=True)
class EngineState:
    """Snapshot of the active-mode engine.

    Attributes:
        active_chunk_index: Chunk being practised.
        active_pass: Pass being practised (1-4).
        passes: Completion record per chunk index.
        completed_chunks: Chunks whose final pass is completed.
        completion_keys: ``(chunk, pass)`` pairs already auto-completed;
            guards against firing completion twice.
        coverage: Playback coverage for the active chunk and pass.
    """

    active_chunk_index: int = 0
    active_pass: int = 1
    passes: Mapping[int, PassState] = field(default_factory=dict)
    completed_chunks: frozenset[int] = frozenset()
    completion_keys: frozenset[tuple[int, int]] = frozenset()
    coverage: Coverage = field(default_factory=Coverage)

    def pass_state(self, chunk_index: int | None = None) -> PassState:
        """Return the completion record of *chunk_index* (default: active chunk)."""
        if chunk_index is None:
            chunk_index = self.active_chunk_index
        return self.passes.get(chunk_index, _EMPTY_PASS_STATE)

    @property
    def completed_passes(self) -> frozenset[int]:
        """Passes completed for the active chunk."""
        return self.pass_state().completed


@dataclass(frozen=True)
class Transition:
    """Result of a state machine operation.

    Attributes:
        state: Next engine state (the input state when nothing changed).
        intents: Side effects to execute, in order.
        accepted: False when the operation was rejected by a gate.
    """

    state: EngineState
    intents: tuple[Intent, ...] = ()
    accepted: bool = True


def _rejected(state: EngineState) -> Transition:
    return Transition(state, (), accepted=False)


def _with_pass_state(state: EngineState, chunk_index: int, pass_state: PassState) -> EngineState:
    passes = dict(state.passes)
    passes[chunk_index] = pass_state
    return replace(state, passes=passes)


def _enter(state: EngineState, chunk: Chunk, active_pass: int) -> EngineState:
    """Switch to ``(chunk, active_pass)`` with fresh coverage anchored at the chunk start."""
    return replace(
        state,
        active_chunk_index=chunk.index,
        active_pass=active_pass,
        coverage=Coverage(last_position=chunk.start),
    )


def can_advance_to_next_step(state: EngineState) -> bool:
    """Whether the learner may move from the active pass to the next one.

    Entering the review pass is always allowed; every other forward step
    requires the active pass to be completed.
    """
    if state.active_pass >= FINAL_PASS:
        return False
    if state.active_pass + 1 == REVIEW_PASS:
        return True
    return state.pass_state().is_completed(state.active_pass)


def can_move_to_next_chunk(state: EngineState, chunk_count: int) -> bool:
    """Whether the final pass of the active chunk is done and a next chunk exists."""
    if state.active_chunk_index >= chunk_count - 1:
        return False
    return state.pass_state().is_completed(FINAL_PASS)


def is_chunk_locked(state: EngineState, chunk_index: int, chunk_count: int) -> bool:
    """Chunks beyond the active one stay locked until the active chunk is finished."""
    if chunk_index <= state.active_chunk_index:
        return False
    return not (
        chunk_index == state.active_chunk_index + 1 and can_move_to_next_chunk(state, chunk_count)
    )


def is_session_complete(state: EngineState, chunk_count: int) -> bool:
    """True once every chunk has its final pass completed."""
    return chunk_count > 0 and all(index in state.completed_chunks for index in range(chunk_count))


def _allowed_step(
    coverage: Coverage,
    timestamp: float | None,
    rate: float,
    config: PassConfig,
) -> float:
    last_timestamp = coverage.last_timestamp
    if timestamp is None or last_timestamp is None or timestamp < last_timestamp:
        return config.max_update_gap
    return (timestamp - last_timestamp) * max(rate, 0.0) + config.coverage_slack


def _advance_coverage(
    coverage: Coverage,
    chunk: Chunk,
    position: float,
    *,
    is_playing: bool,
    timestamp: float | None,
    rate: float,
    config: PassConfig,
) -> Coverage:
    """Credit the step from the previous update when it was continuous playback.

    Jumps (scrubs, skips, seeks) and backward moves are never credited, so
    coverage only grows through playback that is connected to the chunk start.
    """
    max_played = coverage.max_played
    last = coverage.last_position
    if is_playing and last is not None:
        step = position - last
        if 0 <= step <= _allowed_step(coverage, timestamp, rate, config):
            reached = min(position, chunk.end)
            tolerance = config.boundary_tolerance
            if max_played is not None and last <= max_played + tolerance:
                max_played = max(max_played, reached)
            elif max_played is None and last <= chunk.start + tolerance:
                max_played = reached
    return Coverage(max_played=max_played, last_position=position, last_timestamp=timestamp)


def _complete_active_pass(
    state: EngineState,
    chunks: Sequence[Chunk],
    chunk: Chunk,
    *,
    is_playing: bool,
    config: PassConfig,
) -> Transition:
    active_pass = state.active_pass
    index = chunk.index

    state = _with_pass_state(state, index, state.pass_state(index).complete(active_pass))
    state = replace(state, completion_keys=state.completion_keys | {(index, active_pass)})
    intents: list[Intent] = [PassCompleted(index, active_pass)]
    if active_pass == FINAL_PASS:
        state = replace(state, completed_chunks=state.completed_chunks | {index})
        intents.append(ChunkCompleted(index))
    logger.info(f"Chunk {index + 1}: pass {active_pass} completed")

    if not config.auto_advance:
        if is_playing:
            intents.append(Pause("pass completed"))
        return Transition(state, tuple(intents))

    if active_pass == 1:
        state = _enter(state, chunk, 2)
        intents += [Seek(chunk.start), Play("auto advance")]
    elif active_pass == 2:
        if is_playing:
            intents.append(Pause("review pass"))
        state = _enter(state, chunk, REVIEW_PASS)
        intents.append(Seek(chunk.start))
    elif index < len(chunks) - 1:
        next_chunk = chunks[index + 1]
        state = _enter(state, next_chunk, 1)
        intents += [Seek(next_chunk.start), Play("auto advance")]
        logger.debug(f"Auto-advanced to chunk {next_chunk.index + 1}")
    elif is_playing:
        intents.append(Pause("session complete"))
    return Transition(state, tuple(intents))


def observe(
    state: EngineState,
    chunks: Sequence[Chunk],
    position: float,
    *,
    is_playing: bool,
    timestamp: float | None = None,
    rate: float = 1.0,
    config: PassConfig | None = None,
) -> Transition:
    """Apply one playback position update.

    Order is fixed: an out-of-chunk position is corrected first (seek to the
    nearest bound) and no completion is evaluated on that update; otherwise
    coverage is advanced and the completion threshold of the active pass is
    checked. Completion fires once per ``(chunk, pass)``.

    Args:
        state: Current engine state.
        chunks: Current chunk list.
        position: Playback position in seconds.
        is_playing: Whether the player is currently playing.
        timestamp: Monotonic clock time of the update, if known.
        rate: Playback rate, used to judge continuity between updates.
        config: Pass settings; defaults to :class:`PassConfig`.

    Returns:
        Transition: Next state and intents.
    """
    config = config or PassConfig()
    if not chunks or position is None or not math.isfinite(position):
        return Transition(state)

    chunk = chunks[clamp_index(state.active_chunk_index, len(chunks))]
    tolerance = config.boundary_tolerance

    if position < chunk.start - tolerance:
        logger.debug(f"Position {position:.2f}s before chunk {chunk.index + 1}; seeking to start")
        return Transition(state, (Seek(chunk.start, reason="boundary"),))

    coverage = _advance_coverage(
        state.coverage,
        chunk,
        position,
        is_playing=is_playing,
        timestamp=timestamp,
        rate=rate,
        config=config,
    )
    state = replace(state, coverage=coverage)

    if position > chunk.end + tolerance:
        logger.debug(f"Position {position:.2f}s past chunk {chunk.index + 1}; seeking to end")
        intents: tuple[Intent, ...] = (Seek(chunk.end, reason="boundary"),)
        if is_playing:
            intents += (Pause("chunk end"),)
        return Transition(state, intents)

    active_pass = state.active_pass
    if active_pass not in AUTO_COMPLETING_PASSES:
        return Transition(state)
    if (chunk.index, active_pass) in state.completion_keys:
        return Transition(state)
    if coverage.max_played is None or coverage.max_played < chunk.end - config.completion_epsilon:
        return Transition(state)
    return _complete_active_pass(state, chunks, chunk, is_playing=is_playing, config=config)


def note_seek(state: EngineState, position: float, timestamp: float | None = None) -> EngineState:
    """Record a user seek so the jump is not credited as listened time."""
    coverage = replace(state.coverage, last_position=position, last_timestamp=timestamp)
    return replace(state, coverage=coverage)


def select_step(state: EngineState, chunks: Sequence[Chunk], step: int) -> Transition:
    """Move to pass *step* of the active chunk.

    Backward moves and re-selecting the active pass are always allowed.
    Forward moves go one pass at a time and need :func:`can_advance_to_next_step`.
    Selecting pass 3 pauses playback first; re-entering it after the commit
    has no further side effects. Any actual pass change restarts the chunk.

    Args:
        state: Current engine state.
        chunks: Current chunk list.
        step: Requested pass (1-4).

    Returns:
        Transition: Rejected when the gate refuses the move.
    """
    if not chunks or step not in PASSES:
        return _rejected(state)

    current = state.active_pass
    if step > current + 1 or (step == current + 1 and not can_advance_to_next_step(state)):
        logger.debug(f"Rejected pass change {current} -> {step}")
        return _rejected(state)

    intents: list[Intent] = []
    if step == REVIEW_PASS:
        intents.append(Pause("review pass"))
    if step == current:
        return Transition(state, tuple(intents))

    chunk = chunks[clamp_index(state.active_chunk_index, len(chunks))]
    intents.append(Seek(chunk.start))
    logger.debug(f"Chunk {chunk.index + 1}: pass {current} -> {step}")
    return Transition(_enter(state, chunk, step), tuple(intents))


def begin_final_listen(
    state: EngineState,
    chunks: Sequence[Chunk],
    *,
    is_playing: bool,
) -> Transition:
    """Commit pass 3 and start the final listen from the chunk start.

    Marks pass 3 committed and completed, switches to pass 4, seeks to the
    chunk start and resumes playback when paused. Only valid from pass 3.
    """
    if not chunks or state.active_pass != REVIEW_PASS:
        return _rejected(state)

    chunk = chunks[clamp_index(state.active_chunk_index, len(chunks))]
    pass_state = state.pass_state(chunk.index)
    intents: list[Intent] = []
    if not pass_state.is_completed(REVIEW_PASS):
        intents.append(PassCompleted(chunk.index, REVIEW_PASS))
    state = _with_pass_state(state, chunk.index, pass_state.commit())
    state = _enter(state, chunk, FINAL_PASS)
    intents.append(Seek(chunk.start))
    if not is_playing:
        intents.append(Play("final listen"))
    logger.debug(f"Chunk {chunk.index + 1}: final listen started")
    return Transition(state, tuple(intents))


def select_chunk(state: EngineState, chunks: Sequence[Chunk], chunk_index: int) -> Transition:
    """Jump to an unlocked chunk and restart it at pass 1."""
    if not 0 <= chunk_index < len(chunks):
        return _rejected(state)
    if is_chunk_locked(state, chunk_index, len(chunks)):
        logger.debug(f"Rejected locked chunk {chunk_index + 1}")
        return _rejected(state)
    if chunk_index == state.active_chunk_index:
        return Transition(state)
    chunk = chunks[chunk_index]
    return Transition(_enter(state, chunk, 1), (Seek(chunk.start),))


def restart_active_chunk(state: EngineState, chunks: Sequence[Chunk]) -> Transition:
    """Rewind the active pass to the start of the active chunk with fresh coverage."""
    if not chunks:
        return Transition(state)
    chunk = chunks[clamp_index(state.active_chunk_index, len(chunks))]
    return Transition(_enter(state, chunk, state.active_pass), (Seek(chunk.start),))


def advance_chunk(state: EngineState, chunks: Sequence[Chunk]) -> Transition:
    """Move to the next chunk once the final pass of the active one is done."""
    if not can_move_to_next_chunk(state, len(chunks)):
        return _rejected(state)
    next_chunk = chunks[state.active_chunk_index + 1]
    logger.debug(f"Advancing to chunk {next_chunk.index + 1}")
    return Transition(_enter(state, next_chunk, 1), (Seek(next_chunk.start),))


def reconcile(state: EngineState, chunk_count: int) -> EngineState:
    """Fit *state* to a rebuilt chunk list of *chunk_count* chunks.

    The active index is clamped into range and records of chunks that no
    longer exist are dropped. When the active chunk changes, practice restarts
    at pass 1 with fresh coverage.
    """
    index = clamp_index(state.active_chunk_index, chunk_count)
    passes = {key: value for key, value in state.passes.items() if key < chunk_count}
    reconciled = replace(
        state,
        active_chunk_index=index,
        passes=passes,
        completed_chunks=frozenset(i for i in state.completed_chunks if i < chunk_count),
        completion_keys=frozenset(key for key in state.completion_keys if key[0] < chunk_count),
    )
    if index != state.active_chunk_index:
        logger.debug(f"Active chunk clamped {state.active_chunk_index} -> {index}")
        reconciled = replace(reconciled, active_pass=1, coverage=Coverage())
    return reconciled
