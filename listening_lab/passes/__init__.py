"""Pass progression state machine and its side-effect intents."""

from .intents import ChunkCompleted, Intent, PassCompleted, Pause, Play, Seek
from .state import (
    FINAL_PASS,
    PASSES,
    REVIEW_PASS,
    Coverage,
    EngineState,
    PassState,
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

__all__ = [
    "ChunkCompleted",
    "Intent",
    "PassCompleted",
    "Pause",
    "Play",
    "Seek",
    "FINAL_PASS",
    "PASSES",
    "REVIEW_PASS",
    "Coverage",
    "EngineState",
    "PassState",
    "Transition",
    "advance_chunk",
    "begin_final_listen",
    "can_advance_to_next_step",
    "can_move_to_next_chunk",
    "is_chunk_locked",
    "is_session_complete",
    "note_seek",
    "observe",
    "reconcile",
    "restart_active_chunk",
    "select_chunk",
    "select_step",
]
