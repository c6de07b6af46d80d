"""Unit tests for the bounded playback control surface."""

from __future__ import annotations

import pytest

from listening_lab.config import PlaybackConfig
from listening_lab.playback import LocalMediaSource, PlaybackControlSurface


def _surface(element, bounds=None) -> PlaybackControlSurface:
    return PlaybackControlSurface(
        LocalMediaSource(element),
        bounds=(lambda: bounds),
        config=PlaybackConfig(scrub_seconds=5),
    )


def test_seek_is_not_clamped_without_bounds(element) -> None:
    """Without chunk bounds targets reach the player unchanged."""
    surface = _surface(element)
    assert surface.seek(500.0) == 500.0
    assert element.current_time == 500.0
    assert surface.state.position_seconds == 500.0
    assert surface.seek(-5.0) == -5.0
    assert surface.seek(float("nan")) == 0.0


def test_seek_is_clamped_to_active_chunk(element) -> None:
    """With chunk bounds targets never leave the active chunk."""
    surface = _surface(element, bounds=(30.0, 60.0))
    assert surface.seek(10.0) == 30.0
    assert surface.seek(90.0) == 60.0
    assert element.current_time == 60.0


def test_scrub_moves_from_clamped_position(element) -> None:
    """Scrubbing starts from the clamped playhead and stays in bounds."""
    surface = _surface(element, bounds=(30.0, 60.0))
    surface.seek(35.0)
    assert surface.rewind() == 30.0
    assert surface.forward() == 35.0
    assert surface.scrub(100.0) == 60.0

    surface.set_scrub_seconds(15)
    assert surface.rewind() == 45.0
    with pytest.raises(ValueError):
        surface.set_scrub_seconds(0)


def test_play_pause_restarts_chunk_when_outside(element) -> None:
    """Play from outside the active chunk starts at the chunk start."""
    element.current_time = 100.0
    surface = _surface(element, bounds=(30.0, 60.0))
    assert surface.play_pause()
    assert element.current_time == 30.0
    assert not element.paused

    assert surface.play_pause()
    assert element.paused


def test_play_and_pause_skip_redundant_commands(element) -> None:
    """Commands are not sent when the player is already in that state."""
    surface = _surface(element)
    assert surface.pause()
    assert element.calls == []
    assert surface.play()
    assert surface.play()
    assert element.calls == ["play"]


def test_rate_validation(element) -> None:
    """Rates outside the supported range are rejected."""
    surface = _surface(element)
    assert surface.set_rate(1.5)
    assert element.playback_rate == 1.5
    assert surface.state.rate == 1.5
    with pytest.raises(ValueError):
        surface.set_rate(0.0)
    with pytest.raises(ValueError):
        surface.set_rate(8.0)


def test_restart_and_skip(element) -> None:
    """Restart and skips target the chunk bounds, or the media bounds when unbounded."""
    bounded = _surface(element, bounds=(30.0, 60.0))
    assert bounded.restart_chunk() == 30.0
    assert bounded.skip_to_end() == 60.0
    assert bounded.skip_to_start() == 30.0

    unbounded = _surface(element)
    assert unbounded.restart_chunk() is None
    assert unbounded.skip_to_end() == 120.0
    assert unbounded.skip_to_start() == 0.0


def test_command_failure_sets_error_until_next_success(element) -> None:
    """Failures are reported through ``error`` and cleared by the next success."""
    surface = _surface(element)
    element.fail = True
    assert not surface.play()
    assert surface.error == "Unable to play right now."
    assert not surface.state.is_playing

    element.fail = False
    assert surface.play()
    assert surface.error is None


def test_refresh_reads_source(element) -> None:
    """``refresh`` replaces the cached state with the source snapshot."""
    surface = _surface(element)
    element.current_time = 7.0
    assert surface.state.position_seconds == 0.0
    assert surface.refresh().position_seconds == 7.0
