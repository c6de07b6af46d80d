"""Integration tests for ``ListeningSession`` with fake players.

A fake media element and a fake remote device stand in for real players, so
the full path from media events through the pass state machine back to player
commands is exercised without audio.
"""

from __future__ import annotations

from listening_lab.config import ListeningMode, PassConfig
from listening_lab.passes import ChunkCompleted, Intent, PassCompleted
from listening_lab.playback import LocalMediaSource, RemoteDeviceSource
from listening_lab.session import ListeningSession


def _session(element, clock, segments, **kwargs) -> tuple[ListeningSession, LocalMediaSource]:
    source = LocalMediaSource(element)
    session = ListeningSession(
        source,
        segments=segments,
        mode=ListeningMode.ACTIVE,
        passes=kwargs.pop("passes", PassConfig()),
        clock=clock,
        **kwargs,
    )
    return session, source


def _tick(element, source, clock, position: float) -> None:
    """Advance the clock one second and report a new playhead position."""
    clock.advance(1.0)
    element.current_time = position
    source.handle_event("timeupdate")


def _play_through(element, source, clock, start: int, end: int) -> None:
    for second in range(start + 1, end + 1):
        _tick(element, source, clock, float(second))


def test_session_builds_chunks_from_duration(element, clock, six_second_segments) -> None:
    """The chunk plan is available as soon as the duration is known."""
    session, _ = _session(element, clock, six_second_segments)
    view = session.view()
    assert [(c.start, c.end) for c in view.chunks] == [(0.0, 60.0), (60.0, 120.0)]
    assert view.active_step == 1
    assert view.locked_chunks == frozenset({1})
    assert not view.can_advance_to_next_step
    assert len(view.chunk_segments) == 10


def test_listening_through_completes_pass_and_pauses(
    element, clock, six_second_segments
) -> None:
    """Continuous playback to the chunk end completes pass 1 and pauses."""
    received: list[Intent] = []
    session, source = _session(element, clock, six_second_segments, on_intent=received.append)
    assert session.on_play_pause()
    _play_through(element, source, clock, 0, 60)

    view = session.view()
    assert view.completed_passes == frozenset({1})
    assert view.can_advance_to_next_step
    assert not view.is_playing
    assert element.paused
    assert PassCompleted(0, 1) in received


def test_overshoot_is_corrected_and_then_completes(element, clock, six_second_segments) -> None:
    """A playhead past the chunk end is pulled back, paused, then completed."""
    session, source = _session(element, clock, six_second_segments)
    session.on_play_pause()
    _play_through(element, source, clock, 0, 59)
    _tick(element, source, clock, 60.3)

    assert element.current_time == 60.0
    assert element.paused
    assert session.view().completed_passes == frozenset({1})


def test_user_seek_is_clamped_and_not_credited(element, clock, six_second_segments) -> None:
    """Seeks stay inside the chunk and jumping to the end completes nothing."""
    session, source = _session(element, clock, six_second_segments)
    assert session.on_seek(100.0) == 60.0
    assert session.on_seek(-3.0) == 0.0

    session.on_play_pause()
    _tick(element, source, clock, 1.0)
    assert session.on_seek(59.0) == 59.0
    _tick(element, source, clock, 60.0)
    assert session.view().completed_passes == frozenset()


def test_full_chunk_flow_and_advance(element, clock, six_second_segments) -> None:
    """Walk all four passes of the first chunk and move to the second."""
    received: list[Intent] = []
    session, source = _session(element, clock, six_second_segments, on_intent=received.append)

    assert not session.on_select_step(2)
    session.on_play_pause()
    _play_through(element, source, clock, 0, 60)

    assert session.on_select_step(2)
    assert element.current_time == 0.0
    session.on_play_pause()
    _play_through(element, source, clock, 0, 60)
    assert session.view().completed_passes == frozenset({1, 2})

    assert session.on_select_step(3)
    assert element.paused
    assert not session.on_select_step(4)

    assert session.on_begin_final_listen()
    assert session.view().active_step == 4
    assert not element.paused
    _play_through(element, source, clock, 0, 60)

    view = session.view()
    assert view.completed_chunks == frozenset({0})
    assert view.can_move_to_next_chunk
    assert ChunkCompleted(0) in received

    assert session.on_advance_chunk()
    view = session.view()
    assert view.active_chunk_index == 1
    assert view.active_step == 1
    assert element.current_time == 60.0
    assert view.chunk_segments[0].start == 60.0


def test_auto_advance_restarts_chunk_in_next_pass(element, clock, six_second_segments) -> None:
    """With auto-advance the session seeks back and keeps playing."""
    session, source = _session(
        element, clock, six_second_segments, passes=PassConfig(auto_advance=True)
    )
    session.on_play_pause()
    _play_through(element, source, clock, 0, 60)

    view = session.view()
    assert view.active_step == 2
    assert element.current_time == 0.0
    assert not element.paused


def test_command_failure_is_exposed_in_view(element, clock, six_second_segments) -> None:
    """A rejected play surfaces as a view error without raising."""
    session, _ = _session(element, clock, six_second_segments)
    element.fail = True
    assert not session.on_play_pause()
    assert session.view().error == "Unable to play right now."


def test_active_segment_tracking(element, clock, six_second_segments) -> None:
    """The view reports the active segment globally and within the chunk."""
    session, source = _session(element, clock, six_second_segments)
    _tick(element, source, clock, 7.0)
    view = session.view()
    assert view.active_segment_index == 1
    assert view.chunk_active_segment_index == 1


def test_set_mode_pauses_and_resets(element, clock, six_second_segments) -> None:
    """Leaving active mode pauses and drops chunk bounds."""
    session, _ = _session(element, clock, six_second_segments)
    session.on_play_pause()
    session.set_mode("extensive")

    assert element.paused
    view = session.view()
    assert view.mode is ListeningMode.EXTENSIVE
    assert view.chunks == ()
    assert view.active_step == 1
    assert not session.on_select_step(2)
    assert session.on_seek(100.0) == 100.0


def test_entering_active_mode_mid_chunk_rewinds_and_completes(
    element, clock, six_second_segments
) -> None:
    """Switching to active mode partway through a chunk starts it over so the pass can finish."""
    source = LocalMediaSource(element)
    session = ListeningSession(source, segments=six_second_segments, clock=clock)
    element.paused = False
    _tick(element, source, clock, 30.0)

    session.set_mode(ListeningMode.ACTIVE)
    assert element.paused
    assert element.current_time == 0.0
    assert session.view().playback_position_seconds == 0.0

    assert session.on_play_pause()
    _play_through(element, source, clock, 0, 60)

    view = session.view()
    assert view.completed_passes == frozenset({1})
    assert view.can_advance_to_next_step


def test_rate_and_scrub_changes(element, clock, six_second_segments) -> None:
    """Speed and scrub interval changes reach the player and the view."""
    session, _ = _session(element, clock, six_second_segments)
    assert session.on_rate_change(1.25)
    session.on_scrub_change(10)
    view = session.view()
    assert element.playback_rate == 1.25
    assert view.playback_rate == 1.25
    assert view.scrub_seconds == 10

    session.on_seek(30.0)
    assert session.on_rewind() == 20.0
    assert session.on_restart_chunk() == 0.0
    assert session.on_skip_to_end() == 60.0


def test_set_segments_rebuilds_plan(element, clock, six_second_segments) -> None:
    """Replacing the transcript rebuilds the chunk plan."""
    element.duration = 185.0
    session, _ = _session(element, clock, None)
    assert [c.end - c.start for c in session.chunks] == [60.0, 60.0, 60.0, 5.0]

    session.set_segments(six_second_segments)
    assert [(c.start, c.end) for c in session.chunks] == [
        (0.0, 60.0),
        (60.0, 120.0),
        (120.0, 180.0),
        (180.0, 185.0),
    ]


def test_remote_session_clamps_seeks_in_milliseconds(device, clock, six_second_segments) -> None:
    """A remote device receives clamped seeks and drives the same engine."""
    source = RemoteDeviceSource(device, clock=clock)
    session = ListeningSession(
        source, segments=six_second_segments, mode=ListeningMode.ACTIVE, clock=clock
    )
    device.push(0, 120000, paused=True)
    assert len(session.chunks) == 2

    assert session.on_seek(75.0) == 60.0
    assert device.commands == [("seek", 60000)]

    assert session.start_polling(interval_sec=0.05)
    session.close()
    assert device.commands[-1] == ("seek", 60000)


def test_close_detaches_from_source(element, clock, six_second_segments) -> None:
    """After closing, playback is paused and media events are ignored."""
    session, source = _session(element, clock, six_second_segments)
    session.on_play_pause()
    session.close()
    assert element.paused
    assert not session.start_polling()

    element.current_time = 30.0
    source.handle_event("timeupdate")
    assert session.view().playback_position_seconds == 0.0
