"""Shared test fixtures for the listening_lab test suite."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


class FakeMediaElement:
    """Minimal stand-in for an HTML audio element."""

    def __init__(self, duration: float = 120.0) -> None:
        self.current_time = 0.0
        self.duration = duration
        self.paused = True
        self.playback_rate = 1.0
        self.fail = False
        self.calls: list[str] = []

    def play(self) -> None:
        self.calls.append("play")
        if self.fail:
            raise RuntimeError("NotAllowedError: play() failed")
        self.paused = False

    def pause(self) -> None:
        self.calls.append("pause")
        if self.fail:
            raise RuntimeError("pause() failed")
        self.paused = True


class FakeRemoteDevice:
    """Remote playback device recording commands in milliseconds."""

    def __init__(self) -> None:
        self.commands: list[tuple[str, int | None]] = []
        self.callback: Callable[[Mapping[str, Any] | None], None] | None = None
        self.snapshot: Mapping[str, Any] | None = None
        self.fail = False

    def _record(self, name: str, value: int | None = None) -> None:
        if self.fail:
            raise ConnectionError(f"{name} rejected by device")
        self.commands.append((name, value))

    def seek(self, position_ms: int) -> None:
        self._record("seek", position_ms)

    def pause(self) -> None:
        self._record("pause")

    def resume(self) -> None:
        self._record("resume")

    def subscribe(
        self, callback: Callable[[Mapping[str, Any] | None], None]
    ) -> Callable[[], None]:
        self.callback = callback

        def unsubscribe() -> None:
            self.callback = None

        return unsubscribe

    def get_state(self) -> Mapping[str, Any] | None:
        return self.snapshot

    def push(self, position_ms: float, duration_ms: float, paused: bool) -> None:
        """Deliver a state change the way the device SDK would."""
        assert self.callback is not None
        self.callback({"position": position_ms, "duration": duration_ms, "paused": paused})


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at zero."""
    return FakeClock()


@pytest.fixture
def element() -> FakeMediaElement:
    """Paused two-minute media element."""
    return FakeMediaElement(duration=120.0)


@pytest.fixture
def device() -> FakeRemoteDevice:
    """Remote device with no state yet."""
    return FakeRemoteDevice()


@pytest.fixture
def six_second_segments() -> list[dict[str, Any]]:
    """Twenty back-to-back six-second segments covering ``[0, 120]``."""
    return [
        {"start": 6.0 * i, "end": 6.0 * (i + 1), "text": f"Sentence {i + 1}."}
        for i in range(20)
    ]
