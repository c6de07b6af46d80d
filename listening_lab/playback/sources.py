"""Playback sources behind a single capability interface.

The engine never talks to a concrete player. It receives a
:class:`PlaybackSource` and works identically with both implementations:

* :class:`LocalMediaSource` wraps a media-element-like object whose state is
  read directly (``current_time``, ``duration``, ``paused``,
  ``playback_rate``). The host forwards native media events through
  :meth:`LocalMediaSource.handle_event`; every event is applied.
* :class:`RemoteDeviceSource` wraps a remote playback device (Spotify-style)
  that takes asynchronous ``seek(ms)``/``pause()``/``resume()`` commands and
  reports ``{position, duration, paused}`` snapshots in milliseconds, pushed
  through a subscription and/or pulled by :meth:`RemoteDeviceSource.poll`.
  Applied snapshots are rate-limited.

Command failures surface as :class:`PlaybackCommandError`.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable

from listening_lab.utils.constant import REMOTE_MIN_UPDATE_INTERVAL_SEC

logger = logging.getLogger(__name__)

__all__ = [
    "MEDIA_EVENTS",
    "PlaybackCommandError",
    "PlaybackState",
    "StateListener",
    "PlaybackSource",
    "MediaElement",
    "RemoteDevice",
    "LocalMediaSource",
    "RemoteDeviceSource",
]

MEDIA_EVENTS: frozenset[str] = frozenset({
    "play",
    "pause",
    "ended",
    "timeupdate",
    "seeked",
    "loadedmetadata",
    "durationchange",
    "ratechange",
})


class PlaybackCommandError(RuntimeError):
    """Raised when the underlying player rejects a command."""


@dataclass(frozen=True)
class PlaybackState:
    """Transient snapshot of the active player.

    Attributes:
        position_seconds: Current playhead position.
        duration_seconds: Total duration; 0 while unknown.
        is_playing: Whether audio is playing.
        rate: Playback rate.
    """

    position_seconds: float = 0.0
    duration_seconds: float = 0.0
    is_playing: bool = False
    rate: float = 1.0


StateListener = Callable[[PlaybackState], None]


@runtime_checkable
class PlaybackSource(Protocol):
    """Capability interface the engine drives playback through."""

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def set_rate(self, rate: float) -> None: ...

    def get_state(self) -> PlaybackState: ...

    def subscribe(self, listener: StateListener) -> Callable[[], None]: ...


class MediaElement(Protocol):
    """Subset of an HTML media element used by :class:`LocalMediaSource`."""

    current_time: float
    duration: float
    paused: bool
    playback_rate: float

    def play(self) -> Any: ...

    def pause(self) -> Any: ...


class RemoteDevice(Protocol):
    """Remote playback device (positions in milliseconds)."""

    def seek(self, position_ms: int) -> Any: ...

    def pause(self) -> Any: ...

    def resume(self) -> Any: ...

    def subscribe(self, callback: Callable[[Mapping[str, Any] | None], None]) -> Callable[[], None]: ...


def _finite(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _run_command(name: str, func: Callable[..., Any], *args: Any) -> None:
    try:
        func(*args)
    except PlaybackCommandError:
        raise
    except Exception as exc:
        raise PlaybackCommandError(f"{name} failed: {exc}") from exc


class _ListenerRegistry:
    """Fan-out of state snapshots to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[StateListener] = []
        self._listeners_lock = threading.Lock()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: PlaybackState) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Playback state listener failed")


class LocalMediaSource(_ListenerRegistry):
    """Playback source backed by a local media element.

    Args:
        element: Media-element-like object.

    Examples:
        >>> source = LocalMediaSource(element)
        >>> unsubscribe = source.subscribe(print)
        >>> source.handle_event("timeupdate")  # called by the host per native event
    """

    def __init__(self, element: MediaElement) -> None:
        super().__init__()
        self._element = element

    def play(self) -> None:
        _run_command("play", self._element.play)

    def pause(self) -> None:
        _run_command("pause", self._element.pause)

    def seek(self, seconds: float) -> None:
        _run_command("seek", setattr, self._element, "current_time", seconds)

    def set_rate(self, rate: float) -> None:
        _run_command("set_rate", setattr, self._element, "playback_rate", rate)

    def get_state(self) -> PlaybackState:
        element = self._element
        return PlaybackState(
            position_seconds=_finite(element.current_time),
            duration_seconds=_finite(element.duration),
            is_playing=not element.paused,
            rate=_finite(element.playback_rate, 1.0),
        )

    def handle_event(self, name: str) -> bool:
        """Forward a native media event; returns False for unknown events."""
        if name not in MEDIA_EVENTS:
            logger.debug(f"Ignoring media event '{name}'")
            return False
        self._notify(self.get_state())
        return True


class RemoteDeviceSource(_ListenerRegistry):
    """Playback source backed by a remote device.

    Device snapshots are applied at most once per ``min_update_interval``
    seconds, except when the paused flag or the duration changes. Commands
    update the cached snapshot optimistically because the device confirms
    them asynchronously.

    Args:
        device: Remote device client.
        min_update_interval: Minimum seconds between applied snapshots.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        device: RemoteDevice,
        *,
        min_update_interval: float = REMOTE_MIN_UPDATE_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self._device = device
        self._min_update_interval = min_update_interval
        self._clock = clock
        self._state = PlaybackState()
        self._last_applied: float | None = None
        self._device_unsubscribe: Callable[[], None] | None = device.subscribe(
            self.handle_device_state
        )

    def play(self) -> None:
        _run_command("resume", self._device.resume)
        self._state = replace(self._state, is_playing=True)

    def pause(self) -> None:
        _run_command("pause", self._device.pause)
        self._state = replace(self._state, is_playing=False)

    def seek(self, seconds: float) -> None:
        _run_command("seek", self._device.seek, int(round(seconds * 1000)))
        self._state = replace(self._state, position_seconds=seconds)

    def set_rate(self, rate: float) -> None:
        # Remote devices have no rate control; keep the value for the view.
        logger.debug(f"Remote device ignores playback rate {rate}")
        self._state = replace(self._state, rate=rate)

    def get_state(self) -> PlaybackState:
        return self._state

    def handle_device_state(self, raw: Mapping[str, Any] | None) -> bool:
        """Apply a device snapshot ``{position, duration, paused}`` (milliseconds).

        Args:
            raw: Snapshot pushed or polled from the device; ``None`` means the
                device has nothing to report.

        Returns:
            bool: True when the snapshot was applied and listeners notified.
        """
        if not raw:
            return False
        incoming = PlaybackState(
            position_seconds=_finite(raw.get("position")) / 1000,
            duration_seconds=_finite(raw.get("duration")) / 1000,
            is_playing=not bool(raw.get("paused", True)),
            rate=self._state.rate,
        )
        now = self._clock()
        flag_changed = (
            incoming.is_playing != self._state.is_playing
            or incoming.duration_seconds != self._state.duration_seconds
        )
        if (
            not flag_changed
            and self._last_applied is not None
            and now - self._last_applied < self._min_update_interval
        ):
            return False
        self._last_applied = now
        self._state = incoming
        self._notify(incoming)
        return True

    def poll(self) -> bool:
        """Pull a snapshot from devices that support ``get_state()``.

        Raises:
            PlaybackCommandError: If the device fails to report its state.
        """
        get_state = getattr(self._device, "get_state", None)
        if get_state is None:
            return False
        try:
            raw = get_state()
        except Exception as exc:
            raise PlaybackCommandError(f"get_state failed: {exc}") from exc
        return self.handle_device_state(raw)

    def close(self) -> None:
        """Stop receiving device snapshots."""
        if self._device_unsubscribe is not None:
            self._device_unsubscribe()
            self._device_unsubscribe = None
