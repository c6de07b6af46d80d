"""Playback sources, remote state polling and transport controls."""

from .control import Bounds, PlaybackControlSurface
from .poller import StatePoller
from .sources import (
    MEDIA_EVENTS,
    LocalMediaSource,
    MediaElement,
    PlaybackCommandError,
    PlaybackSource,
    PlaybackState,
    RemoteDevice,
    RemoteDeviceSource,
    StateListener,
)

__all__ = [
    "Bounds",
    "PlaybackControlSurface",
    "StatePoller",
    "MEDIA_EVENTS",
    "LocalMediaSource",
    "MediaElement",
    "PlaybackCommandError",
    "PlaybackSource",
    "PlaybackState",
    "RemoteDevice",
    "RemoteDeviceSource",
    "StateListener",
]
