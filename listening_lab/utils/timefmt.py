"""Clock-style formatting of playback positions."""

from __future__ import annotations

import math

__all__ = ["format_clock", "format_label"]


def format_clock(seconds: float | None) -> str:
    """Format seconds as ``m:ss`` for transport read-outs.

    Non-finite or missing values render as ``0:00``; negatives clamp to zero.
    """
    if seconds is None or not math.isfinite(seconds):
        return "0:00"
    floored = max(0, math.floor(seconds))
    return f"{floored // 60}:{floored % 60:02d}"


def format_label(seconds: float) -> str:
    """Format seconds as zero-padded ``MM:SS`` for chunk range labels."""
    if not math.isfinite(seconds):
        return "00:00"
    floored = max(0, math.floor(seconds))
    return f"{floored // 60:02d}:{floored % 60:02d}"
