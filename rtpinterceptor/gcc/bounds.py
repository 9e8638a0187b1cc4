"""Clamping helpers for bitrates and durations."""

from __future__ import annotations


def clamp_int(value: int, lower: int, upper: int) -> int:
    """Limit ``value`` to ``[lower, upper]``."""
    return max(lower, min(upper, value))


def clamp_duration(value: int, lower: int, upper: int) -> int:
    """Limit a duration in nanoseconds to ``[lower, upper]``."""
    return clamp_int(int(value), int(lower), int(upper))