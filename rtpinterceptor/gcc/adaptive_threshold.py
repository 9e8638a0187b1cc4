"""A delay threshold that adapts to the current estimates."""

from __future__ import annotations

import time
from collections.abc import Callable

from .bounds import clamp_duration
from .state import Usage

MAX_DELTAS = 60
_MICROSECOND = 1_000
_MILLISECOND = 1_000_000


def _trunc_div(value: int, unit: int) -> int:
    quotient = abs(value) // unit
    return quotient if value >= 0 else -quotient


class AdaptiveThreshold:
    """Threshold that grows quickly when estimates exceed it and shrinks slowly otherwise.

    Durations are nanoseconds; ``clock`` returns the current time in nanoseconds.
    """

    def __init__(
        self,
        initial_threshold: int = 12_500 * _MICROSECOND,
        *,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        self.threshold = int(initial_threshold)
        self.overuse_coefficient_up = 0.01
        self.overuse_coefficient_down = 0.00018
        self.min = 6 * _MILLISECOND
        self.max = 600 * _MILLISECOND
        self._clock = clock
        self._last_update: int | None = None
        self._num_deltas = 0

    def compare(self, estimate: int, delta: int) -> tuple[Usage, int, int]:
        """Classify ``estimate``; return the usage, the scaled estimate and the threshold used."""
        self._num_deltas += 1
        if self._num_deltas < 2:
            return Usage.NORMAL, estimate, self.max
        scaled = min(self._num_deltas, MAX_DELTAS) * estimate
        usage = Usage.NORMAL
        if scaled > self.threshold:
            usage = Usage.OVER
        elif scaled < -self.threshold:
            usage = Usage.UNDER
        threshold = self.threshold
        self._update(scaled)
        return usage, scaled, threshold

    def _update(self, estimate: int) -> None:
        now = self._clock()
        if self._last_update is None:
            self._last_update = now
        abs_estimate = abs(_trunc_div(estimate, _MICROSECOND)) * _MICROSECOND
        if abs_estimate > self.threshold + 15 * _MILLISECOND:
            self._last_update = now
            return
        k = self.overuse_coefficient_up
        if abs_estimate < self.threshold:
            k = self.overuse_coefficient_down
        elapsed_ms = _trunc_div(now - self._last_update, _MILLISECOND)
        time_delta_ms = min(elapsed_ms, 100)
        d_ms = _trunc_div(abs_estimate - self.threshold, _MILLISECOND)
        add = k * float(d_ms) * float(time_delta_ms)
        self.threshold += int(add) * 1000 * _MICROSECOND
        self.threshold = clamp_duration(self.threshold, self.min, self.max)
        self._last_update = now