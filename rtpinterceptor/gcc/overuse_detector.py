"""Detects link overuse from filtered delay estimates."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Iterator
from typing import Protocol

from .state import DelayStats, Usage


class Threshold(Protocol):
    def compare(self, estimate: int, delta: int) -> tuple[Usage, int, int]:
        """Return usage, possibly scaled estimate and the threshold used."""


class OveruseDetector:
    """Signals overuse only once it has lasted longer than ``overuse_time`` nanoseconds."""

    def __init__(
        self,
        threshold: Threshold,
        overuse_time: int,
        *,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        self.threshold = threshold
        self.overuse_time = overuse_time
        self._clock = clock
        self._last_estimate = 0
        self._last_update = clock()
        self._increasing_duration = 0
        self._increasing_counter = 0

    def update(self, stats: DelayStats) -> DelayStats:
        """Classify one estimate and return statistics carrying the usage."""
        now = self._clock()
        delta = now - self._last_update
        self._last_update = now

        threshold_usage, estimate, current_threshold = self.threshold.compare(
            stats.estimate, stats.last_receive_delta
        )

        usage = Usage.NORMAL
        if threshold_usage == Usage.OVER:
            if self._increasing_duration == 0:
                self._increasing_duration = delta // 2
            else:
                self._increasing_duration += delta
            self._increasing_counter += 1
            if (
                self._increasing_duration > self.overuse_time
                and self._increasing_counter > 1
                and estimate > self._last_estimate
            ):
                usage = Usage.OVER
        elif threshold_usage == Usage.UNDER:
            self._increasing_counter = 0
            self._increasing_duration = 0
            usage = Usage.UNDER
        else:
            self._increasing_duration = 0
            self._increasing_counter = 0
        self._last_estimate = estimate

        return DelayStats(
            measurement=stats.measurement,
            estimate=estimate,
            threshold=current_threshold,
            last_receive_delta=delta,
            usage=usage,
        )

    def run(self, stats: Iterable[DelayStats]) -> Iterator[DelayStats]:
        """Yield classified statistics for each input."""
        for item in stats:
            yield self.update(item)