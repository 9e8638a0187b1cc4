"""Delay-based bandwidth estimation pipeline."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable

from ..cc.acknowledgment import Acknowledgment
from .adaptive_threshold import AdaptiveThreshold
from .arrival_group import ArrivalGroupAccumulator
from .kalman import Kalman
from .overuse_detector import OveruseDetector
from .rate_calculator import RateCalculator
from .rate_controller import RateController
from .rtt_estimator import RTTEstimator
from .slope_estimator import SlopeEstimator
from .state import DelayStats

_MILLISECOND = 1_000_000


class DelayController:
    """Feeds acknowledgments through grouping, filtering, detection and rate control.

    ``now`` returns the current time in nanoseconds.
    """

    def __init__(
        self,
        *,
        initial_bitrate: int,
        min_bitrate: int,
        max_bitrate: int,
        now: Callable[[], int] = time.time_ns,
    ) -> None:
        self._lock = threading.Lock()
        self._rate_calculator = RateCalculator(500 * _MILLISECOND)
        self._rtt_estimator = RTTEstimator()
        self._accumulator = ArrivalGroupAccumulator()
        self._slope_estimator = SlopeEstimator(Kalman().update_estimate)
        self._overuse_detector = OveruseDetector(AdaptiveThreshold(), 10 * _MILLISECOND)
        self._rate_controller = RateController(
            now, initial_bitrate, min_bitrate, max_bitrate, clock=now
        )
        self._callback: Callable[[DelayStats], None] | None = None
        self._closed = False

    def on_update(self, callback: Callable[[DelayStats], None] | None) -> None:
        """Set the function called with each new set of statistics."""
        self._callback = callback

    def update_delay_estimate(self, acks: Iterable[Acknowledgment]) -> None:
        """Process one batch of acknowledgments."""
        batch = list(acks)
        updates: list[DelayStats] = []
        with self._lock:
            if self._closed:
                raise RuntimeError("delay controller is closed")
            for ack in batch:
                rate = self._rate_calculator.update(ack)
                if rate is not None:
                    self._rate_controller.on_received_rate(rate)
                group = self._accumulator.push(ack)
                if group is None:
                    continue
                stats = self._slope_estimator.update(group)
                if stats is None:
                    continue
                stats = self._overuse_detector.update(stats)
                result = self._rate_controller.on_delay_stats(stats)
                if result is not None:
                    updates.append(result)
            rtt = self._rtt_estimator.update(batch)
            if rtt is not None:
                self._rate_controller.on_rtt(rtt)

        callback = self._callback
        if callback is not None:
            for stats in updates:
                callback(stats)

    def close(self) -> None:
        """Stop accepting acknowledgments."""
        with self._lock:
            self._closed = True