"""Delay-based rate controller: turns usage signals into a target bitrate."""

from __future__ import annotations

import dataclasses
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from .bounds import clamp_int
from .state import DelayStats, State

DECREASE_EMA_ALPHA = 0.95
BETA = 0.85

_MILLISECOND = 1_000_000


def _millis(nanos: int) -> int:
    """Whole milliseconds in ``nanos``, truncated toward zero."""
    whole = abs(nanos) // _MILLISECOND
    return whole if nanos >= 0 else -whole


@dataclass
class ExponentialMovingAverage:
    """Moving average and deviation of the received rate at past decreases."""

    average: float = 0.0
    variance: float = 0.0
    std_deviation: float = 0.0

    def update(self, value: float) -> None:
        """Fold ``value`` into the average, variance and standard deviation."""
        if self.average == 0.0:
            self.average = value
            return
        x = value - self.average
        self.average += DECREASE_EMA_ALPHA * x
        self.variance = (1 - DECREASE_EMA_ALPHA) * (self.variance + DECREASE_EMA_ALPHA * x * x)
        self.std_deviation = math.sqrt(self.variance)


class RateController:
    """Adjusts the target bitrate from delay statistics, received rate and RTT.

    ``now`` gives the time recorded at start-up and at each decrease; ``clock``
    gives the time used for increases. Both return nanoseconds.
    """

    def __init__(
        self,
        now: Callable[[], int],
        initial_target_bitrate: int,
        min_bitrate: int,
        max_bitrate: int,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._now = now
        self._clock = clock if clock is not None else time.time_ns
        self.initial_target_bitrate = initial_target_bitrate
        self.min_bitrate = min_bitrate
        self.max_bitrate = max_bitrate
        self.target = initial_target_bitrate
        self.last_update = now()
        self.latest_rtt = 0
        self.latest_received_rate = 0
        self.latest_decrease_rate = ExponentialMovingAverage()
        self._started = False

    def on_received_rate(self, rate: int) -> None:
        """Record the latest received bitrate."""
        self.latest_received_rate = rate

    def on_rtt(self, rtt: int) -> None:
        """Record the latest round-trip time in nanoseconds."""
        self.latest_rtt = rtt

    def on_delay_stats(self, stats: DelayStats) -> DelayStats | None:
        """Process one set of statistics; return updated statistics when the target moves.

        The first statistics only initialise the controller; a hold state yields None.
        """
        if not self._started:
            self._started = True
            return None

        state = stats.state.transition(stats.usage)
        now = self._clock()
        if state == State.HOLD:
            return None
        if state == State.INCREASE:
            self.target = clamp_int(self.increase(now), self.min_bitrate, self.max_bitrate)
        else:
            self.target = clamp_int(self.decrease(), self.min_bitrate, self.max_bitrate)
        return dataclasses.replace(
            stats, state=state, target_bitrate=self.target, rtt=self.latest_rtt
        )

    def increase(self, now: int) -> int:
        """Bitrate after an increase at time ``now`` (nanoseconds)."""
        ema = self.latest_decrease_rate
        received = float(self.latest_received_rate)
        if (
            ema.average > 0
            and received > ema.average - 3 * ema.std_deviation
            and received < ema.average + 3 * ema.std_deviation
        ):
            bits_per_frame = float(self.target) / 30.0
            packets_per_frame = math.ceil(bits_per_frame / (1200 * 8))
            expected_packet_size_bits = (
                bits_per_frame / packets_per_frame if packets_per_frame else 0.0
            )
            response_time = 100 * _MILLISECOND + self.latest_rtt
            alpha = 0.5 * min(
                float(_millis(now - self.last_update)) / float(_millis(response_time)), 1.0
            )
            increase = int(max(1000.0, alpha * expected_packet_size_bits))
            self.last_update = now
            return int(min(float(self.target + increase), 1.5 * received))

        eta = math.pow(1.08, min(float(_millis(now - self.last_update)) / 1000, 1.0))
        self.last_update = now

        rate = int(eta * float(self.target))
        # never more than 1.5 times the received rate
        capped = int(1.5 * received)
        if rate > capped > self.target:
            return capped
        if rate < self.target:
            return self.target
        return rate

    def decrease(self) -> int:
        """Bitrate after a decrease, based on the latest received rate."""
        target = int(BETA * float(self.latest_received_rate))
        self.latest_decrease_rate.update(float(self.latest_received_rate))
        self.last_update = self._now()
        return target