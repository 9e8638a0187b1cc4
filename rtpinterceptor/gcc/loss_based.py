"""Loss-based bandwidth estimation."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..cc.acknowledgment import Acknowledgment
from .bounds import clamp_int

_MILLISECOND = 1_000_000

INCREASE_LOSS_THRESHOLD = 0.02
INCREASE_TIME_THRESHOLD = 200 * _MILLISECOND
INCREASE_FACTOR = 1.05

DECREASE_LOSS_THRESHOLD = 0.1
DECREASE_TIME_THRESHOLD = 200 * _MILLISECOND

_log = logging.getLogger(__name__)


def _millis(nanos: float) -> float:
    if math.isinf(nanos):
        return nanos
    whole = abs(int(nanos)) // _MILLISECOND
    return float(whole if nanos >= 0 else -whole)


@dataclass(frozen=True)
class LossStats:
    """Statistics of the loss-based controller."""

    target_bitrate: int = 0
    average_loss: float = 0.0


class LossBasedBandwidthEstimator:
    """Raises the bitrate while loss is low and lowers it when loss is high.

    ``clock`` returns the current time in nanoseconds.
    """

    def __init__(
        self, initial_bitrate: int, *, clock: Callable[[], int] = time.monotonic_ns
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self.max_bitrate = 100_000_000
        self.min_bitrate = 100_000
        self.bitrate = initial_bitrate
        self.average_loss = 0.0
        self._last_loss_update: int | None = None
        self._last_increase: int | None = None
        self._last_decrease: int | None = None

    def _since(self, moment: int | None) -> float:
        return math.inf if moment is None else float(self._clock() - moment)

    def get_estimate(self, wanted_rate: int) -> LossStats:
        """Current estimate, never above ``wanted_rate``."""
        with self._lock:
            if self.bitrate <= 0:
                self.bitrate = clamp_int(wanted_rate, self.min_bitrate, self.max_bitrate)
            self.bitrate = min(wanted_rate, self.bitrate)
            return LossStats(target_bitrate=self.bitrate, average_loss=self.average_loss)

    def update_loss_estimate(self, results: Sequence[Acknowledgment]) -> None:
        """Update the loss average and bitrate from a batch of acknowledgments."""
        if not results:
            return
        lost = sum(1 for ack in results if ack.arrival == 0)

        with self._lock:
            loss_ratio = lost / len(results)
            self.average_loss = self._average(
                self._since(self._last_loss_update), self.average_loss, loss_ratio
            )
            self._last_loss_update = self._clock()

            increase_loss = max(self.average_loss, loss_ratio)
            decrease_loss = min(self.average_loss, loss_ratio)

            if (
                increase_loss < INCREASE_LOSS_THRESHOLD
                and self._since(self._last_increase) > INCREASE_TIME_THRESHOLD
            ):
                _log.info(
                    "loss controller increasing; averageLoss: %s, decreaseLoss: %s, increaseLoss: %s",
                    self.average_loss,
                    decrease_loss,
                    increase_loss,
                )
                self._last_increase = self._clock()
                self.bitrate = clamp_int(
                    int(INCREASE_FACTOR * self.bitrate), self.min_bitrate, self.max_bitrate
                )
            elif (
                decrease_loss > DECREASE_LOSS_THRESHOLD
                and self._since(self._last_decrease) > DECREASE_TIME_THRESHOLD
            ):
                _log.info(
                    "loss controller decreasing; averageLoss: %s, decreaseLoss: %s, increaseLoss: %s",
                    self.average_loss,
                    decrease_loss,
                    increase_loss,
                )
                self._last_decrease = self._clock()
                self.bitrate = clamp_int(
                    int(self.bitrate * (1 - 0.5 * decrease_loss)),
                    self.min_bitrate,
                    self.max_bitrate,
                )

    @staticmethod
    def _average(delta: float, prev: float, sample: float) -> float:
        return sample + math.exp(-_millis(delta) / 200.0) * (prev - sample)