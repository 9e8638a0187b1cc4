"""Received bitrate over a sliding window of acknowledgments."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator

from ..cc.acknowledgment import Acknowledgment

_SECOND = 1_000_000_000


def _seconds(nanos: int) -> float:
    whole, rest = divmod(abs(nanos), _SECOND)
    value = float(whole) + float(rest) / 1e9
    return value if nanos >= 0 else -value


class RateCalculator:
    """Computes bits per second received within ``window`` nanoseconds."""

    def __init__(self, window: int = 500_000_000) -> None:
        self.window = window
        self._history: deque[Acknowledgment] = deque()
        self._sum = 0
        self._started = False

    def update(self, ack: Acknowledgment) -> int | None:
        """Add ``ack``; return the current rate, or None if no rate can be given."""
        if ack.arrival == 0:
            return None  # the packet was not received
        self._history.append(ack)
        self._sum += ack.size

        if not self._started:
            self._started = True
            # Only one arrival is known: report its bits over an unknown span.
            return ack.size * 8

        deadline = ack.arrival - self.window
        while self._history and self._history[0].arrival < deadline:
            self._sum -= self._history.popleft().size
        if not self._history:
            return 0
        elapsed = ack.arrival - self._history[0].arrival
        if elapsed == 0:
            return None  # no elapsed time in the window
        return int(float(8 * self._sum) / _seconds(elapsed))

    def run(self, acks: Iterable[Acknowledgment]) -> Iterator[int]:
        """Yield the rate after each received acknowledgment."""
        for ack in acks:
            rate = self.update(ack)
            if rate is not None:
                yield rate