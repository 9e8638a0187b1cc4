"""Smoothed round-trip time from batches of acknowledgments."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator, Sequence

from ..cc.acknowledgment import Acknowledgment

_MILLISECOND = 1_000_000


def _millis(nanos: int) -> int:
    whole = abs(nanos) // _MILLISECOND
    return whole if nanos >= 0 else -whole


class RTTEstimator:
    """Averages the minimum RTT of the last ``samples`` batches."""

    def __init__(self, samples: int = 100) -> None:
        self.samples = samples
        self._history: deque[int] = deque(maxlen=samples)

    def update(self, acks: Sequence[Acknowledgment]) -> int | None:
        """Add one batch; return the averaged RTT in nanoseconds, or None for an empty batch."""
        if not acks:
            return None
        self._history.append(min(ack.rtt for ack in acks))
        total = sum(self._history)
        return int(float(_millis(total)) / float(len(self._history)) * float(_MILLISECOND))

    def run(self, ack_lists: Iterable[Sequence[Acknowledgment]]) -> Iterator[int]:
        """Yield the averaged RTT after each non-empty batch."""
        for acks in ack_lists:
            rtt = self.update(acks)
            if rtt is not None:
                yield rtt