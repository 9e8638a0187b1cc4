"""Packet pacers that send RTP packets on behalf of registered streams."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from ..attributes import Attributes
from ..interceptor import RTPWriter
from ..rtp import Header

_MILLISECOND = 1_000_000

_log = logging.getLogger(__name__)


def _millis(nanos: int) -> int:
    whole = abs(nanos) // _MILLISECOND
    return whole if nanos >= 0 else -whole


class UnknownStreamError(LookupError):
    """A packet was sent for an SSRC that was never registered."""

    def __init__(self, ssrc: int) -> None:
        super().__init__(f"unknown ssrc: {ssrc}")
        self.ssrc = ssrc


class Pacer(ABC):
    """Writes RTP packets of registered streams at a controlled rate."""

    @abstractmethod
    def add_stream(self, ssrc: int, writer: RTPWriter) -> None:
        """Register the writer for packets of ``ssrc``."""

    @abstractmethod
    def set_target_bitrate(self, rate: int) -> None:
        """Set the bitrate, in bits per second, to pace at."""

    @abstractmethod
    def __call__(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        """Accept one packet for sending; return its size in bytes."""

    @abstractmethod
    def close(self) -> None:
        """Stop pacing."""

    def __enter__(self) -> Pacer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class NoOpPacer(Pacer):
    """Sends every packet straight away."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._writers: dict[int, RTPWriter] = {}

    def add_stream(self, ssrc: int, writer: RTPWriter) -> None:
        with self._lock:
            self._writers[ssrc] = writer

    def set_target_bitrate(self, rate: int) -> None:
        """Ignored: packets are never delayed."""

    def __call__(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        with self._lock:
            writer = self._writers.get(header.ssrc)
        if writer is None:
            raise UnknownStreamError(header.ssrc)
        return writer(header, payload, attributes)

    def close(self) -> None:
        return None


@dataclass(frozen=True)
class _Item:
    header: Header
    payload: bytes
    attributes: Attributes | None


class LeakyBucketPacer(Pacer):
    """Queues packets and sends them each interval within a byte budget.

    The pacer may exceed the target bitrate by a factor of 1.5. Times are in
    nanoseconds; ``clock`` returns the current time.
    """

    def __init__(
        self,
        initial_bitrate: int,
        *,
        pacing_interval: int = 5 * _MILLISECOND,
        clock: Callable[[], int] = time.monotonic_ns,
        autostart: bool = True,
    ) -> None:
        self.factor = 1.5
        self.pacing_interval = pacing_interval
        self._clock = clock
        self._target_bitrate = initial_bitrate
        self._bitrate_lock = threading.Lock()
        self._queue: deque[_Item] = deque()
        self._queue_lock = threading.Lock()
        self._writers: dict[int, RTPWriter] = {}
        self._writer_lock = threading.Lock()
        self._done = threading.Event()
        self._last_sent = clock()
        self._thread: threading.Thread | None = None
        if autostart:
            self._thread = threading.Thread(target=self.run, name="leaky-bucket-pacer", daemon=True)
            self._thread.start()

    def add_stream(self, ssrc: int, writer: RTPWriter) -> None:
        with self._writer_lock:
            self._writers[ssrc] = writer

    def set_target_bitrate(self, rate: int) -> None:
        with self._bitrate_lock:
            self._target_bitrate = int(self.factor * rate)

    @property
    def target_bitrate(self) -> int:
        """Bitrate currently paced at, in bits per second."""
        with self._bitrate_lock:
            return self._target_bitrate

    def __call__(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        item = _Item(header.clone(), bytes(payload), attributes)
        with self._queue_lock:
            self._queue.append(item)
        return header.marshal_size() + len(payload)

    def tick(self, now: int) -> None:
        """Send queued packets allowed by the budget accumulated up to ``now``."""
        budget = int(float(_millis(now - self._last_sent)) * float(self.target_bitrate) / 8000.0)
        while budget > 0:
            with self._queue_lock:
                if not self._queue:
                    return
                _log.debug(
                    "budget=%s, len(queue)=%s, targetBitrate=%s",
                    budget,
                    len(self._queue),
                    self.target_bitrate,
                )
                item = self._queue.popleft()
            with self._writer_lock:
                writer = self._writers.get(item.header.ssrc)
            if writer is None:
                _log.warning("no writer found for ssrc: %s", item.header.ssrc)
                continue
            try:
                written = writer(item.header, item.payload, item.attributes)
            except Exception:  # noqa: BLE001 - a failing stream must not stop the pacer
                _log.exception("failed to write packet")
                written = 0
            self._last_sent = now
            budget -= written

    def run(self) -> None:
        """Tick every pacing interval until closed."""
        while not self._done.wait(self.pacing_interval / 1e9):
            self.tick(self._clock())

    def close(self) -> None:
        self._done.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()