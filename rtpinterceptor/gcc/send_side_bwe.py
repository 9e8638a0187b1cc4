"""Send-side bandwidth estimation combining loss- and delay-based control."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from ..attributes import Attributes
from ..cc.feedback_adapter import TWCC_EXTENSION_ATTRIBUTES_KEY, FeedbackAdapter
from ..interceptor import RTPWriter
from ..rtcp import TransportLayerCC
from ..rtp import Header
from .delay_controller import DelayController
from .loss_based import LossBasedBandwidthEstimator, LossStats
from .pacer import LeakyBucketPacer, Pacer
from .state import DelayStats

TRANSPORT_CC_URI = "http://www.ietf.org/id/draft-holmer-rmcat-transport-wide-cc-extensions-01"
LATEST_BITRATE = 10_000
MIN_BITRATE = 5_000
MAX_BITRATE = 50_000_000


def _to_millis(nanos: int) -> float:
    """Whole microseconds in ``nanos`` expressed as milliseconds."""
    micros = abs(nanos) // 1_000
    return float(micros if nanos >= 0 else -micros) / 1000.0


@dataclass
class Stats:
    """Latest statistics of both controllers."""

    loss: LossStats = field(default_factory=LossStats)
    delay: DelayStats = field(default_factory=DelayStats)


class SendSideBWE:
    """Bandwidth estimator fed by transport-wide congestion control feedback.

    ``clock`` returns the current time in nanoseconds.
    """

    def __init__(
        self,
        *,
        initial_bitrate: int = LATEST_BITRATE,
        max_bitrate: int = MAX_BITRATE,
        pacer: Pacer | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._latest_bitrate = initial_bitrate
        self.min_bitrate = MIN_BITRATE
        self.max_bitrate = max_bitrate
        self._latest_stats = Stats()
        self._on_target_bitrate_change: Callable[[int], None] | None = None
        self._feedback_adapter = FeedbackAdapter()
        self._pacer: Pacer = pacer if pacer is not None else LeakyBucketPacer(initial_bitrate)
        self._loss_controller = LossBasedBandwidthEstimator(initial_bitrate, clock=clock)
        self._delay_controller = DelayController(
            initial_bitrate=initial_bitrate,
            min_bitrate=self.min_bitrate,
            max_bitrate=self.max_bitrate,
            now=clock,
        )
        self._delay_controller.on_update(self._on_delay_update)

    def add_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        """Register a stream with the pacer and return the pacer as its writer."""
        ext_id = 0
        for ext in info.rtp_header_extensions:
            if ext.uri == TRANSPORT_CC_URI:
                ext_id = ext.id & 0xFF
                break

        def send(header: Header, payload: bytes, attributes: Attributes | None) -> int:
            if ext_id != 0:
                if attributes is None:
                    attributes = Attributes()
                attributes[TWCC_EXTENSION_ATTRIBUTES_KEY] = ext_id
            self._feedback_adapter.on_sent(self._clock(), header, len(payload), attributes)
            return writer(header, payload, attributes)

        self._pacer.add_stream(info.ssrc, send)
        return self._pacer

    def write_rtcp(self, packets: Iterable[Any], attributes: Attributes | None) -> None:
        """Feed RTCP packets; transport-cc feedback updates both controllers."""
        for packet in packets:
            if isinstance(packet, TransportLayerCC):
                acks = self._feedback_adapter.on_transport_cc_feedback(self._clock(), packet)
                self._loss_controller.update_loss_estimate(acks)
                self._delay_controller.update_delay_estimate(acks)

    @property
    def target_bitrate(self) -> int:
        """Current target bitrate in bits per second."""
        with self._lock:
            return self._latest_bitrate

    def stats(self) -> dict[str, Any]:
        """Internal statistics of the estimator; durations in milliseconds."""
        with self._lock:
            loss, delay = self._latest_stats.loss, self._latest_stats.delay
            return {
                "lossTargetBitrate": loss.target_bitrate,
                "averageLoss": loss.average_loss,
                "delayTargetBitrate": delay.target_bitrate,
                "delayMeasurement": _to_millis(delay.measurement),
                "delayEstimate": _to_millis(delay.estimate),
                "delayThreshold": _to_millis(delay.threshold),
                "rtt": _to_millis(delay.rtt),
                "usage": str(delay.usage),
                "state": str(delay.state),
            }

    def on_target_bitrate_change(self, callback: Callable[[int], None] | None) -> None:
        """Set the function called with the new target bitrate when it changes."""
        self._on_target_bitrate_change = callback

    def close(self) -> None:
        """Stop the delay controller and the pacer."""
        self._delay_controller.close()
        self._pacer.close()

    def __enter__(self) -> SendSideBWE:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _on_delay_update(self, delay_stats: DelayStats) -> None:
        with self._lock:
            loss_stats = self._loss_controller.get_estimate(delay_stats.target_bitrate)
            bitrate = min(delay_stats.target_bitrate, loss_stats.target_bitrate)
            changed = bitrate != self._latest_bitrate
            if changed:
                self._latest_bitrate = bitrate
                self._pacer.set_target_bitrate(bitrate)
            self._latest_stats = Stats(loss=loss_stats, delay=delay_stats)

        callback = self._on_target_bitrate_change
        if changed and callback is not None:
            callback(bitrate)