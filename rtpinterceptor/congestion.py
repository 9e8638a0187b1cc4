"""Interceptor that hands outgoing streams and feedback to a bandwidth estimator."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from .attributes import Attributes
from .gcc.send_side_bwe import TRANSPORT_CC_URI, SendSideBWE
from .interceptor import Factory, NoOp, RTCPReader, RTPWriter

_log = logging.getLogger("cc_interceptor")


class BandwidthEstimator(ABC):
    """Estimates available bandwidth from outgoing packets and RTCP feedback."""

    @abstractmethod
    def add_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        """Register an outgoing stream and return the writer to use for it."""

    @abstractmethod
    def write_rtcp(self, packets: Iterable[Any], attributes: Attributes | None) -> None:
        """Feed a batch of RTCP packets."""

    @property
    @abstractmethod
    def target_bitrate(self) -> int:
        """Current target bitrate in bits per second."""

    @abstractmethod
    def on_target_bitrate_change(self, callback: Callable[[int], None] | None) -> None:
        """Set the function called when the target bitrate changes."""

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Internal statistics."""

    @abstractmethod
    def close(self) -> None:
        """Release the estimator's resources."""


BandwidthEstimator.register(SendSideBWE)

Option = Callable[["CongestionControlInterceptor"], None]
NewPeerConnectionCallback = Callable[[str, BandwidthEstimator], None]


class CongestionControlInterceptor(NoOp):
    """Passes RTCP feedback and TWCC-enabled local streams to its estimator."""

    def __init__(self, estimator: BandwidthEstimator) -> None:
        self.estimator = estimator
        self.log = _log

    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        def read(buf: bytes, attributes: Attributes | None) -> tuple[int, Attributes]:
            n, attrs = reader(buf, attributes)
            data = bytes(buf[:n])
            if attrs is None:
                attrs = Attributes()
            packets = attrs.get_rtcp_packets(data)
            self.estimator.write_rtcp(packets, attrs)
            return n, attrs

        return read

    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        ext_id = 0
        for ext in info.rtp_header_extensions:
            if ext.uri == TRANSPORT_CC_URI:
                ext_id = ext.id & 0xFF
                break
        if ext_id == 0:
            # 0 is not a valid extension id: the stream does not use TWCC.
            return writer
        return self.estimator.add_stream(info, writer)

    def close(self) -> None:
        """Close the bandwidth estimator."""
        self.estimator.close()


class InterceptorFactory(Factory):
    """Creates congestion control interceptors, each with its own estimator."""

    def __init__(
        self,
        factory: Callable[[], BandwidthEstimator] | None = None,
        *options: Option,
    ) -> None:
        self._estimator_factory: Callable[[], BandwidthEstimator] = (
            factory if factory is not None else SendSideBWE
        )
        self._options = list(options)
        self._on_new_peer_connection: NewPeerConnectionCallback | None = None

    def on_new_peer_connection(self, callback: NewPeerConnectionCallback | None) -> None:
        """Set the function told about each new interceptor's estimator."""
        self._on_new_peer_connection = callback

    def new_interceptor(self, interceptor_id: str) -> CongestionControlInterceptor:
        estimator = self._estimator_factory()
        interceptor = CongestionControlInterceptor(estimator)
        for option in self._options:
            option(interceptor)
        callback = self._on_new_peer_connection
        if callback is not None:
            callback(interceptor_id, interceptor.estimator)
        return interceptor