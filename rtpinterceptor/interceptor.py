"""The interceptor interface and a pass-through implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol

from .attributes import Attributes
from .rtp import Header


class RTPWriter(Protocol):
    def __call__(self, header: Header, payload: bytes, attributes: Attributes | None) -> int:
        """Write one RTP packet; return the number of bytes written."""


class RTPReader(Protocol):
    def __call__(self, buf: bytes, attributes: Attributes | None) -> tuple[int, Attributes | None]:
        """Read one RTP packet from ``buf``; return its length and attributes."""


class RTCPWriter(Protocol):
    def __call__(self, packets: list, attributes: Attributes | None) -> int:
        """Write a batch of RTCP packets; return the number of bytes written."""


class RTCPReader(Protocol):
    def __call__(self, buf: bytes, attributes: Attributes | None) -> tuple[int, Attributes | None]:
        """Read a batch of RTCP packets from ``buf``; return its length and attributes."""


class Interceptor(ABC):
    """Wraps the readers and writers of a connection to inspect or alter packets."""

    @abstractmethod
    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        """Wrap the reader of incoming RTCP batches."""

    @abstractmethod
    def bind_rtcp_writer(self, writer: RTCPWriter) -> RTCPWriter:
        """Wrap the writer of outgoing RTCP batches."""

    @abstractmethod
    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        """Wrap the writer of an outgoing RTP stream."""

    @abstractmethod
    def unbind_local_stream(self, info: Any) -> None:
        """Forget an outgoing stream."""

    @abstractmethod
    def bind_remote_stream(self, info: Any, reader: RTPReader) -> RTPReader:
        """Wrap the reader of an incoming RTP stream."""

    @abstractmethod
    def unbind_remote_stream(self, info: Any) -> None:
        """Forget an incoming stream."""

    @abstractmethod
    def close(self) -> None:
        """Release any resources held."""

    def __enter__(self) -> Interceptor:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class Factory(ABC):
    """Builds interceptors for connections."""

    @abstractmethod
    def new_interceptor(self, interceptor_id: str) -> Interceptor:
        """Create an interceptor for the connection ``interceptor_id``."""


class NoOp(Interceptor):
    """Interceptor that leaves every packet untouched; a base for partial ones."""

    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        return reader

    def bind_rtcp_writer(self, writer: RTCPWriter) -> RTCPWriter:
        return writer

    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        return writer

    def unbind_local_stream(self, info: Any) -> None:
        return None

    def bind_remote_stream(self, info: Any, reader: RTPReader) -> RTPReader:
        return reader

    def unbind_remote_stream(self, info: Any) -> None:
        return None

    def close(self) -> None:
        return None