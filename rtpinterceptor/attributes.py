"""Per-packet key/value store shared between interceptors."""

from __future__ import annotations

from enum import Enum

from . import rtcp
from .rtp import Header


class _AttributeKey(Enum):
    RTP_HEADER = "rtp_header"
    RTCP_PACKETS = "rtcp_packets"


RTP_HEADER_KEY = _AttributeKey.RTP_HEADER
RTCP_PACKETS_KEY = _AttributeKey.RTCP_PACKETS


class InvalidAttributeTypeError(TypeError):
    """An attribute holds a value of an unexpected type."""

    def __init__(self) -> None:
        super().__init__("found value of invalid type in attributes map")


class Attributes(dict):
    """A dictionary that also caches decoded RTP headers and RTCP packets."""

    def get_rtp_header(self, raw: bytes | None) -> Header:
        """Return the cached header, decoding and caching it from ``raw`` if absent."""
        if RTP_HEADER_KEY in self:
            value = self[RTP_HEADER_KEY]
            if not isinstance(value, Header):
                raise InvalidAttributeTypeError()
            return value
        header = Header.unmarshal(raw or b"")
        self[RTP_HEADER_KEY] = header
        return header

    def get_rtcp_packets(self, raw: bytes | None) -> list:
        """Return the cached RTCP packets, decoding and caching them from ``raw`` if absent."""
        if RTCP_PACKETS_KEY in self:
            value = self[RTCP_PACKETS_KEY]
            if not isinstance(value, list):
                raise InvalidAttributeTypeError()
            return value
        packets = rtcp.unmarshal(raw)
        self[RTCP_PACKETS_KEY] = packets
        return packets