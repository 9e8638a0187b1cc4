import pytest

from rtpinterceptor.attributes import (
    RTCP_PACKETS_KEY,
    RTP_HEADER_KEY,
    Attributes,
    InvalidAttributeTypeError,
)
from rtpinterceptor.rtcp import RTCPError, SenderReport, TransportLayerCC
from rtpinterceptor.rtp import Header, Packet, RTPError


def test_rtp_header_nil_raises():
    with pytest.raises(RTPError):
        Attributes().get_rtp_header(None)


def test_rtp_header_present():
    header = Header()
    attributes = Attributes({RTP_HEADER_KEY: header})
    assert attributes.get_rtp_header(None) is header


def test_rtp_header_not_present():
    attributes = Attributes()
    header = Header()
    decoded = attributes.get_rtp_header(header.marshal())
    assert decoded == header
    assert attributes[RTP_HEADER_KEY] is decoded


def test_rtp_header_from_full_packet():
    packet = Packet(header=Header(), payload=bytes(1000))
    assert Attributes().get_rtp_header(packet.marshal()) == packet.header


def test_rtp_header_invalid_type():
    with pytest.raises(InvalidAttributeTypeError):
        Attributes({RTP_HEADER_KEY: "bogus"}).get_rtp_header(None)


def test_rtcp_nil_raises():
    with pytest.raises(RTCPError):
        Attributes().get_rtcp_packets(None)


def test_rtcp_present():
    packets = [TransportLayerCC()]
    attributes = Attributes({RTCP_PACKETS_KEY: packets})
    assert attributes.get_rtcp_packets(None) is packets


def test_rtcp_not_present():
    report = SenderReport()
    assert Attributes().get_rtcp_packets(report.marshal()) == [report]


def test_rtcp_invalid_type():
    with pytest.raises(InvalidAttributeTypeError):
        Attributes({RTCP_PACKETS_KEY: 5}).get_rtcp_packets(None)