import pytest

from rtpinterceptor import rtcp
from rtpinterceptor.rtcp import (
    PACKET_NOT_RECEIVED,
    PACKET_RECEIVED_LARGE_DELTA,
    PACKET_RECEIVED_SMALL_DELTA,
    SYMBOL_SIZE_ONE_BIT,
    SYMBOL_SIZE_TWO_BIT,
    RawPacket,
    ReceptionReport,
    RecvDelta,
    RTCPError,
    RunLengthChunk,
    SenderReport,
    StatusVectorChunk,
    TransportLayerCC,
)


def _feedback():
    return TransportLayerCC(
        sender_ssrc=1,
        media_ssrc=2,
        base_sequence_number=10,
        packet_status_count=9,
        reference_time=278,
        fb_pkt_count=3,
        packet_chunks=[
            RunLengthChunk(PACKET_RECEIVED_SMALL_DELTA, 2),
            StatusVectorChunk(SYMBOL_SIZE_TWO_BIT, [
                PACKET_RECEIVED_LARGE_DELTA, PACKET_NOT_RECEIVED, PACKET_RECEIVED_SMALL_DELTA,
                PACKET_NOT_RECEIVED, PACKET_NOT_RECEIVED, PACKET_NOT_RECEIVED, PACKET_NOT_RECEIVED,
            ]),
        ],
        recv_deltas=[
            RecvDelta(PACKET_RECEIVED_SMALL_DELTA, 250),
            RecvDelta(PACKET_RECEIVED_SMALL_DELTA, 500),
            RecvDelta(PACKET_RECEIVED_LARGE_DELTA, -1000),
            RecvDelta(PACKET_RECEIVED_SMALL_DELTA, 750),
        ],
    )


def test_sender_report_type_on_wire():
    assert SenderReport().marshal()[:2] == b"\x80\xc8"


def test_sender_report_round_trip():
    report = SenderReport(ssrc=5, ntp_time=1 << 40, rtp_time=9, packet_count=3, octet_count=4,
                          reports=[ReceptionReport(ssrc=7, fraction_lost=1, total_lost=2,
                                                   last_sequence_number=3, jitter=4)])
    assert SenderReport.unmarshal(report.marshal()) == report


def test_transport_cc_round_trip():
    feedback = _feedback()
    raw = feedback.marshal()
    assert len(raw) % 4 == 0
    assert TransportLayerCC.unmarshal(raw) == feedback


def test_one_bit_vector_round_trip():
    feedback = TransportLayerCC(
        packet_status_count=14,
        packet_chunks=[StatusVectorChunk(SYMBOL_SIZE_ONE_BIT, [1] + [0] * 13)],
        recv_deltas=[RecvDelta(PACKET_RECEIVED_SMALL_DELTA, 1000)],
    )
    assert TransportLayerCC.unmarshal(feedback.marshal()) == feedback


def test_compound_round_trip_with_raw_packet():
    raw_part = RawPacket(b"\x81\xcb\x00\x01\x00\x00\x00\x01")
    packets = [SenderReport(ssrc=1), _feedback(), raw_part]
    assert rtcp.unmarshal(rtcp.marshal(packets)) == packets


def test_empty_raises():
    with pytest.raises(RTCPError):
        rtcp.unmarshal(b"")


def test_bad_version_raises():
    with pytest.raises(RTCPError):
        rtcp.unmarshal(b"\x00\xc8\x00\x00")


def test_truncated_raises():
    raw = SenderReport().marshal()
    with pytest.raises(RTCPError):
        rtcp.unmarshal(raw[:-4])


def test_small_delta_out_of_range_raises():
    feedback = TransportLayerCC(
        packet_status_count=1,
        packet_chunks=[RunLengthChunk(PACKET_RECEIVED_SMALL_DELTA, 1)],
        recv_deltas=[RecvDelta(PACKET_RECEIVED_SMALL_DELTA, 250 * 300)],
    )
    with pytest.raises(RTCPError):
        feedback.marshal()