import threading

import pytest

from rtpinterceptor.gcc.pacer import LeakyBucketPacer, NoOpPacer, UnknownStreamError
from rtpinterceptor.rtp import Header

MS = 1_000_000


class Recorder:
    def __init__(self, result=None):
        self.calls = []
        self.result = result

    def __call__(self, header, payload, attributes):
        self.calls.append((header, payload, attributes))
        return len(payload) if self.result is None else self.result


def _pacer(bitrate):
    return LeakyBucketPacer(bitrate, clock=lambda: 0, autostart=False)


def test_noop_pacer_forwards_to_stream_writer():
    pacer = NoOpPacer()
    writer = Recorder(result=77)
    pacer.add_stream(5, writer)
    header = Header(ssrc=5, sequence_number=9)
    attributes = {"k": "v"}
    assert pacer(header, b"abc", attributes) == 77
    assert writer.calls == [(header, b"abc", attributes)]


def test_noop_pacer_rejects_unknown_stream():
    pacer = NoOpPacer()
    with pytest.raises(UnknownStreamError, match="unknown ssrc: 3") as info:
        pacer(Header(ssrc=3), b"x", None)
    assert info.value.ssrc == 3


def test_leaky_bucket_write_reports_packet_size():
    pacer = _pacer(80_000)
    header = Header(version=2, ssrc=1, csrc=[1, 2])
    assert pacer(header, b"\x00" * 10, None) == header.marshal_size() + 10


def test_set_target_bitrate_allows_headroom():
    pacer = _pacer(80_000)
    pacer.set_target_bitrate(1000)
    assert pacer.target_bitrate == 1500


def test_no_elapsed_time_sends_nothing():
    pacer = _pacer(80_000)
    writer = Recorder()
    pacer.add_stream(1, writer)
    pacer(Header(ssrc=1), b"abc", None)
    pacer.tick(0)
    assert writer.calls == []


def test_packets_are_sent_in_order():
    pacer = _pacer(80_000)
    writer = Recorder()
    pacer.add_stream(1, writer)
    for seq in range(3):
        pacer(Header(ssrc=1, sequence_number=seq), b"abc", None)
    pacer.tick(1000 * MS)
    assert [call[0].sequence_number for call in writer.calls] == [0, 1, 2]


def test_budget_limits_packets_per_tick():
    pacer = _pacer(8_000)
    writer = Recorder(result=1000)
    pacer.add_stream(1, writer)
    for seq in range(3):
        pacer(Header(ssrc=1, sequence_number=seq), b"\x00" * 1000, None)
    pacer.tick(1000 * MS)
    assert len(writer.calls) == 1
    pacer.tick(2000 * MS)
    assert len(writer.calls) == 2


def test_packets_of_unknown_streams_are_dropped():
    pacer = _pacer(80_000)
    writer = Recorder()
    pacer.add_stream(1, writer)
    pacer(Header(ssrc=9, sequence_number=1), b"abc", None)
    pacer(Header(ssrc=1, sequence_number=2), b"def", None)
    pacer.tick(1000 * MS)
    assert [(c[0].ssrc, c[1]) for c in writer.calls] == [(1, b"def")]


def test_payload_and_header_are_copied():
    pacer = _pacer(80_000)
    writer = Recorder()
    pacer.add_stream(1, writer)
    payload = bytearray(b"abc")
    header = Header(ssrc=1, sequence_number=4)
    pacer(header, payload, None)
    payload[0] = ord("z")
    header.sequence_number = 99
    pacer.tick(1000 * MS)
    assert writer.calls[0][1] == b"abc"
    assert writer.calls[0][0].sequence_number == 4


def test_failing_writer_does_not_stop_pacing():
    pacer = _pacer(80_000)

    def failing(header, payload, attributes):
        raise OSError("down")

    writer = Recorder()
    pacer.add_stream(1, failing)
    pacer.add_stream(2, writer)
    pacer(Header(ssrc=1), b"abc", None)
    pacer(Header(ssrc=2), b"def", None)
    pacer.tick(1000 * MS)
    assert [c[1] for c in writer.calls] == [b"def"]


def test_running_pacer_delivers_packets():
    sent = threading.Event()
    delivered = []

    def writer(header, payload, attributes):
        delivered.append(bytes(payload))
        sent.set()
        return len(payload)

    with LeakyBucketPacer(1_000_000) as pacer:
        pacer.add_stream(1, writer)
        header = Header(ssrc=1)
        written = pacer(header, b"abc", None)
        assert written == header.marshal_size() + 3
        assert sent.wait(2.0) is True
    assert delivered == [b"abc"]