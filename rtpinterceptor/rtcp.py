"""RTCP packets: sender reports, transport-wide CC feedback and raw packets."""

from __future__ import annotations

import itertools
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union


class RTCPError(ValueError):
    """Raised for malformed RTCP data."""


class PacketType(IntEnum):
    SENDER_REPORT = 200
    RECEIVER_REPORT = 201
    SOURCE_DESCRIPTION = 202
    GOODBYE = 203
    APPLICATION_DEFINED = 204
    TRANSPORT_SPECIFIC_FEEDBACK = 205
    PAYLOAD_SPECIFIC_FEEDBACK = 206


FORMAT_TCC = 15

RUN_LENGTH_CHUNK = 0
STATUS_VECTOR_CHUNK = 1

SYMBOL_SIZE_ONE_BIT = 0
SYMBOL_SIZE_TWO_BIT = 1

PACKET_NOT_RECEIVED = 0
PACKET_RECEIVED_SMALL_DELTA = 1
PACKET_RECEIVED_LARGE_DELTA = 2
PACKET_RECEIVED_WITHOUT_DELTA = 3

DELTA_SCALE_US = 250
_REPORT_LENGTH = 24


def _header(count: int, packet_type: int, body_length: int, padding: bool = False) -> bytes:
    if count > 31:
        raise RTCPError("count too large for RTCP header")
    total = 4 + body_length
    return struct.pack("!BBH", 0x80 | int(padding) << 5 | count, packet_type, total // 4 - 1)


def _parse_header(raw: bytes) -> tuple[bool, int, int, int]:
    """Return padding flag, count/format, packet type and total length in bytes."""
    if len(raw) < 4:
        raise RTCPError("packet too short for RTCP header")
    first, packet_type, length = struct.unpack_from("!BBH", raw)
    if first >> 6 != 2:
        raise RTCPError("invalid RTCP version")
    total = (length + 1) * 4
    if len(raw) < total:
        raise RTCPError("packet shorter than its declared length")
    return bool(first >> 5 & 1), first & 0x1F, packet_type, total


@dataclass
class ReceptionReport:
    ssrc: int = 0
    fraction_lost: int = 0
    total_lost: int = 0
    last_sequence_number: int = 0
    jitter: int = 0
    last_sender_report: int = 0
    delay: int = 0

    def _pack(self) -> bytes:
        return (
            struct.pack("!IB", self.ssrc, self.fraction_lost & 0xFF)
            + (self.total_lost & 0xFFFFFF).to_bytes(3, "big")
            + struct.pack(
                "!IIII",
                self.last_sequence_number,
                self.jitter,
                self.last_sender_report,
                self.delay,
            )
        )

    @classmethod
    def _from_bytes(cls, raw: bytes) -> ReceptionReport:
        ssrc, fraction = struct.unpack_from("!IB", raw)
        total_lost = int.from_bytes(raw[5:8], "big")
        seq, jitter, lsr, delay = struct.unpack_from("!IIII", raw, 8)
        return cls(ssrc, fraction, total_lost, seq, jitter, lsr, delay)


@dataclass
class SenderReport:
    ssrc: int = 0
    ntp_time: int = 0
    rtp_time: int = 0
    packet_count: int = 0
    octet_count: int = 0
    reports: list[ReceptionReport] = field(default_factory=list)
    profile_extensions: bytes = b""

    def marshal(self) -> bytes:
        if len(self.profile_extensions) % 4:
            raise RTCPError("profile extensions must be a multiple of 4 bytes")
        body = struct.pack(
            "!IQIII", self.ssrc, self.ntp_time, self.rtp_time, self.packet_count, self.octet_count
        )
        body += b"".join(report._pack() for report in self.reports)
        body += self.profile_extensions
        return _header(len(self.reports), PacketType.SENDER_REPORT, len(body)) + body

    @classmethod
    def unmarshal(cls, raw: bytes) -> SenderReport:
        padding, count, packet_type, total = _parse_header(raw)
        if packet_type != PacketType.SENDER_REPORT:
            raise RTCPError("wrong packet type for sender report")
        end = total - (raw[total - 1] if padding else 0)
        if end < 28 + count * _REPORT_LENGTH:
            raise RTCPError("sender report too short")
        ssrc, ntp, rtp_time, packets, octets = struct.unpack_from("!IQIII", raw, 4)
        offset = 28
        reports = []
        for _ in range(count):
            reports.append(ReceptionReport._from_bytes(raw[offset : offset + _REPORT_LENGTH]))
            offset += _REPORT_LENGTH
        return cls(ssrc, ntp, rtp_time, packets, octets, reports, bytes(raw[offset:end]))


@dataclass
class RawPacket:
    """An RTCP packet kept as undecoded bytes."""

    data: bytes = b""

    def marshal(self) -> bytes:
        return bytes(self.data)


@dataclass
class RecvDelta:
    type: int = PACKET_RECEIVED_SMALL_DELTA
    delta: int = 0  # microseconds


@dataclass
class RunLengthChunk:
    packet_status_symbol: int = PACKET_NOT_RECEIVED
    run_length: int = 0


@dataclass
class StatusVectorChunk:
    symbol_size: int = SYMBOL_SIZE_ONE_BIT
    symbol_list: list[int] = field(default_factory=list)


Chunk = Union[RunLengthChunk, StatusVectorChunk]


def _encode_chunk(chunk: Chunk) -> int:
    if isinstance(chunk, RunLengthChunk):
        if not 0 <= chunk.run_length <= 0x1FFF:
            raise RTCPError("run length out of range")
        return (chunk.packet_status_symbol & 0x03) << 13 | chunk.run_length
    if isinstance(chunk, StatusVectorChunk):
        if chunk.symbol_size == SYMBOL_SIZE_ONE_BIT:
            if len(chunk.symbol_list) > 14:
                raise RTCPError("too many symbols in one-bit status vector")
            value = 0x8000
            for i, symbol in enumerate(chunk.symbol_list):
                value |= (symbol & 0x01) << (13 - i)
            return value
        if len(chunk.symbol_list) > 7:
            raise RTCPError("too many symbols in two-bit status vector")
        value = 0xC000
        for i, symbol in enumerate(chunk.symbol_list):
            value |= (symbol & 0x03) << (12 - 2 * i)
        return value
    raise RTCPError("unknown packet status chunk")


def _decode_chunk(value: int) -> Chunk:
    if value >> 15 == RUN_LENGTH_CHUNK:
        return RunLengthChunk((value >> 13) & 0x03, value & 0x1FFF)
    if (value >> 14) & 0x01 == SYMBOL_SIZE_ONE_BIT:
        return StatusVectorChunk(SYMBOL_SIZE_ONE_BIT, [(value >> (13 - i)) & 0x01 for i in range(14)])
    return StatusVectorChunk(SYMBOL_SIZE_TWO_BIT, [(value >> (12 - 2 * i)) & 0x03 for i in range(7)])


@dataclass
class TransportLayerCC:
    """Transport-wide congestion control feedback."""

    sender_ssrc: int = 0
    media_ssrc: int = 0
    base_sequence_number: int = 0
    packet_status_count: int = 0
    reference_time: int = 0
    fb_pkt_count: int = 0
    packet_chunks: list[Chunk] = field(default_factory=list)
    recv_deltas: list[RecvDelta] = field(default_factory=list)

    def marshal(self) -> bytes:
        body = bytearray(
            struct.pack(
                "!IIHHI",
                self.sender_ssrc,
                self.media_ssrc,
                self.base_sequence_number & 0xFFFF,
                self.packet_status_count & 0xFFFF,
                (self.reference_time & 0xFFFFFF) << 8 | (self.fb_pkt_count & 0xFF),
            )
        )
        for chunk in self.packet_chunks:
            body += struct.pack("!H", _encode_chunk(chunk))
        for recv in self.recv_deltas:
            scaled = int(recv.delta / DELTA_SCALE_US)
            if recv.type == PACKET_RECEIVED_SMALL_DELTA:
                if not 0 <= scaled <= 0xFF:
                    raise RTCPError("small delta out of range")
                body.append(scaled)
            elif recv.type == PACKET_RECEIVED_LARGE_DELTA:
                if not -0x8000 <= scaled <= 0x7FFF:
                    raise RTCPError("large delta out of range")
                body += struct.pack("!h", scaled)
            else:
                raise RTCPError("invalid delta type")
        pad = -len(body) % 4
        if pad:
            body += b"\x00" * (pad - 1) + bytes([pad])
        return _header(FORMAT_TCC, PacketType.TRANSPORT_SPECIFIC_FEEDBACK, len(body), bool(pad)) + bytes(body)

    @classmethod
    def unmarshal(cls, raw: bytes) -> TransportLayerCC:
        padding, fmt, packet_type, total = _parse_header(raw)
        if packet_type != PacketType.TRANSPORT_SPECIFIC_FEEDBACK or fmt != FORMAT_TCC:
            raise RTCPError("wrong packet type for transport-cc feedback")
        end = total - (raw[total - 1] if padding else 0)
        if end < 20:
            raise RTCPError("transport-cc feedback too short")
        sender, media, base, count, tail = struct.unpack_from("!IIHHI", raw, 4)
        offset = 20

        chunks: list[Chunk] = []
        processed = 0
        while processed < count:
            if offset + 2 > end:
                raise RTCPError("transport-cc chunks truncated")
            chunk = _decode_chunk(struct.unpack_from("!H", raw, offset)[0])
            offset += 2
            chunks.append(chunk)
            if isinstance(chunk, RunLengthChunk):
                processed += chunk.run_length
            else:
                processed += len(chunk.symbol_list)

        deltas: list[RecvDelta] = []
        remaining = count
        for chunk in chunks:
            if isinstance(chunk, RunLengthChunk):
                symbols = itertools.repeat(chunk.packet_status_symbol, chunk.run_length)
            else:
                symbols = iter(chunk.symbol_list)
            for symbol in itertools.islice(symbols, remaining):
                remaining -= 1
                if symbol == PACKET_RECEIVED_SMALL_DELTA:
                    if offset + 1 > end:
                        raise RTCPError("transport-cc deltas truncated")
                    deltas.append(RecvDelta(symbol, raw[offset] * DELTA_SCALE_US))
                    offset += 1
                elif symbol == PACKET_RECEIVED_LARGE_DELTA:
                    if offset + 2 > end:
                        raise RTCPError("transport-cc deltas truncated")
                    value = struct.unpack_from("!h", raw, offset)[0]
                    deltas.append(RecvDelta(symbol, value * DELTA_SCALE_US))
                    offset += 2

        return cls(sender, media, base, count, tail >> 8, tail & 0xFF, chunks, deltas)


RTCPPacket = Union[SenderReport, TransportLayerCC, RawPacket]


def marshal(packets: list[RTCPPacket]) -> bytes:
    """Encode a compound RTCP packet."""
    return b"".join(packet.marshal() for packet in packets)


def unmarshal(raw: bytes | None) -> list[RTCPPacket]:
    """Decode a compound RTCP packet into its parts."""
    if not raw:
        raise RTCPError("empty RTCP packet")
    raw = bytes(raw)
    packets: list[RTCPPacket] = []
    offset = 0
    while offset < len(raw):
        _, fmt, packet_type, total = _parse_header(raw[offset:])
        piece = raw[offset : offset + total]
        if packet_type == PacketType.SENDER_REPORT:
            packets.append(SenderReport.unmarshal(piece))
        elif packet_type == PacketType.TRANSPORT_SPECIFIC_FEEDBACK and fmt == FORMAT_TCC:
            packets.append(TransportLayerCC.unmarshal(piece))
        else:
            packets.append(RawPacket(piece))
        offset += total
    return packets