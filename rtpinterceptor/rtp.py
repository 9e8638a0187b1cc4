"""RTP header and packet encoding."""

from __future__ import annotations

import copy
import struct
from dataclasses import dataclass, field

HEADER_LENGTH = 12
ONE_BYTE_PROFILE = 0xBEDE
TWO_BYTE_PROFILE = 0x1000


class RTPError(ValueError):
    """Raised for malformed RTP data or invalid header settings."""


@dataclass
class Extension:
    """A single RTP header extension element."""

    id: int
    payload: bytes


def _parse_extensions(profile: int, body: bytes) -> list[Extension]:
    extensions: list[Extension] = []
    if profile == ONE_BYTE_PROFILE:
        i = 0
        while i < len(body):
            byte = body[i]
            i += 1
            if byte == 0:
                continue
            ext_id, length = byte >> 4, (byte & 0x0F) + 1
            if ext_id == 15:
                break
            if i + length > len(body):
                raise RTPError("extension payload exceeds header extension")
            extensions.append(Extension(ext_id, bytes(body[i : i + length])))
            i += length
    elif profile == TWO_BYTE_PROFILE:
        i = 0
        while i < len(body):
            if body[i] == 0:
                i += 1
                continue
            if i + 1 >= len(body):
                raise RTPError("extension header truncated")
            ext_id, length = body[i], body[i + 1]
            i += 2
            if i + length > len(body):
                raise RTPError("extension payload exceeds header extension")
            extensions.append(Extension(ext_id, bytes(body[i : i + length])))
            i += length
    else:
        extensions.append(Extension(0, bytes(body)))
    return extensions


@dataclass
class Header:
    """An RTP fixed header together with its extensions."""

    version: int = 0
    padding: bool = False
    extension: bool = False
    marker: bool = False
    payload_type: int = 0
    sequence_number: int = 0
    timestamp: int = 0
    ssrc: int = 0
    csrc: list[int] = field(default_factory=list)
    extension_profile: int = 0
    extensions: list[Extension] = field(default_factory=list)

    def _extension_body(self) -> bytes:
        body = bytearray()
        if self.extension_profile == ONE_BYTE_PROFILE:
            for ext in self.extensions:
                body.append((ext.id << 4) | ((len(ext.payload) - 1) & 0x0F))
                body += ext.payload
        elif self.extension_profile == TWO_BYTE_PROFILE:
            for ext in self.extensions:
                body += bytes([ext.id, len(ext.payload)])
                body += ext.payload
        elif self.extensions:
            payload = self.extensions[0].payload
            if len(payload) % 4:
                raise RTPError("extension payload must be a multiple of 4 bytes")
            body += payload
        body += b"\x00" * (-len(body) % 4)
        return bytes(body)

    def marshal_size(self) -> int:
        """Number of bytes the marshalled header takes."""
        size = HEADER_LENGTH + 4 * len(self.csrc)
        if self.extension:
            size += 4 + len(self._extension_body())
        return size

    def marshal(self) -> bytes:
        """Encode the header to wire format."""
        if len(self.csrc) > 15:
            raise RTPError("too many CSRC identifiers")
        first = (
            (self.version & 0x03) << 6
            | int(self.padding) << 5
            | int(self.extension) << 4
            | len(self.csrc)
        )
        second = int(self.marker) << 7 | (self.payload_type & 0x7F)
        out = bytearray(
            struct.pack(
                "!BBHII",
                first,
                second,
                self.sequence_number & 0xFFFF,
                self.timestamp & 0xFFFFFFFF,
                self.ssrc & 0xFFFFFFFF,
            )
        )
        for source in self.csrc:
            out += struct.pack("!I", source & 0xFFFFFFFF)
        if self.extension:
            body = self._extension_body()
            out += struct.pack("!HH", self.extension_profile, len(body) // 4)
            out += body
        return bytes(out)

    @classmethod
    def _parse(cls, raw: bytes) -> tuple[Header, int]:
        if len(raw) < HEADER_LENGTH:
            raise RTPError("RTP header size insufficient")
        first, second, seq, timestamp, ssrc = struct.unpack_from("!BBHII", raw)
        count = first & 0x0F
        offset = HEADER_LENGTH + 4 * count
        if len(raw) < offset:
            raise RTPError("RTP header size insufficient for CSRC list")
        header = cls(
            version=first >> 6,
            padding=bool(first >> 5 & 1),
            extension=bool(first >> 4 & 1),
            marker=bool(second >> 7),
            payload_type=second & 0x7F,
            sequence_number=seq,
            timestamp=timestamp,
            ssrc=ssrc,
            csrc=list(struct.unpack_from(f"!{count}I", raw, HEADER_LENGTH)),
        )
        if header.extension:
            if len(raw) < offset + 4:
                raise RTPError("RTP header size insufficient for extension")
            profile, words = struct.unpack_from("!HH", raw, offset)
            offset += 4
            end = offset + words * 4
            if len(raw) < end:
                raise RTPError("RTP header size insufficient for extension payload")
            header.extension_profile = profile
            header.extensions = _parse_extensions(profile, bytes(raw[offset:end]))
            offset = end
        return header, offset

    @classmethod
    def unmarshal(cls, raw: bytes) -> Header:
        """Decode a header from the start of ``raw``."""
        return cls._parse(raw)[0]

    def get_extension(self, ext_id: int) -> bytes | None:
        """Payload of the extension with ``ext_id``, or None."""
        if not self.extension:
            return None
        return next((ext.payload for ext in self.extensions if ext.id == ext_id), None)

    def set_extension(self, ext_id: int, payload: bytes) -> None:
        """Add or replace an extension, choosing a profile if none is set."""
        payload = bytes(payload)
        if self.extension:
            if self.extension_profile == ONE_BYTE_PROFILE:
                if not 1 <= ext_id <= 14:
                    raise RTPError("one-byte extension id must be in 1..14")
                if not 1 <= len(payload) <= 16:
                    raise RTPError("one-byte extension payload must be 1..16 bytes")
            elif self.extension_profile == TWO_BYTE_PROFILE:
                if not 1 <= ext_id <= 255:
                    raise RTPError("two-byte extension id must be in 1..255")
                if len(payload) > 255:
                    raise RTPError("two-byte extension payload must be at most 255 bytes")
            elif ext_id != 0:
                raise RTPError("extension id must be 0 for this profile")
            for ext in self.extensions:
                if ext.id == ext_id:
                    ext.payload = payload
                    return
            self.extensions.append(Extension(ext_id, payload))
            return

        if 1 <= len(payload) <= 16:
            if not 1 <= ext_id <= 14:
                raise RTPError("one-byte extension id must be in 1..14")
            self.extension_profile = ONE_BYTE_PROFILE
        elif len(payload) < 256:
            if not 1 <= ext_id <= 255:
                raise RTPError("two-byte extension id must be in 1..255")
            self.extension_profile = TWO_BYTE_PROFILE
        else:
            raise RTPError("extension payload too large")
        self.extension = True
        self.extensions = [Extension(ext_id, payload)]

    def clone(self) -> Header:
        """Deep copy of the header."""
        return copy.deepcopy(self)


@dataclass
class Packet:
    """An RTP packet: header and payload."""

    header: Header = field(default_factory=Header)
    payload: bytes = b""

    def marshal(self) -> bytes:
        """Encode header and payload."""
        return self.header.marshal() + bytes(self.payload)

    @classmethod
    def unmarshal(cls, raw: bytes) -> Packet:
        """Decode a packet, stripping any padding."""
        header, offset = Header._parse(raw)
        end = len(raw)
        if header.padding:
            if end <= offset:
                raise RTPError("padding flag set on packet without payload")
            end -= raw[-1]
            if end < offset:
                raise RTPError("padding length exceeds payload")
        return cls(header=header, payload=bytes(raw[offset:end]))


@dataclass
class TransportCCExtension:
    """Transport-wide congestion control sequence number extension."""

    transport_sequence: int = 0

    def marshal(self) -> bytes:
        return struct.pack("!H", self.transport_sequence & 0xFFFF)

    @classmethod
    def unmarshal(cls, raw: bytes | None) -> TransportCCExtension:
        if raw is None or len(raw) < 2:
            raise RTPError("transport-cc extension buffer too small")
        return cls(struct.unpack_from("!H", raw)[0])