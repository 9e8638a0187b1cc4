"""Turn transport-wide congestion control feedback into acknowledgments."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace

from ..attributes import Attributes
from ..rtcp import (
    PACKET_NOT_RECEIVED,
    RecvDelta,
    RunLengthChunk,
    StatusVectorChunk,
    TransportLayerCC,
)
from ..rtp import Header, RTPError, TransportCCExtension
from .acknowledgment import Acknowledgment

TWCC_EXTENSION_ATTRIBUTES_KEY = 0
"""Attribute key under which the transport-cc header extension id is stored."""

_MICROSECOND = 1_000
_MILLISECOND = 1_000_000
_SEQUENCE_MASK = 0xFFFF


class FeedbackError(ValueError):
    """Raised for missing extension data or inconsistent feedback."""


class FeedbackAdapter:
    """Remembers sent packets and maps incoming feedback onto them."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._history: dict[int, Acknowledgment] = {}

    def on_sent(self, ts: int, header: Header, size: int, attributes: Attributes | None) -> None:
        """Record that the packet with ``header`` and payload ``size`` left at ``ts``."""
        ext_id = attributes.get(TWCC_EXTENSION_ATTRIBUTES_KEY) if attributes is not None else None
        if not isinstance(ext_id, int) or isinstance(ext_id, bool) or ext_id == 0:
            raise FeedbackError("missing transport layer cc header extension id")
        try:
            extension = TransportCCExtension.unmarshal(header.get_extension(ext_id))
        except RTPError as exc:
            raise FeedbackError("missing transport layer cc header extension") from exc

        sequence = extension.transport_sequence
        with self._lock:
            self._history[sequence] = Acknowledgment(
                tlcc=sequence,
                size=header.marshal_size() + size,
                departure=ts,
            )

    def _unpack(
        self,
        ts: int,
        start: int,
        ref_time: int,
        symbols: Iterable[int],
        deltas: Sequence[RecvDelta],
    ) -> tuple[int, int, list[Acknowledgment]]:
        consumed = 0
        acks: list[Acknowledgment] = []
        with self._lock:
            for offset, symbol in enumerate(symbols):
                ack = self._history.get((start + offset) & _SEQUENCE_MASK)
                if ack is None:
                    acks.append(Acknowledgment())
                    continue
                if symbol != PACKET_NOT_RECEIVED:
                    if consumed >= len(deltas):
                        raise FeedbackError("invalid feedback")
                    ref_time += deltas[consumed].delta * _MICROSECOND
                    ack = replace(ack, arrival=ref_time, rtt=ts - ack.departure)
                    consumed += 1
                acks.append(ack)
        return consumed, ref_time, acks

    def unpack_run_length_chunk(
        self,
        ts: int,
        start: int,
        ref_time: int,
        chunk: RunLengthChunk,
        deltas: Sequence[RecvDelta],
    ) -> tuple[int, int, list[Acknowledgment]]:
        """Return deltas consumed, the next reference time and the chunk's acknowledgments."""
        symbols = itertools.repeat(chunk.packet_status_symbol, chunk.run_length)
        return self._unpack(ts, start, ref_time, symbols, deltas)

    def unpack_status_vector_chunk(
        self,
        ts: int,
        start: int,
        ref_time: int,
        chunk: StatusVectorChunk,
        deltas: Sequence[RecvDelta],
    ) -> tuple[int, int, list[Acknowledgment]]:
        """Return deltas consumed, the next reference time and the chunk's acknowledgments."""
        return self._unpack(ts, start, ref_time, chunk.symbol_list, deltas)

    def on_transport_cc_feedback(self, ts: int, feedback: TransportLayerCC) -> list[Acknowledgment]:
        """Convert one transport-cc feedback packet received at ``ts`` into acknowledgments."""
        with self._lock:
            result: list[Acknowledgment] = []
            index = feedback.base_sequence_number
            ref_time = feedback.reference_time * 64 * _MILLISECOND
            deltas = list(feedback.recv_deltas)

            for chunk in feedback.packet_chunks:
                if isinstance(chunk, RunLengthChunk):
                    consumed, ref_time, acks = self.unpack_run_length_chunk(
                        ts, index, ref_time, chunk, deltas
                    )
                elif isinstance(chunk, StatusVectorChunk):
                    consumed, ref_time, acks = self.unpack_status_vector_chunk(
                        ts, index, ref_time, chunk, deltas
                    )
                else:
                    raise FeedbackError("invalid feedback")
                result.extend(acks)
                deltas = deltas[consumed:]
                index = (index + len(acks)) & _SEQUENCE_MASK
            return result