"""Acknowledgments: what is known about one sent packet."""

from __future__ import annotations

from dataclasses import dataclass

_NANOS_PER_MILLI = 1_000_000


def _millis(nanos: int) -> int:
    return int(nanos / _NANOS_PER_MILLI)


@dataclass(frozen=True)
class Acknowledgment:
    """A sent packet and, once feedback arrived, when it was received.

    Times and durations are integer nanoseconds; a time of 0 means "unset",
    so an ``arrival`` of 0 marks a packet that was not received.
    """

    tlcc: int = 0
    size: int = 0
    departure: int = 0
    arrival: int = 0
    rtt: int = 0

    def __str__(self) -> str:
        return (
            "ACK:\n"
            f"\tTLCC:\t{self.tlcc}\n"
            f"\tSIZE:\t{self.size}\n"
            f"\tDEPARTURE:\t{_millis(self.departure)}\n"
            f"\tARRIVAL:\t{_millis(self.arrival)}\n"
            f"\tRTT:\t{self.rtt}ns\n"
        )