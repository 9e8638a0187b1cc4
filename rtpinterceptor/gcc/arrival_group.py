"""Grouping of acknowledged packets into arrival groups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from ..cc.acknowledgment import Acknowledgment

_MILLISECOND = 1_000_000


def _millis(nanos: int) -> int:
    return int(nanos / _MILLISECOND)


@dataclass
class ArrivalGroup:
    """Packets sent in one burst; times are those of the latest packet, in nanoseconds."""

    packets: list[Acknowledgment] = field(default_factory=list)
    departure: int = 0
    arrival: int = 0
    rtt: int = 0

    def add(self, ack: Acknowledgment) -> None:
        """Append ``ack`` and take over its times."""
        self.packets.append(ack)
        self.arrival = ack.arrival
        self.departure = ack.departure
        self.rtt = ack.rtt

    def __str__(self) -> str:
        packets = " ".join(str(p) for p in self.packets)
        return (
            "ARRIVALGROUP:\n"
            f"\tARRIVAL:\t{_millis(self.arrival)}\n"
            f"\tDEPARTURE:\t{_millis(self.departure)}\n"
            f"\tRTT:\t{self.rtt}ns\n"
            f"\tPACKETS:\n[{packets}]\n"
        )


def inter_arrival_time_pkt(group: ArrivalGroup, ack: Acknowledgment) -> int:
    """Time between the group's arrival and the packet's arrival."""
    return ack.arrival - group.arrival


def inter_departure_time_pkt(group: ArrivalGroup, ack: Acknowledgment) -> int:
    """Time between the group's last departure and the packet's departure."""
    if not group.packets:
        return 0
    return ack.departure - group.packets[-1].departure


def inter_group_delay_variation_pkt(group: ArrivalGroup, ack: Acknowledgment) -> int:
    """Change in one-way delay from the group to the packet."""
    return (ack.arrival - group.arrival) - (ack.departure - group.departure)


def inter_group_delay_variation(first: ArrivalGroup, second: ArrivalGroup) -> int:
    """Change in one-way delay from ``first`` to ``second``."""
    return (second.arrival - first.arrival) - (second.departure - first.departure)


class ArrivalGroupAccumulator:
    """Collects acknowledgments into arrival groups; a group is emitted once the next starts."""

    def __init__(
        self,
        inter_departure_threshold: int = 5 * _MILLISECOND,
        inter_arrival_threshold: int = 5 * _MILLISECOND,
        inter_group_delay_variation_threshold: int = 0,
    ) -> None:
        self.inter_departure_threshold = inter_departure_threshold
        self.inter_arrival_threshold = inter_arrival_threshold
        self.inter_group_delay_variation_threshold = inter_group_delay_variation_threshold
        self._group = ArrivalGroup()
        self._started = False

    def push(self, ack: Acknowledgment) -> ArrivalGroup | None:
        """Add ``ack``; return the group it completed, if any."""
        if not self._started:
            self._group.add(ack)
            self._started = True
            return None
        if ack.arrival < self._group.arrival:
            return None  # out-of-order arrival
        if ack.departure <= self._group.departure:
            return None
        if inter_departure_time_pkt(self._group, ack) <= self.inter_departure_threshold:
            self._group.add(ack)
            return None
        if (
            inter_arrival_time_pkt(self._group, ack) <= self.inter_arrival_threshold
            and inter_group_delay_variation_pkt(self._group, ack)
            < self.inter_group_delay_variation_threshold
        ):
            self._group.add(ack)
            return None
        finished = self._group
        self._group = ArrivalGroup()
        self._group.add(ack)
        return finished

    def run(self, acks: Iterable[Acknowledgment]) -> Iterator[ArrivalGroup]:
        """Yield each completed group; the group still open at the end is not yielded."""
        for ack in acks:
            group = self.push(ack)
            if group is not None:
                yield group