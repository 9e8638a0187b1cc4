"""Turns arrival groups into filtered delay-variation estimates."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from .arrival_group import ArrivalGroup, inter_group_delay_variation
from .kalman import Kalman
from .state import DelayStats


class SlopeEstimator:
    """Measures delay variation between consecutive groups and filters it."""

    def __init__(self, estimator: Callable[[int], int] | None = None) -> None:
        self._estimate = estimator if estimator is not None else Kalman().update_estimate
        self._last: ArrivalGroup | None = None

    def update(self, group: ArrivalGroup) -> DelayStats | None:
        """Take the next group; return statistics from the second group on."""
        last, self._last = self._last, group
        if last is None:
            return None
        measurement = inter_group_delay_variation(last, group)
        return DelayStats(
            measurement=measurement,
            estimate=self._estimate(measurement),
            last_receive_delta=group.arrival - last.arrival,
        )

    def run(self, groups: Iterable[ArrivalGroup]) -> Iterator[DelayStats]:
        """Yield statistics for each group after the first."""
        for group in groups:
            stats = self.update(group)
            if stats is not None:
                yield stats