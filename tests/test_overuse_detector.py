import pytest

from rtpinterceptor.gcc.overuse_detector import OveruseDetector
from rtpinterceptor.gcc.state import DelayStats, Usage

MS = 1_000_000
US = 1_000


class StaticThreshold:
    def __init__(self, value):
        self.value = value

    def compare(self, estimate, delta):
        if estimate > self.value:
            return Usage.OVER, estimate, self.value
        if estimate < -self.value:
            return Usage.UNDER, estimate, self.value
        return Usage.NORMAL, estimate, self.value


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


@pytest.mark.parametrize(
    "estimates, expected, delay",
    [
        ([], [], 0),
        (
            [DelayStats(), DelayStats(estimate=2 * MS), DelayStats(estimate=3 * MS)],
            [Usage.NORMAL, Usage.NORMAL, Usage.OVER],
            13 * MS,
        ),
        ([DelayStats(estimate=0)], [Usage.NORMAL], 0),
        ([DelayStats(estimate=-2 * MS)], [Usage.UNDER], 0),
        (
            [DelayStats(), DelayStats(estimate=3 * MS), DelayStats(estimate=5 * MS)],
            [Usage.NORMAL, Usage.NORMAL, Usage.OVER],
            10 * MS,
        ),
        (
            [
                DelayStats(),
                DelayStats(estimate=4 * MS),
                DelayStats(estimate=5 * MS),
                DelayStats(estimate=3 * MS),
            ],
            [Usage.NORMAL, Usage.NORMAL, Usage.OVER, Usage.NORMAL],
            0,
        ),
    ],
    ids=[
        "noEstimateNoUsage",
        "overuse",
        "normaluse",
        "underuse",
        "noOverUseBeforeDelay",
        "noOverUseIfEstimateDecreased",
    ],
)
def test_overuse_detector(estimates, expected, delay):
    clock = FakeClock()
    detector = OveruseDetector(StaticThreshold(MS), delay, clock=clock)
    received = []
    for stats in estimates:
        received.append(detector.update(stats).usage)
        clock.now += delay + US
    assert received == expected


def test_output_carries_threshold_and_delta():
    clock = FakeClock()
    detector = OveruseDetector(StaticThreshold(MS), 0, clock=clock)
    clock.now = 7 * MS
    out = detector.update(DelayStats(measurement=4 * MS, estimate=MS // 2))
    assert out == DelayStats(
        measurement=4 * MS,
        estimate=MS // 2,
        threshold=MS,
        last_receive_delta=7 * MS,
        usage=Usage.NORMAL,
    )


def test_run_yields_one_result_per_input():
    detector = OveruseDetector(StaticThreshold(MS), 0, clock=FakeClock())
    out = list(detector.run([DelayStats(estimate=-5 * MS), DelayStats(estimate=0)]))
    assert [s.usage for s in out] == [Usage.UNDER, Usage.NORMAL]