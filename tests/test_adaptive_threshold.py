import pytest

from rtpinterceptor.gcc.adaptive_threshold import AdaptiveThreshold
from rtpinterceptor.gcc.state import Usage

MS = 1_000_000


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


@pytest.mark.parametrize(
    "initial, inputs, expected",
    [
        (None, [], []),
        (None, [(1_000 * MS, 0)], [Usage.NORMAL]),
        (10 * MS, [(0, 0), (20 * MS, 0)], [Usage.NORMAL, Usage.OVER]),
        (10 * MS, [(0, 0), (5 * MS, 0)], [Usage.NORMAL, Usage.NORMAL]),
        (10 * MS, [(0, 0), (-20 * MS, 0)], [Usage.NORMAL, Usage.UNDER]),
        (
            40 * MS,
            [(0, 0), (25 * MS, 30 * MS), (13 * MS, 30 * MS)],
            [Usage.NORMAL, Usage.OVER, Usage.NORMAL],
        ),
        (
            10 * MS,
            [(0, 0), (20 * MS, 30 * MS), (30 * MS, 30 * MS)],
            [Usage.NORMAL, Usage.OVER, Usage.OVER],
        ),
    ],
    ids=[
        "empty",
        "firstInputIsAlwaysNormal",
        "singleOver",
        "singleNormal",
        "singleUnder",
        "increaseThresholdOnOveruse",
        "overuseAfterOveruse",
    ],
)
def test_adaptive_threshold(initial, inputs, expected):
    threshold = AdaptiveThreshold() if initial is None else AdaptiveThreshold(initial)
    usages = [threshold.compare(estimate, delta)[0] for estimate, delta in inputs]
    assert usages == expected


def test_first_compare_reports_maximum_threshold():
    threshold = AdaptiveThreshold()
    usage, estimate, current = threshold.compare(3 * MS, 0)
    assert (usage, estimate, current) == (Usage.NORMAL, 3 * MS, 600 * MS)


def test_estimate_is_scaled_by_number_of_deltas():
    threshold = AdaptiveThreshold(10 * MS)
    threshold.compare(0, 0)
    _, scaled, current = threshold.compare(2 * MS, 0)
    assert scaled == 4 * MS
    assert current == 10 * MS


def test_threshold_shrinks_but_stays_within_bounds():
    clock = FakeClock()
    threshold = AdaptiveThreshold(600 * MS, clock=clock)
    seen = []
    for _ in range(200):
        seen.append(threshold.compare(0, 0)[2])
        clock.now += 100 * MS
    tail = seen[1:]
    assert all(a >= b for a, b in zip(tail, tail[1:]))
    assert tail[-1] < tail[0]
    assert all(6 * MS <= t <= 600 * MS for t in tail)