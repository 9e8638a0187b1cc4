import pytest

from rtpinterceptor.cc.acknowledgment import Acknowledgment
from rtpinterceptor.gcc.rate_calculator import RateCalculator

MS = 1_000_000
T0 = 1_700_000_000_000_000_000


def ack_stream(length, size, interval):
    return [Acknowledgment(size=size, arrival=T0 + i * interval) for i in range(length)]


@pytest.mark.parametrize(
    "acks, expected",
    [
        ([], []),
        ([Acknowledgment()], []),
        ([Acknowledgment(size=1000, arrival=T0)], [8000]),
        (
            [
                Acknowledgment(size=125, arrival=T0),
                Acknowledgment(size=125, arrival=T0 + 100 * MS),
            ],
            [1000, 20_000],
        ),
        (
            ack_stream(10, 1200, 100 * MS),
            [9_600, 192_000, 144_000, 128_000, 120_000, 115_200, 115_200, 115_200, 115_200, 115_200],
        ),
    ],
    ids=[
        "emptyCreatesNoRate",
        "ignoresZeroArrivalTimes",
        "singleAckCreatesRate",
        "twoAcksCalculateCorrectRates",
        "steadyACKsCalculateCorrectRates",
    ],
)
def test_rate_calculator(acks, expected):
    calculator = RateCalculator(500 * MS)
    assert list(calculator.run(acks)) == expected


def test_update_ignores_lost_packet():
    calculator = RateCalculator()
    assert calculator.update(Acknowledgment(size=100, arrival=0)) is None
    assert calculator.update(Acknowledgment(size=100, arrival=T0)) == 800