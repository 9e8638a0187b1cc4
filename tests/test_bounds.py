import pytest

from rtpinterceptor.gcc.bounds import clamp_duration, clamp_int

CASES = [
    (50, 50, 0, 100),
    (50, 50, 50, 100),
    (100, 100, 0, 100),
    (50, 3, 50, 100),
    (100, 150, 0, 100),
]


@pytest.mark.parametrize("expected, value, lower, upper", CASES)
def test_clamp_int(expected, value, lower, upper):
    assert clamp_int(value, lower, upper) == expected


@pytest.mark.parametrize("expected, value, lower, upper", CASES)
def test_clamp_duration(expected, value, lower, upper):
    assert clamp_duration(value, lower, upper) == expected


def test_clamp_stays_in_range():
    for value in range(-20, 20):
        result = clamp_int(value, -5, 5)
        assert -5 <= result <= 5