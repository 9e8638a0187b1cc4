import dataclasses

import pytest

from rtpinterceptor.cc.acknowledgment import Acknowledgment


def test_str_lists_all_fields():
    ack = Acknowledgment(tlcc=7, size=1200, departure=5_000_000, arrival=7_000_000, rtt=123)
    text = str(ack)
    assert text.startswith("ACK:\n")
    assert "\tTLCC:\t7\n" in text
    assert "\tSIZE:\t1200\n" in text
    assert "\tDEPARTURE:\t5\n" in text
    assert "\tARRIVAL:\t7\n" in text
    assert "\tRTT:\t123ns\n" in text


def test_acknowledgment_is_immutable():
    ack = Acknowledgment(tlcc=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        ack.tlcc = 2  # type: ignore[misc]
    assert ack.tlcc == 1


def test_replace_keeps_other_fields():
    ack = Acknowledgment(tlcc=3, size=100, departure=10)
    updated = dataclasses.replace(ack, arrival=20)
    assert updated.tlcc == 3
    assert updated.size == 100
    assert updated.departure == 10
    assert updated.arrival == 20
    assert ack.arrival == 0


def test_equality_by_value():
    assert Acknowledgment(tlcc=5, size=9) == Acknowledgment(tlcc=5, size=9)
    assert Acknowledgment() == Acknowledgment(0, 0, 0, 0, 0)