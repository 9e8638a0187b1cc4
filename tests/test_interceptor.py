import pytest

from rtpinterceptor.interceptor import Factory, Interceptor, NoOp


def _writer(header, payload, attributes):
    return len(payload)


def _reader(buf, attributes):
    return len(buf), attributes


def test_noop_returns_same_callables():
    noop = NoOp()
    assert noop.bind_local_stream(None, _writer) is _writer
    assert noop.bind_remote_stream(None, _reader) is _reader
    assert noop.bind_rtcp_reader(_reader) is _reader
    assert noop.bind_rtcp_writer(_writer) is _writer


def test_noop_wrapped_writer_still_works():
    writer = NoOp().bind_local_stream(None, _writer)
    assert writer(None, b"\x00\x01\x02", None) == 3


class _Closing(NoOp):
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


def test_context_manager_closes():
    closing = _Closing()
    entered = Interceptor.__enter__(closing)
    assert entered is closing
    assert closing.closed == 0
    Interceptor.__exit__(closing, None, None, None)
    assert closing.closed == 1


def test_interceptor_is_abstract():
    with pytest.raises(TypeError):
        Interceptor()


class _NoOpFactory(Factory):
    def new_interceptor(self, interceptor_id):
        return NoOp()


def test_factory_creates_interceptor():
    created = _NoOpFactory().new_interceptor("")
    reader = NoOp.bind_rtcp_reader(created, _reader)
    assert reader is _reader