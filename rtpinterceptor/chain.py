"""An interceptor that runs child interceptors in order."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .errors import flatten_errors
from .interceptor import Interceptor, RTCPReader, RTCPWriter, RTPReader, RTPWriter


class Chain(Interceptor):
    """Binds each child in turn, so later children wrap earlier ones."""

    def __init__(self, interceptors: Iterable[Interceptor]) -> None:
        self._interceptors = list(interceptors)

    def bind_rtcp_reader(self, reader: RTCPReader) -> RTCPReader:
        for interceptor in self._interceptors:
            reader = interceptor.bind_rtcp_reader(reader)
        return reader

    def bind_rtcp_writer(self, writer: RTCPWriter) -> RTCPWriter:
        for interceptor in self._interceptors:
            writer = interceptor.bind_rtcp_writer(writer)
        return writer

    def bind_local_stream(self, info: Any, writer: RTPWriter) -> RTPWriter:
        for interceptor in self._interceptors:
            writer = interceptor.bind_local_stream(info, writer)
        return writer

    def unbind_local_stream(self, info: Any) -> None:
        for interceptor in self._interceptors:
            interceptor.unbind_local_stream(info)

    def bind_remote_stream(self, info: Any, reader: RTPReader) -> RTPReader:
        for interceptor in self._interceptors:
            reader = interceptor.bind_remote_stream(info, reader)
        return reader

    def unbind_remote_stream(self, info: Any) -> None:
        for interceptor in self._interceptors:
            interceptor.unbind_remote_stream(info)

    def close(self) -> None:
        """Close every child; raise a MultiError holding all failures."""
        errors: list[BaseException] = []
        for interceptor in self._interceptors:
            try:
                interceptor.close()
            except Exception as exc:  # noqa: BLE001 - every failure is reported
                errors.append(exc)
        failure = flatten_errors(errors)
        if failure is not None:
            raise failure