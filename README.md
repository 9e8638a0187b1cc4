# rtpinterceptor

Building blocks for processing RTP and RTCP traffic. An interceptor wraps the
readers and writers of a media session. It can inspect packets, change them or
add packets of its own. The package also includes a send-side bandwidth
estimator based on Google Congestion Control (GCC). The estimator works from
transport-wide congestion control (TWCC) feedback.

The package has no runtime dependencies. It requires Python 3.10 or later.

```
pip install rtpinterceptor
pip install "rtpinterceptor[test]"   # adds pytest
pytest
```

## Readers and writers

Readers and writers are plain callables:

- an RTP writer: `writer(header, payload, attributes) -> int` (bytes written)
- an RTP reader: `reader(buf, attributes) -> (n, attributes)`
- an RTCP writer: `writer(packets, attributes) -> int`
- an RTCP reader: `reader(buf, attributes) -> (n, attributes)`

In every case `attributes` is an `Attributes` instance or `None`.

## Interceptors

- `rtpinterceptor.interceptor.Interceptor` is the abstract base class. It
  defines `bind_rtcp_reader`, `bind_rtcp_writer`, `bind_local_stream`,
  `unbind_local_stream`, `bind_remote_stream`, `unbind_remote_stream` and
  `close`. An interceptor is a context manager, and leaving the `with` block
  calls `close()`.
- `rtpinterceptor.interceptor.NoOp` passes everything through unchanged.
  Subclass it and override only the methods you need.
- `rtpinterceptor.interceptor.Factory` builds interceptors through
  `new_interceptor(interceptor_id)`.
- `rtpinterceptor.chain.Chain(interceptors)` binds each child in turn, so later
  children wrap the result of earlier ones. `close()` closes every child.
  If any of them fail, it raises one `rtpinterceptor.errors.MultiError` that
  holds all the failures. Use `err in multi_error` to test membership; the test
  also searches nested groups. `flatten_errors` drops `None` entries and
  returns a `MultiError` of the remaining errors, or `None` if there are none.

Stream info can be any object with an `ssrc` attribute and an
`rtp_header_extensions` sequence. Each entry in that sequence has `uri` and
`id` attributes.

```python
from rtpinterceptor.chain import Chain
from rtpinterceptor.interceptor import NoOp

class Counter(NoOp):
    def __init__(self):
        self.sent = 0

    def bind_local_stream(self, info, writer):
        def write(header, payload, attributes):
            self.sent += 1
            return writer(header, payload, attributes)
        return write

with Chain([Counter(), NoOp()]) as chain:
    ...
```

## Packets and attributes

- `rtpinterceptor.rtp`: `Header` (`marshal`, `marshal_size`, `unmarshal`,
  `get_extension`, `set_extension`, `clone`), `Packet`, `Extension` and
  `TransportCCExtension`. Malformed data raises `RTPError`.
- `rtpinterceptor.rtcp`: `SenderReport`, `ReceptionReport`,
  `TransportLayerCC` (with `RunLengthChunk`, `StatusVectorChunk` and
  `RecvDelta`) and `RawPacket`. Any other packet type is kept as a
  `RawPacket`. The module-level `marshal(packets)` and `unmarshal(raw)` work
  on compound packets. Malformed data raises `RTCPError`.
- `rtpinterceptor.attributes.Attributes` is a `dict`. Its
  `get_rtp_header(raw)` and `get_rtcp_packets(raw)` decode their input on the
  first call and cache the result. If the cached slot holds a value of the
  wrong type, they raise `InvalidAttributeTypeError`.

## Bandwidth estimation

`rtpinterceptor.congestion.InterceptorFactory` creates a
`CongestionControlInterceptor` for each connection, and each interceptor gets
its own estimator. If no estimator factory is given, the factory uses
`rtpinterceptor.gcc.send_side_bwe.SendSideBWE`.

```python
from rtpinterceptor.congestion import InterceptorFactory

factory = InterceptorFactory()
factory.on_new_peer_connection(
    lambda interceptor_id, estimator: estimator.on_target_bitrate_change(print)
)
interceptor = factory.new_interceptor("peer-1")
```

The interceptor does two things:

- It decodes every RTCP batch read through `bind_rtcp_reader` and passes it to
  the estimator.
- It hands a local stream to the estimator only when the stream's header
  extensions include `TRANSPORT_CC_URI` with a non-zero id. Other streams are
  returned unchanged.

`SendSideBWE` combines three parts:

- `gcc.loss_based.LossBasedBandwidthEstimator`, which controls the rate from
  packet loss;
- `gcc.delay_controller.DelayController`, which controls the rate from delay.
  It feeds acknowledgments through `ArrivalGroupAccumulator`,
  `SlopeEstimator` (a `Kalman` filter), `OveruseDetector` (with an
  `AdaptiveThreshold`) and `RateController`, and takes the received rate and
  RTT from `RateCalculator` and `RTTEstimator`;
- a pacer from `gcc.pacer`. The default is `LeakyBucketPacer`, which sends
  from a background thread every 5 ms. `NoOpPacer` sends each packet
  immediately.

The outgoing header of each packet must carry the transport-cc extension;
`cc.feedback_adapter.FeedbackAdapter.on_sent` raises `FeedbackError` if it
does not. The estimator's `target_bitrate` property and its `stats()` method
can be read at any time.

```python
from types import SimpleNamespace

from rtpinterceptor.gcc.pacer import NoOpPacer
from rtpinterceptor.gcc.send_side_bwe import TRANSPORT_CC_URI, SendSideBWE
from rtpinterceptor.rtp import Header, TransportCCExtension

info = SimpleNamespace(
    ssrc=1,
    rtp_header_extensions=[SimpleNamespace(uri=TRANSPORT_CC_URI, id=1)],
)
with SendSideBWE(pacer=NoOpPacer()) as bwe:
    send = bwe.add_stream(info, lambda header, payload, attributes: len(payload))
    header = Header(version=2, ssrc=1)
    header.set_extension(1, TransportCCExtension(0).marshal())
    send(header, b"\x00" * 100, None)
    print(bwe.target_bitrate, bwe.stats())
```

## What this package does not do

The package does not open sockets or move packets over a network. You connect
the readers and writers to your own transport. It does not generate TWCC
feedback on the receiving side, and it has no interceptors for
retransmission, reports or statistics beyond those described above. It has no
command-line program.