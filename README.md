# rtpkit

Parse, build and packetize RTP packets in pure Python, with no dependencies outside the standard library.

## Modules

- `rtpkit.packet` provides `Header`, `Packet` and `Extension`. It reads and writes RTP headers, including the CSRC list and padding. It handles RFC 8285 one-byte (`0xBEDE`) and two-byte (`0x1000`) header extensions, and RFC 3550 extensions under any other profile, which are kept as one opaque element with ID 0.
- `rtpkit.header_extension` provides `OneByteHeaderExtension`, `TwoByteHeaderExtension` and `RawExtension`. These work directly on an encoded extension block, profile and length words included. Each has `set`, `get`, `get_ids`, `delete`, `unmarshal`, `marshal`, `marshal_to` and `marshal_size`.
- `rtpkit.extensions` provides `PlayoutDelayExtension` (`min_delay`, `max_delay`, 12 bits each) and `TransportCCExtension` (`transport_sequence`).
- `rtpkit.vla` provides the Video Layers Allocation extension (`VLA`, `SpatialLayer`) and its errors, which derive from `VLAError`.
- `rtpkit.sequencer` provides `Sequencer`, a thread-safe source of 16-bit sequence numbers that counts rollovers. `random_sequencer()` starts somewhere in the lower half of the number space. `fixed_sequencer(start)` hands out `start` first.
- `rtpkit.packetizer` provides `Packetizer`, which splits media frames into packets through a `Payloader`. It also defines the `Payloader` and `PartitionHeadChecker` protocols.
- `rtpkit.payload_types` provides `PayloadType`, an `IntEnum` of the static payload types, with `is_dynamic()`.
- `rtpkit.exceptions` holds the error types. All of them derive from `RTPError`.

## Parsing and building packets

```python
from rtpkit.packet import Packet

packet = Packet()
packet.unmarshal(raw_bytes)
print(packet.sequence_number, packet.timestamp, packet.ssrc)
print(packet.get_extension_ids(), packet.get_extension(1))

packet.set_extension(2, b"\xaa")
wire = packet.marshal()
```

Errors are raised as exceptions. For example:

- A truncated header raises `HeaderSizeInsufficientError`.
- A truncated extension raises `HeaderSizeInsufficientForExtensionError`.
- Padding longer than the packet raises `TooSmallError`.
- `marshal_to` into a buffer that is too small raises `ShortBufferError`.

`set_extension` on a header without extensions enables them. It chooses the one-byte profile for payloads of up to 16 bytes and the two-byte profile for larger ones. On a header that already has extensions, IDs and sizes are checked against the current profile, and a violation raises `ExtensionIDRangeError` or `ExtensionSizeError`.

`Header.unmarshal` returns the number of bytes it read. `Packet.unmarshal` also sets `payload` and `padding_size`. `clone()` returns an independent copy.

## Playout delay and transport-wide CC

```python
from rtpkit.extensions import PlayoutDelayExtension, TransportCCExtension

PlayoutDelayExtension(min_delay=16, max_delay=256).marshal()   # b"\x01\x01\x00"
cc = TransportCCExtension()
cc.unmarshal(b"\x00\x02")
cc.transport_sequence                                          # 2
```

## Video Layers Allocation

```python
from rtpkit.vla import VLA, SpatialLayer

vla = VLA(
    rtp_stream_id=0,
    rtp_stream_count=2,
    active_spatial_layers=[
        SpatialLayer(rtp_stream_id=0, spatial_id=0, target_bitrates=[200]),
        SpatialLayer(rtp_stream_id=1, spatial_id=0, target_bitrates=[720, 1200]),
    ],
)
data = vla.marshal()

decoded = VLA()
decoded.unmarshal(data)
print(decoded)
```

## Packetizing

```python
from rtpkit.packetizer import Packetizer
from rtpkit.sequencer import fixed_sequencer


class Chunker:
    def payload(self, mtu, payload):
        return [payload[i:i + mtu] for i in range(0, len(payload), mtu)]


packetizer = Packetizer(1200, 96, 0x1234ABCD, Chunker(), fixed_sequencer(1), 90000)
for pkt in packetizer.packetize(frame_bytes, 3000):
    send(pkt.marshal())
```

`Packetizer` behaves as follows:

- The payloader receives the MTU minus the 12-byte RTP header.
- The marker bit is set on the last packet of each frame.
- The timestamp starts at a random value unless `timestamp=` is given, and it advances by `samples` after each frame.
- `generate_padding(n)` returns `n` padding-only packets.
- `skip_samples(n)` leaves a gap of `n` in the timestamps of later packets.

## What it does not do

- It has no codec payloaders or depacketizers. You supply the `Payloader`.
- The packetizer does not add an absolute-send-time extension.
- It does no network I/O. You send and receive the bytes yourself.

## Running the tests

```
pip install -e .[test]
pytest
```