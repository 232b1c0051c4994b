"""Video Layers Allocation (VLA) RTP header extension."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .exceptions import RTPError

_MAX_STREAMS = 4
_MAX_SPATIAL_LAYERS = 4
_MAX_TEMPORAL_LAYERS = 4
_RESOLUTION_FIELD_SIZE = 5


class VLAError(RTPError, ValueError):
    """Base class for errors in Video Layers Allocation data."""


class VLATooShortError(VLAError):
    """The VLA payload ends before all announced fields are read."""


class VLAInvalidStreamCountError(VLAError):
    """The RTP stream count is outside 1..4."""


class VLAInvalidStreamIDError(VLAError):
    """An RTP stream ID is outside the announced stream count."""


class VLAInvalidSpatialIDError(VLAError):
    """A spatial layer ID is outside 0..3."""


class VLADuplicateSpatialIDError(VLAError):
    """The same spatial layer appears twice on one RTP stream."""


class VLAInvalidTemporalLayerError(VLAError):
    """A spatial layer has no temporal layers or more than four."""


@dataclass
class SpatialLayer:
    """One active spatial layer of one RTP stream."""

    rtp_stream_id: int = 0
    spatial_id: int = 0
    target_bitrates: list[int] = field(default_factory=list)
    # Only meaningful when the owning VLA has resolution and framerate.
    width: int = 0
    height: int = 0
    framerate: int = 0


def _encode_leb128(value: int) -> bytes:
    if value < 0:
        raise VLAError(f"target bitrate must not be negative: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _decode_leb128(data: bytes, offset: int) -> tuple[int, int]:
    """Return the decoded value and the number of bytes it took."""
    value = 0
    for index, byte in enumerate(data[offset:]):
        value |= (byte & 0x7F) << (index * 7)
        if not byte & 0x80:
            return value, index + 1
    raise VLATooShortError(f"failed to read LEB128 value (offset={offset})")


def _common_bitmap(bitmaps: list[int]) -> int:
    common = 0
    for bitmap in bitmaps:
        if bitmap == 0:
            continue
        if common == 0:
            common = bitmap
        elif bitmap != common:
            return 0
    return common


class _Reader:
    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.offset = 0

    def require(self, length: int) -> None:
        if len(self.payload) - self.offset < length:
            raise VLATooShortError(f"failed to unmarshal VLA (offset={self.offset})")


@dataclass
class VLA:
    """Video Layers Allocation: the layers sent on each simulcast RTP stream."""

    rtp_stream_id: int = 0
    rtp_stream_count: int = 0
    active_spatial_layers: list[SpatialLayer] = field(default_factory=list)
    has_resolution_and_framerate: bool = False

    def __str__(self) -> str:
        parts = []
        for layer in self.active_spatial_layers:
            bitrates = " ".join(str(kbps) for kbps in layer.target_bitrates)
            text = f"RTPStreamID:{layer.rtp_stream_id},TargetBitrates:[{bitrates}]"
            if self.has_resolution_and_framerate:
                text += f",Resolution:({layer.width},{layer.height})"
                text += f",Framerate:{layer.framerate}"
            parts.append(text)
        return (
            f"RID:{self.rtp_stream_id},RTPStreamCount:{self.rtp_stream_count}"
            f",ActiveSpatialLayers:{{{','.join(parts)}}}"
        )

    # -- encoding -----------------------------------------------------------

    def _index_layers(self) -> tuple[list[int], dict[tuple[int, int], SpatialLayer]]:
        bitmaps = [0] * _MAX_STREAMS
        layers: dict[tuple[int, int], SpatialLayer] = {}
        for layer in self.active_spatial_layers:
            if not 0 <= layer.rtp_stream_id < self.rtp_stream_count:
                raise VLAInvalidStreamIDError(f"invalid RTP stream ID {layer.rtp_stream_id}")
            if not 0 <= layer.spatial_id < _MAX_SPATIAL_LAYERS:
                raise VLAInvalidSpatialIDError(f"invalid spatial ID {layer.spatial_id}")
            if not 1 <= len(layer.target_bitrates) <= _MAX_TEMPORAL_LAYERS:
                raise VLAInvalidTemporalLayerError(
                    f"invalid temporal layer count {len(layer.target_bitrates)}"
                )
            bitmaps[layer.rtp_stream_id] |= 1 << layer.spatial_id
            key = (layer.rtp_stream_id, layer.spatial_id)
            if key in layers:
                raise VLADuplicateSpatialIDError("duplicate spatial layer")
            layers[key] = layer
        return bitmaps, layers

    def marshal(self) -> bytes:
        """Encode the allocation into bytes."""
        if not 0 < self.rtp_stream_count <= _MAX_STREAMS:
            raise VLAInvalidStreamCountError(
                f"invalid RTP stream count {self.rtp_stream_count}"
            )
        if not 0 <= self.rtp_stream_id < self.rtp_stream_count:
            raise VLAInvalidStreamIDError(f"invalid RTP stream ID {self.rtp_stream_id}")

        bitmaps, layers = self._index_layers()
        common = _common_bitmap(bitmaps)
        ordered = [
            layers[(stream, spatial)]
            for stream in range(self.rtp_stream_count)
            for spatial in range(_MAX_SPATIAL_LAYERS)
            if (stream, spatial) in layers
        ]
        encoded = [_encode_leb128(kbps) for layer in ordered for kbps in layer.target_bitrates]

        layer_count = len(self.active_spatial_layers)
        required = 1 if common else 3
        required += max(1, (layer_count + 3) // 4)
        required += sum(len(chunk) for chunk in encoded)
        if self.has_resolution_and_framerate:
            required += layer_count * _RESOLUTION_FIELD_SIZE

        payload = bytearray(required)
        payload[0] = (
            (self.rtp_stream_id << 6) | ((self.rtp_stream_count - 1) << 4) | common
        ) & 0xFF

        offset = 0
        if common == 0:
            offset += 1
            for stream in range(self.rtp_stream_count):
                shift = 4 if stream % 2 == 0 else 0
                payload[offset + stream // 2] |= (bitmaps[stream] << shift) & 0xFF
            offset += (self.rtp_stream_count - 1) // 2

        offset += 1
        slot = 0
        for layer in ordered:
            if slot >= 4:
                slot = 0
                offset += 1
            payload[offset] |= (len(layer.target_bitrates) - 1) << (2 * (3 - slot))
            slot += 1

        offset += 1
        for chunk in encoded:
            payload[offset:offset + len(chunk)] = chunk
            offset += len(chunk)

        if self.has_resolution_and_framerate:
            for layer in self.active_spatial_layers:
                struct.pack_into(
                    "!HHB",
                    payload,
                    offset,
                    (layer.width - 1) & 0xFFFF,
                    (layer.height - 1) & 0xFFFF,
                    layer.framerate & 0xFF,
                )
                offset += _RESOLUTION_FIELD_SIZE

        return bytes(payload)

    # -- decoding -----------------------------------------------------------

    def _read_spatial_bitmaps(self, reader: _Reader) -> list[int]:
        reader.require(1)
        first = reader.payload[reader.offset]
        self.rtp_stream_id = (first >> 6) & 0b11
        self.rtp_stream_count = ((first >> 4) & 0b11) + 1
        field_bm = first & 0b1111
        reader.offset += 1

        bitmaps = [0] * _MAX_STREAMS
        if field_bm:
            for stream in range(self.rtp_stream_count):
                bitmaps[stream] = field_bm
            return bitmaps

        reader.require((self.rtp_stream_count - 1) // 2 + 1)
        for stream in range(self.rtp_stream_count):
            byte = reader.payload[reader.offset + stream // 2]
            bitmaps[stream] = (byte >> 4) & 0b1111 if stream % 2 == 0 else byte & 0b1111
        reader.offset += 1 + (self.rtp_stream_count - 1) // 2
        return bitmaps

    def _read_temporal_layers(self, reader: _Reader, bitmaps: list[int]) -> None:
        reader.require(1)
        slot = 0
        for stream in range(self.rtp_stream_count):
            for spatial in range(_MAX_SPATIAL_LAYERS):
                if not bitmaps[stream] & (1 << spatial):
                    continue
                if slot >= 4:
                    slot = 0
                    reader.offset += 1
                    reader.require(1)
                count = ((reader.payload[reader.offset] >> (2 * (3 - slot))) & 0b11) + 1
                slot += 1
                self.active_spatial_layers.append(
                    SpatialLayer(
                        rtp_stream_id=stream,
                        spatial_id=spatial,
                        target_bitrates=[0] * count,
                    )
                )
        reader.offset += 1

        for layer in self.active_spatial_layers:
            for index in range(len(layer.target_bitrates)):
                kbps, size = _decode_leb128(reader.payload, reader.offset)
                reader.require(size)
                layer.target_bitrates[index] = kbps
                reader.offset += size

    def _read_resolution_and_framerate(self, reader: _Reader) -> None:
        reader.require(len(self.active_spatial_layers) * _RESOLUTION_FIELD_SIZE)
        self.has_resolution_and_framerate = True
        for layer in self.active_spatial_layers:
            width, height, framerate = struct.unpack_from("!HHB", reader.payload, reader.offset)
            layer.width = width + 1
            layer.height = height + 1
            layer.framerate = framerate
            reader.offset += _RESOLUTION_FIELD_SIZE

    def unmarshal(self, payload: bytes) -> int:
        """Decode the allocation from ``payload``; return the number of bytes read."""
        reader = _Reader(bytes(payload))
        self.active_spatial_layers = []
        self.has_resolution_and_framerate = False

        bitmaps = self._read_spatial_bitmaps(reader)
        self._read_temporal_layers(reader, bitmaps)
        if len(reader.payload) == reader.offset:
            return reader.offset
        self._read_resolution_and_framerate(reader)
        return reader.offset