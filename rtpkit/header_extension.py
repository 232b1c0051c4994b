"""Stand-alone RTP header extension blocks (RFC 3550 and RFC 8285)."""

from __future__ import annotations

from typing import Iterator, NamedTuple

from .exceptions import (
    ExtensionIDRangeError,
    ExtensionSizeError,
    HeaderExtensionNotFoundError,
    ShortBufferError,
    TooSmallError,
)

_PROFILE_ONE_BYTE = 0xBEDE
_PROFILE_TWO_BYTE = 0x1000
_ID_RESERVED = 0xF
_BLOCK_HEADER_SIZE = 4


class _Element(NamedTuple):
    ext_id: int
    start: int
    data_start: int
    data_end: int


def _read_profile(buf: bytes) -> int:
    if len(buf) < 2:
        raise TooSmallError(f"extension block too small: {len(buf)} < 2")
    return int.from_bytes(buf[0:2], "big")


def _copy_into(payload: bytearray, buf: bytearray | memoryview) -> int:
    size = len(payload)
    if size > len(buf):
        raise ShortBufferError(f"buffer too small: {len(buf)} < {size}")
    buf[:size] = payload
    return size


class _ExtensionBlock:
    """Holds the raw bytes of an extension block, profile header included."""

    def __init__(self, payload: bytes = b"") -> None:
        self._payload = bytearray(payload)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({bytes(self._payload)!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._payload == other._payload

    def _require_block_header(self) -> None:
        if len(self._payload) < _BLOCK_HEADER_SIZE:
            raise TooSmallError(
                f"extension block too small: {len(self._payload)} < {_BLOCK_HEADER_SIZE}"
            )

    def _bump_count(self) -> None:
        count = int.from_bytes(self._payload[2:4], "big")
        self._payload[2:4] = ((count + 1) & 0xFFFF).to_bytes(2, "big")


class OneByteHeaderExtension(_ExtensionBlock):
    """An RFC 8285 one-byte header extension block."""

    def _elements(self, stop_at_reserved: bool = False) -> Iterator[_Element]:
        data = self._payload
        n = _BLOCK_HEADER_SIZE
        while n < len(data):
            byte = data[n]
            if byte == 0x00:
                n += 1
                continue
            ext_id = byte >> 4
            length = (byte & 0x0F) + 1
            if stop_at_reserved and ext_id == _ID_RESERVED:
                return
            yield _Element(ext_id, n, n + 1, n + 1 + length)
            n += 1 + length

    def set(self, ext_id: int, payload: bytes) -> None:
        """Add or replace the element with ``ext_id``."""
        if not 1 <= ext_id <= 14:
            raise ExtensionIDRangeError(
                f"one-byte header extension id must be between 1 and 14 actual({ext_id})"
            )
        if len(payload) > 16:
            raise ExtensionSizeError(
                f"one-byte header extension payload must be 16 bytes or less actual({len(payload)})"
            )
        if not payload:
            raise ExtensionSizeError(
                "one-byte header extension payload must not be empty actual(0)"
            )
        self._require_block_header()
        encoded = bytes([(ext_id << 4) | (len(payload) - 1)]) + bytes(payload)
        for element in self._elements():
            if element.ext_id == ext_id:
                self._payload[element.start:element.data_end] = encoded
                return
        self._payload += encoded
        self._bump_count()

    def get_ids(self) -> list[int]:
        """Return the IDs of the elements, stopping at the reserved ID."""
        return [element.ext_id for element in self._elements(stop_at_reserved=True)]

    def get(self, ext_id: int) -> bytes | None:
        """Return the payload of the element with ``ext_id``, or None."""
        for element in self._elements():
            if element.ext_id == ext_id:
                return bytes(self._payload[element.data_start:element.data_end])
        return None

    def delete(self, ext_id: int) -> None:
        """Remove the element with ``ext_id``."""
        for element in self._elements():
            if element.ext_id == ext_id:
                del self._payload[element.start:element.data_end]
                return
        raise HeaderExtensionNotFoundError(f"header extension not found actual({ext_id})")

    def unmarshal(self, buf: bytes) -> int:
        """Load a one-byte extension block; return the number of bytes consumed."""
        if _read_profile(buf) != _PROFILE_ONE_BYTE:
            raise HeaderExtensionNotFoundError(
                f"header extension not found actual({bytes(buf[0:2]).hex()})"
            )
        self._payload = bytearray(buf)
        return len(buf)

    def marshal(self) -> bytes:
        """Return the encoded extension block."""
        return bytes(self._payload)

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the encoded block into ``buf`` and return the number of bytes written."""
        return _copy_into(self._payload, buf)

    def marshal_size(self) -> int:
        """Return the size of the encoded block."""
        return len(self._payload)


class TwoByteHeaderExtension(_ExtensionBlock):
    """An RFC 8285 two-byte header extension block."""

    def _elements(self) -> Iterator[_Element]:
        data = self._payload
        n = _BLOCK_HEADER_SIZE
        while n < len(data):
            ext_id = data[n]
            if ext_id == 0x00:
                n += 1
                continue
            if n + 1 >= len(data):
                return
            length = data[n + 1]
            yield _Element(ext_id, n, n + 2, n + 2 + length)
            n += 2 + length

    def set(self, ext_id: int, payload: bytes) -> None:
        """Add or replace the element with ``ext_id``."""
        if not 1 <= ext_id <= 255:
            raise ExtensionIDRangeError(
                f"two-byte header extension id must be between 1 and 255 actual({ext_id})"
            )
        if len(payload) > 255:
            raise ExtensionSizeError(
                f"two-byte header extension payload must be 255 bytes or less actual({len(payload)})"
            )
        self._require_block_header()
        encoded = bytes([ext_id, len(payload)]) + bytes(payload)
        for element in self._elements():
            if element.ext_id == ext_id:
                self._payload[element.start:element.data_end] = encoded
                return
        self._payload += encoded
        self._bump_count()

    def get_ids(self) -> list[int]:
        """Return the IDs of the elements."""
        return [element.ext_id for element in self._elements()]

    def get(self, ext_id: int) -> bytes | None:
        """Return the payload of the element with ``ext_id``, or None."""
        for element in self._elements():
            if element.ext_id == ext_id:
                return bytes(self._payload[element.data_start:element.data_end])
        return None

    def delete(self, ext_id: int) -> None:
        """Remove the element with ``ext_id``."""
        for element in self._elements():
            if element.ext_id == ext_id:
                del self._payload[element.start:element.data_end]
                return
        raise HeaderExtensionNotFoundError(f"header extension not found actual({ext_id})")

    def unmarshal(self, buf: bytes) -> int:
        """Load a two-byte extension block; return the number of bytes consumed."""
        if _read_profile(buf) != _PROFILE_TWO_BYTE:
            raise HeaderExtensionNotFoundError(
                f"header extension not found actual({bytes(buf[0:2]).hex()})"
            )
        self._payload = bytearray(buf)
        return len(buf)

    def marshal(self) -> bytes:
        """Return the encoded extension block."""
        return bytes(self._payload)

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the encoded block into ``buf`` and return the number of bytes written."""
        return _copy_into(self._payload, buf)

    def marshal_size(self) -> int:
        """Return the size of the encoded block."""
        return len(self._payload)


class RawExtension(_ExtensionBlock):
    """An RFC 3550 header extension holding a single opaque payload with ID 0."""

    def set(self, ext_id: int, payload: bytes) -> None:
        """Replace the payload; only ID 0 is allowed."""
        if ext_id != 0:
            raise ExtensionIDRangeError(
                f"RFC 3550 header extension id must be 0 actual({ext_id})"
            )
        self._payload = bytearray(payload)

    def get_ids(self) -> list[int]:
        """Return the only ID a raw extension has."""
        return [0]

    def get(self, ext_id: int) -> bytes | None:
        """Return the payload for ID 0, None for any other ID."""
        if ext_id == 0:
            return bytes(self._payload)
        return None

    def delete(self, ext_id: int) -> None:
        """Clear the payload; only ID 0 is allowed."""
        if ext_id != 0:
            raise ExtensionIDRangeError(
                f"RFC 3550 header extension id must be 0 actual({ext_id})"
            )
        self._payload = bytearray()

    def unmarshal(self, buf: bytes) -> int:
        """Load a raw block; RFC 8285 profiles are rejected."""
        if _read_profile(buf) in (_PROFILE_ONE_BYTE, _PROFILE_TWO_BYTE):
            raise HeaderExtensionNotFoundError(
                f"header extension not found actual({bytes(buf[0:2]).hex()})"
            )
        self._payload = bytearray(buf)
        return len(buf)

    def marshal(self) -> bytes:
        """Return the raw extension payload."""
        return bytes(self._payload)

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Write the payload into ``buf`` and return the number of bytes written."""
        return _copy_into(self._payload, buf)

    def marshal_size(self) -> int:
        """Return the size of the payload."""
        return len(self._payload)