"""RTP packet and header encoding and decoding (RFC 3550, RFC 8285)."""

from __future__ import annotations

import dataclasses
import struct
from dataclasses import dataclass, field

from .exceptions import (
    ExtensionIDRangeError,
    ExtensionSizeError,
    HeaderExtensionNotFoundError,
    HeaderExtensionsNotEnabledError,
    HeaderSizeInsufficientError,
    HeaderSizeInsufficientForExtensionError,
    InvalidPaddingError,
    ShortBufferError,
    TooSmallError,
)

_HEADER_LENGTH = 4
_FIXED_HEADER_LENGTH = 12
_CSRC_LENGTH = 4
_VERSION_SHIFT = 6
_PADDING_SHIFT = 5
_EXTENSION_SHIFT = 4
_MARKER_SHIFT = 7
_CC_MASK = 0x0F
_PT_MASK = 0x7F
_PROFILE_ONE_BYTE = 0xBEDE
_PROFILE_TWO_BYTE = 0x1000
_ID_RESERVED = 0xF


def _round_to_words(size: int) -> int:
    return (size + 3) // 4 * 4


@dataclass(frozen=True)
class Extension:
    """A single header extension element."""

    ext_id: int
    payload: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))


@dataclass
class Header:
    """The fixed RTP header, CSRC list and header extensions."""

    version: int = 0
    padding: bool = False
    extension: bool = False
    marker: bool = False
    payload_type: int = 0
    sequence_number: int = 0
    timestamp: int = 0
    ssrc: int = 0
    csrc: list[int] = field(default_factory=list)
    extension_profile: int = 0
    extensions: list[Extension] = field(default_factory=list)

    # -- decoding -----------------------------------------------------------

    def unmarshal(self, buf: bytes) -> int:
        """Parse a header from ``buf`` and return the number of bytes read."""
        buf = bytes(buf)
        size = len(buf)
        if size < _HEADER_LENGTH:
            raise HeaderSizeInsufficientError(
                f"RTP header size insufficient: {size} < {_HEADER_LENGTH}"
            )

        first = buf[0]
        self.version = (first >> _VERSION_SHIFT) & 0x3
        self.padding = bool((first >> _PADDING_SHIFT) & 0x1)
        self.extension = bool((first >> _EXTENSION_SHIFT) & 0x1)
        csrc_count = first & _CC_MASK

        n = _FIXED_HEADER_LENGTH + csrc_count * _CSRC_LENGTH
        if size < n:
            raise HeaderSizeInsufficientError(
                f"RTP header size insufficient: size {size} < {n}"
            )

        self.marker = bool((buf[1] >> _MARKER_SHIFT) & 0x1)
        self.payload_type = buf[1] & _PT_MASK
        self.sequence_number, self.timestamp, self.ssrc = struct.unpack_from("!HII", buf, 2)
        self.csrc = list(struct.unpack_from(f"!{csrc_count}I", buf, _FIXED_HEADER_LENGTH))
        self.extensions = []

        if not self.extension:
            return n

        if size < n + 4:
            raise HeaderSizeInsufficientForExtensionError(
                f"RTP header size insufficient for extension: size {size} < {n + 4}"
            )
        self.extension_profile, words = struct.unpack_from("!HH", buf, n)
        n += 4
        extension_end = n + words * 4
        if size < extension_end:
            raise HeaderSizeInsufficientForExtensionError(
                f"RTP header size insufficient for extension: size {size} < {extension_end}"
            )

        if self.extension_profile in (_PROFILE_ONE_BYTE, _PROFILE_TWO_BYTE):
            return self._unmarshal_rfc8285(buf, n, extension_end)

        self.extensions.append(Extension(0, buf[n:extension_end]))
        return extension_end

    def _unmarshal_rfc8285(self, buf: bytes, n: int, end: int) -> int:
        size = len(buf)
        one_byte = self.extension_profile == _PROFILE_ONE_BYTE
        while n < end:
            if buf[n] == 0x00:
                n += 1
                continue
            if one_byte:
                ext_id = buf[n] >> 4
                length = (buf[n] & 0x0F) + 1
                n += 1
                if ext_id == _ID_RESERVED:
                    break
            else:
                ext_id = buf[n]
                n += 1
                if size <= n:
                    raise HeaderSizeInsufficientForExtensionError(
                        f"RTP header size insufficient for extension: size {size} < {n}"
                    )
                length = buf[n]
                n += 1
            payload_end = n + length
            if size <= payload_end:
                raise HeaderSizeInsufficientForExtensionError(
                    f"RTP header size insufficient for extension: size {size} < {payload_end}"
                )
            self.extensions.append(Extension(ext_id, buf[n:payload_end]))
            n = payload_end
        return n

    # -- encoding -----------------------------------------------------------

    def _raw_extension_payload(self) -> bytes:
        return self.extensions[0].payload if self.extensions else b""

    def _header_size(self) -> int:
        size = _FIXED_HEADER_LENGTH + len(self.csrc) * _CSRC_LENGTH
        if self.extension:
            ext_size = 4
            if self.extension_profile == _PROFILE_ONE_BYTE:
                ext_size += sum(1 + len(e.payload) for e in self.extensions)
            elif self.extension_profile == _PROFILE_TWO_BYTE:
                ext_size += sum(2 + len(e.payload) for e in self.extensions)
            else:
                ext_size += len(self._raw_extension_payload())
            size += _round_to_words(ext_size)
        return size

    def marshal_size(self) -> int:
        """Return the size of the encoded header."""
        return self._header_size()

    def marshal(self) -> bytes:
        """Encode the header into bytes."""
        buf = bytearray(self.marshal_size())
        n = self.marshal_to(buf)
        return bytes(buf[:n])

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Encode the header into ``buf`` and return the number of bytes written."""
        size = self._header_size()
        if size > len(buf):
            raise ShortBufferError(f"buffer too small: {len(buf)} < {size}")

        first = ((self.version << _VERSION_SHIFT) | len(self.csrc)) & 0xFF
        if self.padding:
            first |= 1 << _PADDING_SHIFT
        if self.extension:
            first |= 1 << _EXTENSION_SHIFT
        second = self.payload_type & 0xFF
        if self.marker:
            second |= 1 << _MARKER_SHIFT

        struct.pack_into(
            "!BBHII", buf, 0, first, second,
            self.sequence_number & 0xFFFF, self.timestamp & 0xFFFFFFFF, self.ssrc & 0xFFFFFFFF,
        )
        n = _FIXED_HEADER_LENGTH
        for source in self.csrc:
            struct.pack_into("!I", buf, n, source & 0xFFFFFFFF)
            n += _CSRC_LENGTH

        if not self.extension:
            return n

        ext_header_pos = n
        struct.pack_into("!H", buf, n, self.extension_profile & 0xFFFF)
        n += 4
        start = n

        if self.extension_profile == _PROFILE_ONE_BYTE:
            for ext in self.extensions:
                buf[n] = ((ext.ext_id << 4) | ((len(ext.payload) - 1) & 0xFF)) & 0xFF
                n += 1
                buf[n:n + len(ext.payload)] = ext.payload
                n += len(ext.payload)
        elif self.extension_profile == _PROFILE_TWO_BYTE:
            for ext in self.extensions:
                buf[n] = ext.ext_id & 0xFF
                buf[n + 1] = len(ext.payload) & 0xFF
                n += 2
                buf[n:n + len(ext.payload)] = ext.payload
                n += len(ext.payload)
        else:
            raw = self._raw_extension_payload()
            if len(raw) % 4:
                raise ExtensionSizeError(
                    f"RFC 3550 header extension must be a multiple of 4 bytes actual({len(raw)})"
                )
            buf[n:n + len(raw)] = raw
            n += len(raw)

        ext_size = n - start
        rounded = _round_to_words(ext_size)
        struct.pack_into("!H", buf, ext_header_pos + 2, (rounded // 4) & 0xFFFF)
        pad = rounded - ext_size
        buf[n:n + pad] = bytes(pad)
        return n + pad

    # -- extension access ---------------------------------------------------

    def set_extension(self, ext_id: int, payload: bytes) -> None:
        """Add or replace the extension with ``ext_id``."""
        payload = bytes(payload)
        if self.extension:
            if self.extension_profile == _PROFILE_ONE_BYTE:
                if not 1 <= ext_id <= 14:
                    raise ExtensionIDRangeError(
                        f"one-byte header extension id must be between 1 and 14 actual({ext_id})"
                    )
                if len(payload) > 16:
                    raise ExtensionSizeError(
                        "one-byte header extension payload must be 16 bytes or less "
                        f"actual({len(payload)})"
                    )
            elif self.extension_profile == _PROFILE_TWO_BYTE:
                if ext_id < 1:
                    raise ExtensionIDRangeError(
                        f"two-byte header extension id must be between 1 and 255 actual({ext_id})"
                    )
                if len(payload) > 255:
                    raise ExtensionSizeError(
                        "two-byte header extension payload must be 255 bytes or less "
                        f"actual({len(payload)})"
                    )
            elif ext_id != 0:
                raise ExtensionIDRangeError(
                    f"RFC 3550 header extension id must be 0 actual({ext_id})"
                )

            for index, ext in enumerate(self.extensions):
                if ext.ext_id == ext_id:
                    self.extensions[index] = Extension(ext_id, payload)
                    return
            self.extensions.append(Extension(ext_id, payload))
            return

        self.extension = True
        if len(payload) <= 16:
            self.extension_profile = _PROFILE_ONE_BYTE
        elif len(payload) < 256:
            self.extension_profile = _PROFILE_TWO_BYTE
        self.extensions.append(Extension(ext_id, payload))

    def get_extension_ids(self) -> list[int]:
        """Return the IDs of the extensions, empty when extensions are disabled."""
        if not self.extension:
            return []
        return [ext.ext_id for ext in self.extensions]

    def get_extension(self, ext_id: int) -> bytes | None:
        """Return the payload of the extension with ``ext_id``, or None."""
        if not self.extension:
            return None
        for ext in self.extensions:
            if ext.ext_id == ext_id:
                return ext.payload
        return None

    def del_extension(self, ext_id: int) -> None:
        """Remove the extension with ``ext_id``."""
        if not self.extension:
            raise HeaderExtensionsNotEnabledError("h.Extension not enabled")
        for index, ext in enumerate(self.extensions):
            if ext.ext_id == ext_id:
                del self.extensions[index]
                return
        raise HeaderExtensionNotFoundError(f"header extension not found actual({ext_id})")

    def clone(self) -> Header:
        """Return a deep copy of the header."""
        return dataclasses.replace(
            self, csrc=list(self.csrc), extensions=list(self.extensions)
        )


@dataclass
class Packet(Header):
    """An RTP packet: header, payload and padding."""

    payload: bytes = b""
    padding_size: int = 0

    def __str__(self) -> str:
        return (
            "RTP PACKET:\n"
            f"\tVersion: {self.version}\n"
            f"\tMarker: {str(self.marker).lower()}\n"
            f"\tPayload Type: {self.payload_type}\n"
            f"\tSequence Number: {self.sequence_number}\n"
            f"\tTimestamp: {self.timestamp}\n"
            f"\tSSRC: {self.ssrc} ({self.ssrc:x})\n"
            f"\tPayload Length: {len(self.payload)}\n"
        )

    def unmarshal(self, buf: bytes) -> None:  # type: ignore[override]
        """Parse a whole packet from ``buf``."""
        buf = bytes(buf)
        n = super().unmarshal(buf)
        end = len(buf)
        if self.padding:
            if end <= n:
                raise TooSmallError("buffer too small")
            self.padding_size = buf[end - 1]
            end -= self.padding_size
        else:
            self.padding_size = 0
        if end < n:
            raise TooSmallError("buffer too small")
        self.payload = buf[n:end]

    def marshal_size(self) -> int:
        """Return the size of the encoded packet."""
        return self._header_size() + len(self.payload) + self.padding_size

    def marshal(self) -> bytes:
        """Encode the packet into bytes."""
        buf = bytearray(self.marshal_size())
        n = self.marshal_to(buf)
        return bytes(buf[:n])

    def marshal_to(self, buf: bytearray | memoryview) -> int:
        """Encode the packet into ``buf`` and return the number of bytes written."""
        if self.padding and self.padding_size == 0:
            raise InvalidPaddingError("invalid RTP padding")
        n = super().marshal_to(buf)
        total = n + len(self.payload) + self.padding_size
        if total > len(buf):
            raise ShortBufferError(f"buffer too small: {len(buf)} < {total}")
        end = n + len(self.payload)
        buf[n:end] = self.payload
        buf[end:total] = bytes(self.padding_size)
        if self.padding:
            buf[total - 1] = self.padding_size
        return total

    def clone(self) -> Packet:
        """Return a deep copy of the packet."""
        return dataclasses.replace(
            self,
            csrc=list(self.csrc),
            extensions=list(self.extensions),
            payload=bytes(self.payload),
        )