"""Payload formats of individual RTP header extensions."""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import RTPError, TooSmallError

_PLAYOUT_DELAY_SIZE = 3
_PLAYOUT_DELAY_MAX = (1 << 12) - 1
_TRANSPORT_CC_SIZE = 2


class _PlayoutDelayInvalidValueError(RTPError, ValueError):
    """A playout delay does not fit in 12 bits."""


@dataclass
class PlayoutDelayExtension:
    """Playout delay extension: two 12-bit delays in units of 10 ms."""

    min_delay: int = 0
    max_delay: int = 0

    def marshal(self) -> bytes:
        """Encode the delays into three bytes."""
        for value in (self.min_delay, self.max_delay):
            if not 0 <= value <= _PLAYOUT_DELAY_MAX:
                raise _PlayoutDelayInvalidValueError("invalid playout delay value")
        return bytes(
            [
                (self.min_delay >> 4) & 0xFF,
                ((self.min_delay << 4) & 0xFF) | (self.max_delay >> 8),
                self.max_delay & 0xFF,
            ]
        )

    def unmarshal(self, raw_data: bytes) -> None:
        """Decode the delays from ``raw_data``; extra bytes are ignored."""
        if len(raw_data) < _PLAYOUT_DELAY_SIZE:
            raise TooSmallError(f"buffer too small: {len(raw_data)} < {_PLAYOUT_DELAY_SIZE}")
        self.min_delay = int.from_bytes(raw_data[0:2], "big") >> 4
        self.max_delay = int.from_bytes(raw_data[1:3], "big") & 0x0FFF


@dataclass
class TransportCCExtension:
    """Transport-wide congestion control extension carrying a sequence number."""

    transport_sequence: int = 0

    def marshal(self) -> bytes:
        """Encode the sequence number as two big-endian bytes."""
        return self.transport_sequence.to_bytes(_TRANSPORT_CC_SIZE, "big")

    def unmarshal(self, raw_data: bytes) -> None:
        """Decode the sequence number from ``raw_data``; extra bytes are ignored."""
        if len(raw_data) < _TRANSPORT_CC_SIZE:
            raise TooSmallError(f"buffer too small: {len(raw_data)} < {_TRANSPORT_CC_SIZE}")
        self.transport_sequence = int.from_bytes(raw_data[0:2], "big")