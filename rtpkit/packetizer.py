"""Splitting media frames into RTP packets."""

from __future__ import annotations

import random
from typing import Protocol, runtime_checkable

from .packet import Packet
from .sequencer import Sequencer

_RTP_HEADER_SIZE = 12
_PADDING_PACKET_SIZE = 255

_rng = random.SystemRandom()


@runtime_checkable
class Payloader(Protocol):
    """Splits a media frame into payloads that fit in RTP packets."""

    def payload(self, mtu: int, payload: bytes) -> list[bytes]:
        """Return the RTP payloads for ``payload``, each at most ``mtu`` bytes."""


@runtime_checkable
class PartitionHeadChecker(Protocol):
    """Tells whether an RTP payload starts a new partition (e.g. a keyframe)."""

    def is_partition_head(self, payload: bytes) -> bool:
        """Return True if ``payload`` is the head of a partition."""


class Packetizer:
    """Turns media frames into RTP packets for a single stream."""

    def __init__(
        self,
        mtu: int,
        payload_type: int,
        ssrc: int,
        payloader: Payloader,
        sequencer: Sequencer,
        clock_rate: int,
        timestamp: int | None = None,
    ) -> None:
        self.mtu = mtu
        self.payload_type = payload_type
        self.ssrc = ssrc
        self.payloader = payloader
        self.sequencer = sequencer
        self.clock_rate = clock_rate
        self.timestamp = _rng.getrandbits(32) if timestamp is None else timestamp & 0xFFFFFFFF

    def packetize(self, payload: bytes, samples: int) -> list[Packet]:
        """Split ``payload`` into packets and advance the timestamp by ``samples``."""
        if not payload:
            return []

        payloads = self.payloader.payload((self.mtu - _RTP_HEADER_SIZE) & 0xFFFF, payload)
        last = len(payloads) - 1
        packets = [
            Packet(
                version=2,
                padding=False,
                extension=False,
                marker=index == last,
                payload_type=self.payload_type,
                sequence_number=self.sequencer.next_sequence_number(),
                timestamp=self.timestamp,
                ssrc=self.ssrc,
                csrc=[],
                payload=bytes(chunk),
            )
            for index, chunk in enumerate(payloads)
        ]
        self.timestamp = (self.timestamp + samples) & 0xFFFFFFFF
        return packets

    def generate_padding(self, samples: int) -> list[Packet]:
        """Return ``samples`` padding-only packets carrying the current timestamp."""
        if samples == 0:
            return []

        padding_payload = bytes(_PADDING_PACKET_SIZE - 1) + bytes([_PADDING_PACKET_SIZE])
        return [
            Packet(
                version=2,
                padding=True,
                extension=False,
                marker=False,
                payload_type=self.payload_type,
                sequence_number=self.sequencer.next_sequence_number(),
                timestamp=self.timestamp,
                ssrc=self.ssrc,
                csrc=[],
                payload=padding_payload,
            )
            for _ in range(samples)
        ]

    def skip_samples(self, skipped_samples: int) -> None:
        """Leave a gap of ``skipped_samples`` in the timestamps of later packets."""
        self.timestamp = (self.timestamp + skipped_samples) & 0xFFFFFFFF