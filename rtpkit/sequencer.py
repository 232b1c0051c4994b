"""Sequence number generation for outgoing RTP packets."""

from __future__ import annotations

import random
import threading

# Only half of the sequence number space is used for a random start, so that
# a rollover does not happen right after the stream starts.
_MAX_INITIAL_RANDOM_SEQUENCE_NUMBER = (1 << 15) - 1

_rng = random.SystemRandom()


class Sequencer:
    """Hands out consecutive 16-bit sequence numbers and counts rollovers.

    ``last`` is the number issued before the first call to
    :meth:`next_sequence_number`; the first number handed out is ``last + 1``.
    Safe to use from several threads.
    """

    def __init__(self, last: int = 0) -> None:
        self._sequence_number = last & 0xFFFF
        self._roll_over_count = 0
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"Sequencer(last={self._sequence_number}, "
            f"roll_over_count={self._roll_over_count})"
        )

    def next_sequence_number(self) -> int:
        """Advance and return the next sequence number."""
        with self._lock:
            self._sequence_number = (self._sequence_number + 1) & 0xFFFF
            if self._sequence_number == 0:
                self._roll_over_count += 1
            return self._sequence_number

    def roll_over_count(self) -> int:
        """Return how many times the 16-bit sequence number has wrapped."""
        with self._lock:
            return self._roll_over_count


def random_sequencer() -> Sequencer:
    """Return a sequencer starting from a random sequence number."""
    return Sequencer(_rng.randrange(_MAX_INITIAL_RANDOM_SEQUENCE_NUMBER))


def fixed_sequencer(start: int) -> Sequencer:
    """Return a sequencer whose first sequence number is ``start``."""
    return Sequencer((start - 1) & 0xFFFF)