"""Fixed-capacity event store with sequence addressing.

PUBLIC API:
  - RingBuffer: Circular per-target event buffer
  - Slice: Result of an offset-based read
"""

import time
from dataclasses import dataclass
from typing import Callable

from cdptap.cdp.models import EventEnvelope

__all__ = ["RingBuffer", "Slice"]


@dataclass
class Slice:
    """Events read from a buffer plus the cursor to resume from."""

    events: list[EventEnvelope]
    next_offset: int


class RingBuffer:
    """Circular buffer that assigns monotonically increasing sequence numbers.

    Retained sequences are always the contiguous range
    ``[next_sequence - count, next_sequence)``. When full, a push overwrites the
    oldest slot, so readers must treat sequence as a cursor, not an index.

    Not thread-safe on its own; the owning session serializes access.

    Attributes:
        capacity: Maximum number of retained events.
    """

    def __init__(self, capacity: int = 10000, clock: Callable[[], float] = time.time):
        """Initialize buffer.

        Args:
            capacity: Maximum retained events. Must be positive.
            clock: Wall-clock source in seconds, injectable for tests.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._clock = clock
        self._slots: list[EventEnvelope | None] = [None] * capacity
        self._head = 0  # oldest retained slot
        self._write_cursor = 0
        self._count = 0
        self._next_sequence = 0
        self.last_update_at = clock()

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    @property
    def oldest_sequence(self) -> int:
        return self._next_sequence - self._count

    def push(self, event: EventEnvelope) -> int:
        """Append event, overwriting the oldest one when full.

        Args:
            event: Envelope to store; its sequence is overwritten.

        Returns:
            Sequence number assigned to the event.
        """
        sequence = self._next_sequence
        event.sequence = sequence
        self._next_sequence += 1

        self._slots[self._write_cursor] = event
        self._write_cursor = (self._write_cursor + 1) % self.capacity

        if self._count == self.capacity:
            self._head = (self._head + 1) % self.capacity
        else:
            self._count += 1

        self.last_update_at = self._clock()
        return sequence

    def slice_by_offset(self, offset: int, limit: int) -> Slice:
        """Read events with ``sequence >= offset`` in ascending order.

        An offset older than the retained window silently starts at the oldest
        retained event. An offset at or past the end returns nothing.

        Args:
            offset: First sequence wanted.
            limit: Maximum number of events.

        Returns:
            Slice with events and the sequence to resume from.
        """
        oldest = self.oldest_sequence
        if offset >= self._next_sequence:
            return Slice(events=[], next_offset=self._next_sequence)

        start = max(offset, oldest)
        take = min(max(limit, 0), self._next_sequence - start)

        events = []
        first_slot = self._head + (start - oldest)
        for i in range(take):
            event = self._slots[(first_slot + i) % self.capacity]
            if event is not None:
                events.append(event)

        return Slice(events=events, next_offset=start + take)

    def get_tail(self, limit: int = 200) -> Slice:
        """Most recent ``limit`` events."""
        return self.slice_by_offset(max(0, self._next_sequence - limit), limit)

    def find_last(self, predicate: Callable[[EventEnvelope], bool]) -> EventEnvelope | None:
        """Newest retained event matching predicate."""
        for i in range(self._count - 1, -1, -1):
            event = self._slots[(self._head + i) % self.capacity]
            if event is not None and predicate(event):
                return event
        return None

    def clear(self) -> None:
        """Drop all events. Sequence numbering restarts at 0."""
        self._slots = [None] * self.capacity
        self._head = 0
        self._write_cursor = 0
        self._count = 0
        self._next_sequence = 0
        self.last_update_at = self._clock()

    def size(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def is_expired(self, ttl_sec: float, now: float | None = None) -> bool:
        """True if the last push (or creation/clear) is older than ttl_sec."""
        now = self._clock() if now is None else now
        return now - self.last_update_at > ttl_sec
