"""
Bounded activity log for one monitor session.

A fixed slot list plus head index: append and eviction are O(1), and
entries are never rewritten once appended.
"""

from datetime import datetime
from typing import Callable, Iterator, List, Optional, Tuple

from syncwatch.core.config import DEFAULT_LOG_CAPACITY

TIME_FORMAT = "%X"


class EventLog:
    """
    Ring buffer of timestamped, human-readable trace lines.

    Usage:
        log = EventLog(capacity=50)
        log.append("Connected to sync progress stream")
        log.snapshot()  # ("[14:02:11] Connected to sync progress stream",)
    """

    def __init__(
        self,
        capacity: int = DEFAULT_LOG_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._clock = clock
        self._slots: List[Optional[str]] = [None] * capacity
        self._head = 0  # index of the oldest entry
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, line: str) -> str:
        """
        Timestamp and store a line, evicting the oldest entry when full.

        Returns:
            The stored entry
        """
        entry = f"[{self._clock().strftime(TIME_FORMAT)}] {line}"
        if self._size < self._capacity:
            self._slots[(self._head + self._size) % self._capacity] = entry
            self._size += 1
        else:
            # Full: the oldest slot is overwritten and the head moves on
            self._slots[self._head] = entry
            self._head = (self._head + 1) % self._capacity
        return entry

    def clear(self) -> None:
        self._slots = [None] * self._capacity
        self._head = 0
        self._size = 0

    def snapshot(self) -> Tuple[str, ...]:
        """Entries oldest first, as an immutable tuple."""
        return tuple(self)

    def __iter__(self) -> Iterator[str]:
        for offset in range(self._size):
            yield self._slots[(self._head + offset) % self._capacity]

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"EventLog(size={self._size}, capacity={self._capacity})"
