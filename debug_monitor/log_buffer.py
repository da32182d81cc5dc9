"""Bounded in-memory store for pushed engine log entries."""

from __future__ import annotations

from collections import deque

from debug_monitor.models import LogEntry

DEFAULT_CAPACITY = 100


class LogRingBuffer:
    """Append-only FIFO of log entries with a fixed capacity.

    Once full, each append evicts exactly the oldest entry. Duplicate
    entries are kept in arrival order.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the buffer.

        Args:
            capacity: Maximum number of entries kept

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"Log buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self.evicted_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: LogEntry) -> None:
        if len(self._entries) == self.capacity:
            self.evicted_count += 1
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> tuple[LogEntry, ...]:
        """Entries oldest first."""
        return tuple(self._entries)
