"""Unit tests for LogRingBuffer."""

import pytest

from conftest import make_log
from debug_monitor.log_buffer import DEFAULT_CAPACITY, LogRingBuffer


class TestLogRingBuffer:
    """Test bounded FIFO behavior."""

    def test_default_capacity(self) -> None:
        assert LogRingBuffer().capacity == DEFAULT_CAPACITY == 100

    def test_keeps_last_n_entries_in_order(self) -> None:
        """Test that appending N+k entries leaves exactly the last N, oldest first."""
        buffer = LogRingBuffer(capacity=5)

        for i in range(8):
            buffer.append(make_log(f"entry {i}"))

        assert len(buffer) == 5
        assert [entry.message for entry in buffer.entries()] == [
            "entry 3",
            "entry 4",
            "entry 5",
            "entry 6",
            "entry 7",
        ]
        assert buffer.evicted_count == 3

    def test_no_eviction_below_capacity(self) -> None:
        buffer = LogRingBuffer(capacity=5)

        for i in range(5):
            buffer.append(make_log(f"entry {i}"))

        assert [entry.message for entry in buffer.entries()][0] == "entry 0"
        assert buffer.evicted_count == 0

    def test_duplicates_are_kept(self) -> None:
        buffer = LogRingBuffer(capacity=3)
        entry = make_log("same")

        buffer.append(entry)
        buffer.append(entry)

        assert buffer.entries() == (entry, entry)

    def test_clear_empties_buffer(self) -> None:
        buffer = LogRingBuffer(capacity=3)
        buffer.append(make_log("a"))

        buffer.clear()

        assert len(buffer) == 0
        assert buffer.entries() == ()

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError, match="capacity must be positive"):
            LogRingBuffer(capacity=0)
