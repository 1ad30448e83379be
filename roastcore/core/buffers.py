from __future__ import annotations

import threading
from typing import Generic, List, Optional

from .ranges import S, filter_by_time_range


class TemporalRingBuffer(Generic[S]):
    """Thread-safe fixed-capacity ring buffer of timestamped samples.

    Slots are preallocated; a write cursor walks them and overwrites the
    oldest sample once the buffer is full. Readers only ever receive copies
    in logical (insertion) order, never the slot list itself.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity: int = capacity
        self._slots: List[Optional[S]] = [None] * capacity
        self._write_index: int = 0
        self._full: bool = False
        self._lock = threading.RLock()

    def push(self, sample: S) -> None:
        with self._lock:
            self._slots[self._write_index] = sample
            self._write_index = (self._write_index + 1) % self._capacity
            if self._write_index == 0:
                self._full = True

    def size(self) -> int:
        with self._lock:
            return self._capacity if self._full else self._write_index

    def capacity(self) -> int:
        return self._capacity

    def is_full(self) -> bool:
        with self._lock:
            return self._full

    def get_all(self) -> List[S]:
        with self._lock:
            if not self._full:
                return list(self._slots[: self._write_index])  # type: ignore[arg-type]
            # Oldest sample sits at the write cursor once we have wrapped
            return self._slots[self._write_index :] + self._slots[: self._write_index]  # type: ignore[return-value]

    def get_range(self, start: float, end: float) -> List[S]:
        return filter_by_time_range(self.get_all(), start, end)

    def latest(self) -> Optional[S]:
        with self._lock:
            if not self._full and self._write_index == 0:
                return None
            return self._slots[(self._write_index - 1) % self._capacity]

    def clear(self) -> None:
        with self._lock:
            self._slots = [None] * self._capacity
            self._write_index = 0
            self._full = False
