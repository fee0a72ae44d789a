"""Sorted in-memory write buffer with tombstones for deleted keys."""

from __future__ import annotations

import threading
from bisect import bisect_left
from dataclasses import dataclass
from operator import attrgetter

from halodb.constants import MEMTABLE_SIZE

_by_key = attrgetter("key")


@dataclass(frozen=True)
class Entry:
    """A key and its value; a value of None marks a deletion."""

    key: str
    value: bytes | None


class Memtable:
    """Thread-safe sorted buffer of recent writes."""

    def __init__(self, capacity: int = MEMTABLE_SIZE) -> None:
        self.capacity = capacity if capacity > 0 else MEMTABLE_SIZE
        self._entries: list[Entry] = []
        self._lock = threading.RLock()

    def _position(self, key: str) -> int:
        return bisect_left(self._entries, key, key=_by_key)

    def put(self, key: str, value: bytes | None) -> None:
        """Insert or overwrite ``key``; a None value is a tombstone."""
        with self._lock:
            pos = self._position(key)
            entry = Entry(key, value)
            if pos < len(self._entries) and self._entries[pos].key == key:
                self._entries[pos] = entry
            else:
                self._entries.insert(pos, entry)

    def get(self, key: str) -> bytes | None:
        """Return the buffered value (None for a tombstone); KeyError if absent."""
        with self._lock:
            pos = self._position(key)
            if pos < len(self._entries) and self._entries[pos].key == key:
                return self._entries[pos].value
        raise KeyError(key)

    def delete(self, key: str) -> None:
        """Record a tombstone for ``key``."""
        self.put(key, None)

    def entries(self) -> list[Entry]:
        """A snapshot of all entries in key order."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def is_full(self) -> bool:
        return len(self) >= self.capacity

    def clear(self) -> None:
        with self._lock:
            self._entries = []