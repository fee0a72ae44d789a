"""A single-directory key-value store: WAL, memtable, Bloom filter and B+ tree."""

from __future__ import annotations

import os
import threading

from halodb.bloom import BloomFilter, estimate_hash_functions, estimate_size
from halodb.btree import BPlusTree, KeyNotFoundError
from halodb.constants import MEMTABLE_SIZE
from halodb.memtable import Memtable
from halodb.wal import WriteAheadLog

FLUSH_INTERVAL = 5.0
_FALSE_POSITIVE_RATE = 0.01


class Store:
    """A durable key-value store rooted at ``data_dir``.

    Writes go to the log and the memtable; the memtable is flushed into the
    tree when full and, if ``flush_interval`` is set, periodically in the
    background.
    """

    def __init__(
        self,
        data_dir: str | os.PathLike[str],
        flush_interval: float | None = FLUSH_INTERVAL,
    ) -> None:
        self.data_dir = os.fspath(data_dir)
        self._tree = BPlusTree()
        self._memtable = Memtable(MEMTABLE_SIZE)
        self._wal = WriteAheadLog(data_dir)
        size = estimate_size(MEMTABLE_SIZE, _FALSE_POSITIVE_RATE)
        self._bloom = BloomFilter(size, estimate_hash_functions(size, MEMTABLE_SIZE))
        self._lock = threading.RLock()
        self._stop = threading.Event()

        try:
            self._replay_wal()
        except BaseException:
            self._wal.close()
            raise

        self._flusher: threading.Thread | None = None
        if flush_interval and flush_interval > 0:
            self._flusher = threading.Thread(
                target=self._background_flush,
                args=(flush_interval,),
                name=f"flush:{self.data_dir}",
                daemon=True,
            )
            self._flusher.start()

    def put(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``."""
        with self._lock:
            self._wal.log_insert(key, value)
            self._memtable.put(key, bytes(value))
            self._bloom.add(key)
            if self._memtable.is_full():
                self._flush_memtable()

    def get(self, key: str) -> bytes:
        """Return the value for ``key``; KeyNotFoundError if absent."""
        with self._lock:
            try:
                value = self._memtable.get(key)
            except KeyError:
                pass
            else:
                if value is None:
                    raise KeyNotFoundError(key)
                return value
            if key not in self._bloom:
                raise KeyNotFoundError(key)
            return self._tree.find(key)

    def delete(self, key: str) -> None:
        """Delete ``key``; deleting an absent key is not an error."""
        with self._lock:
            self._wal.log_delete(key)
            self._memtable.delete(key)
            if self._memtable.is_full():
                self._flush_memtable()

    def list_keys(self) -> list[str]:
        """Every live key, sorted."""
        with self._lock:
            keys = set(self._tree.list_keys())
            for entry in self._memtable.entries():
                if entry.value is not None:
                    keys.add(entry.key)
                else:
                    keys.discard(entry.key)
            return sorted(keys)

    def close(self) -> None:
        """Stop background flushing and close the log."""
        self._stop.set()
        flusher = self._flusher
        if flusher is not None and flusher is not threading.current_thread():
            flusher.join()
        self._wal.close()

    def clear(self) -> None:
        """Remove every key, on disk and in memory."""
        with self._lock:
            self._wal.clear()
            self._tree = BPlusTree()
            self._memtable.clear()
            self._bloom.clear()

    def stats(self) -> dict[str, object]:
        with self._lock:
            return {
                "memtable_size": len(self._memtable),
                "data_dir": self.data_dir,
                "wal_enabled": True,
                "bloom_filter": "enabled",
            }

    def _flush_memtable(self) -> None:
        for entry in self._memtable.entries():
            if entry.value is not None:
                self._tree.insert(entry.key, entry.value)
                self._bloom.add(entry.key)
            else:
                try:
                    self._tree.delete(entry.key)
                except KeyNotFoundError:
                    pass
        self._memtable.clear()

    def _background_flush(self, interval: float) -> None:
        while not self._stop.wait(interval):
            with self._lock:
                if len(self._memtable) > 0:
                    self._flush_memtable()

    def _replay_wal(self) -> None:
        def on_insert(key: str, value: bytes) -> None:
            self._tree.insert(key, value)
            self._bloom.add(key)

        def on_delete(key: str) -> None:
            try:
                self._tree.delete(key)
            except KeyNotFoundError:
                pass

        self._wal.replay(on_insert, on_delete)

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()