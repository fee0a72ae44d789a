"""Hash partitioning of keys across several independent stores."""

from __future__ import annotations

import hashlib
import os
import threading

from halodb.store import Store


def hash_key(key: str) -> int:
    """The first four bytes of the key's MD5 digest, read big-endian."""
    digest = hashlib.md5(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


class Partition:
    """One shard of the key space, backed by its own store directory."""

    def __init__(self, partition_id: int, data_dir: str | os.PathLike[str]) -> None:
        self.partition_id = partition_id
        self.data_dir = os.path.join(os.fspath(data_dir), f"partition_{partition_id}")
        self._store = Store(self.data_dir)

    def put(self, key: str, value: bytes) -> None:
        self._store.put(key, value)

    def get(self, key: str) -> bytes:
        """Return the value for ``key``; KeyNotFoundError if absent."""
        return self._store.get(key)

    def delete(self, key: str) -> None:
        self._store.delete(key)

    def list_keys(self) -> list[str]:
        return self._store.list_keys()

    def clear(self) -> None:
        self._store.clear()

    def close(self) -> None:
        self._store.close()


class PartitionManager:
    """Routes each key to one of ``num_partitions`` partitions by hash."""

    def __init__(self, num_partitions: int, data_dir: str | os.PathLike[str]) -> None:
        if num_partitions < 1:
            raise ValueError("number of partitions must be at least 1")
        self.num_partitions = num_partitions
        self.data_dir = os.fspath(data_dir)
        self._lock = threading.RLock()
        self._partitions: list[Partition] = []
        try:
            for partition_id in range(num_partitions):
                self._partitions.append(Partition(partition_id, self.data_dir))
        except BaseException:
            for opened in self._partitions:
                opened.close()
            raise

    def partition_for(self, key: str) -> Partition:
        """The partition that owns ``key``."""
        return self._partitions[hash_key(key) % self.num_partitions]

    def put(self, key: str, value: bytes) -> None:
        self.partition_for(key).put(key, value)

    def get(self, key: str) -> bytes:
        """Return the value for ``key``; KeyNotFoundError if absent."""
        return self.partition_for(key).get(key)

    def delete(self, key: str) -> None:
        self.partition_for(key).delete(key)

    def list_keys(self) -> list[str]:
        """Every live key across all partitions, sorted."""
        with self._lock:
            keys: set[str] = set()
            for partition in self._partitions:
                keys.update(partition.list_keys())
            return sorted(keys)

    def clear(self) -> None:
        """Remove every key from every partition."""
        with self._lock:
            for partition in self._partitions:
                partition.clear()

    def close(self) -> None:
        for partition in self._partitions:
            partition.close()

    def stats(self) -> dict[str, object]:
        with self._lock:
            total = sum(len(partition.list_keys()) for partition in self._partitions)
            return {
                "total_keys": total,
                "num_partitions": self.num_partitions,
                "bloom_filter": "enabled",
                "partitioning": "enabled",
            }

    def __enter__(self) -> PartitionManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()