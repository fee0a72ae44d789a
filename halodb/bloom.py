"""A simple Bloom filter keyed on strings, using seeded FNV-1a hashes."""

from __future__ import annotations

import math
from collections.abc import Iterator

_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def _fnv1a_64(data: bytes, h: int = _FNV_OFFSET) -> int:
    for byte in data:
        h = ((h ^ byte) * _FNV_PRIME) & _MASK64
    return h


class BloomFilter:
    """Probabilistic set membership: no false negatives, some false positives."""

    def __init__(self, size: int, hash_functions: int) -> None:
        if size <= 0:
            raise ValueError("bloom filter size must be positive")
        if hash_functions < 0:
            raise ValueError("number of hash functions must not be negative")
        self.size = size
        self.hash_functions = hash_functions
        self._bits = bytearray(size)

    def _indexes(self, key: str) -> Iterator[int]:
        prefix = _fnv1a_64(key.encode("utf-8"))
        for seed in range(self.hash_functions):
            digest = ((prefix ^ (seed & 0xFF)) * _FNV_PRIME) & _MASK64
            yield digest % self.size

    def add(self, key: str) -> None:
        """Record ``key`` in the filter."""
        for index in self._indexes(key):
            self._bits[index] = 1

    def contains(self, key: str) -> bool:
        """Return False if ``key`` was certainly never added."""
        return all(self._bits[index] for index in self._indexes(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def clear(self) -> None:
        """Forget every key."""
        self._bits = bytearray(self.size)


def estimate_size(n: int, p: float) -> int:
    """Bit count for ``n`` items at false-positive rate ``p``."""
    if p <= 0 or p >= 1:
        return 1000
    return int(-n * math.log(p) / (math.log(2) * math.log(2)))


def estimate_hash_functions(m: int, n: int) -> int:
    """Optimal number of hash functions for ``m`` bits and ``n`` items."""
    if n == 0:
        raise ValueError("number of items must be non-zero")
    return int(m / n * math.log(2))