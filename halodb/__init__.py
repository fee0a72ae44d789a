"""A partitioned key-value store with a write-ahead log, memtable, bloom filter and B+ tree."""

__version__ = "0.1.0"