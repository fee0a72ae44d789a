"""Tunable defaults shared across the storage engine."""

DATA_DIR = "data"

NUM_PARTITIONS = 4

MEMTABLE_SIZE = 1000

WAL_FILE_NAME = "wal.log"

MAX_KEYS = 4