# halodb

A small embedded key-value store. Keys are strings and values are bytes. Keys
are spread over a fixed number of partitions by the MD5 hash of the key. Each
partition is a `Store` with:

- a write-ahead log (`wal.log`), so data survives a restart;
- a sorted in-memory memtable for recent writes, with tombstones for deletes;
- a bloom filter, so lookups of keys that were never written can be skipped;
- an in-memory B+ tree, which takes the memtable's contents when it is flushed.

The memtable is flushed into the tree when it holds 1000 entries, and also
every five seconds by a background thread.

It has no dependencies outside the standard library.

## Installing

    pip install .

To run the tests:

    pip install .[test]
    pytest

## Interactive shell

    halo-db

This opens a prompt backed by four partitions stored under `./data` in the
current directory. It reads commands from standard input until `quit`, `exit`
or end of input:

    halo-db> put user:1 "Jane Doe"
    OK
    halo-db> get user:1
    Jane Doe
    halo-db> list
    user:1
    halo-db> delete user:1
    OK
    halo-db> get user:1
    Error: key not found
    halo-db> quit

| Command             | Effect                                              |
|---------------------|-----------------------------------------------------|
| `put <key> <value>` | store a value; prints `OK`                          |
| `get <key>`         | print the value, or `Error: key not found`          |
| `delete <key>`      | delete a key; prints `OK` even if it was absent     |
| `list`              | print every key, sorted, or `No keys found`         |
| `clear`             | remove every key from every partition               |
| `stats`             | print `total_keys`, `num_partitions` and flags      |
| `tree`              | print the total key count and the partition count   |
| `quit`, `exit`      | leave the shell                                     |

Words are split on whitespace. Put values that contain spaces in double
quotes; a backslash makes the next character literal. The shell's parser and
loop are available as `halodb.cli.parse_command(text)` and
`halodb.cli.run_shell(manager, lines, out)`.

## Using it from Python

```python
from halodb.partition import PartitionManager

with PartitionManager(4, "data") as db:
    db.put("user:1", b"Jane Doe")
    print(db.get("user:1"))   # b'Jane Doe'
    db.delete("user:1")
    print(db.list_keys())     # []
    print(db.stats())
```

`get` raises `halodb.btree.KeyNotFoundError` (a `KeyError`) for a key that is
absent or has been deleted. `partition_for(key)` returns the `Partition` that
owns a key, and `halodb.partition.hash_key(key)` gives the hash used to
choose it. Failures to write the log raise `halodb.wal.WALError`.

The lower layers can be used on their own:

- `halodb.store.Store(data_dir, flush_interval=5.0)` — one store in one
  directory; pass `flush_interval=None` to turn off background flushing.
- `halodb.wal.WriteAheadLog(data_dir)` — `log_insert`, `log_delete`,
  `replay(on_insert, on_delete)`, `clear`, `close`.
- `halodb.memtable.Memtable(capacity)` — sorted buffer with `put`, `get`,
  `delete`, `entries`, `is_full`, `clear`.
- `halodb.btree.BPlusTree()` — `insert`, `find`, `delete`, `list_keys`.
- `halodb.bloom.BloomFilter(size, hash_functions)` with
  `estimate_size(n, p)` and `estimate_hash_functions(m, n)`.

## On-disk layout

Each partition lives in `<data_dir>/partition_<n>/` and has one file,
`wal.log`. Every record in it is a 4-byte big-endian length followed by a JSON
object with `op` (`INSERT` or `DELETE`), `key`, a base64 `value` for non-empty
inserts, and `timestamp` (always 0). Every write is flushed and synced before
it returns. When a store opens, it replays the log to rebuild its tree and
bloom filter. Replay stops quietly at a truncated record or one that cannot be
decoded; records with an unknown `op` are skipped.

## Limits

- The log is the only thing kept on disk. The B+ tree lives in memory, so
  every open replays the whole log, and the log is never compacted; it only
  shrinks when `clear` empties it.
- The B+ tree does not rebalance after deletions.
- There is no network server; the store is used in-process or through the
  `halo-db` shell.