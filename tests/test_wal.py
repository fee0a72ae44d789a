import struct

import pytest

from halodb.wal import LogEntry, Operation, WALError, WriteAheadLog


def _recorder():
    ops = []

    def on_insert(key, value):
        ops.append(("insert", key, value))

    def on_delete(key):
        ops.append(("delete", key, None))

    return ops, on_insert, on_delete


def _frame(payload: bytes) -> bytes:
    return struct.pack(">I", len(payload)) + payload


def _replay(wal):
    ops, on_insert, on_delete = _recorder()
    wal.replay(on_insert, on_delete)
    return ops


def test_basic_operations_are_logged(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("test-key", b"test-value")
        wal.log_delete("test-key")
        assert (tmp_path / "wal.log").stat().st_size > 0
        assert _replay(wal) == [
            ("insert", "test-key", b"test-value"),
            ("delete", "test-key", None),
        ]


def test_replay_after_reopen(tmp_path):
    operations = [
        ("insert", "key1", b"value1"),
        ("insert", "key2", b"value2"),
        ("delete", "key1", None),
        ("insert", "key3", b"value3"),
    ]
    wal = WriteAheadLog(tmp_path)
    for op, key, value in operations:
        if op == "insert":
            wal.log_insert(key, value)
        else:
            wal.log_delete(key)
    wal.close()

    with WriteAheadLog(tmp_path) as wal2:
        assert _replay(wal2) == operations


def test_clear_empties_file(tmp_path):
    wal = WriteAheadLog(tmp_path)
    wal.log_insert("key1", b"value1")
    wal.clear()
    assert (tmp_path / "wal.log").stat().st_size == 0
    assert _replay(wal) == []
    wal.close()


def test_new_database_replays_nothing(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        assert _replay(wal) == []


def test_creates_nested_directory(tmp_path):
    target = tmp_path / "a" / "b"
    with WriteAheadLog(target) as wal:
        wal.log_insert("k", b"v")
    assert (target / "wal.log").is_file()


def test_record_format_is_length_prefixed_json(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("k", b"v")
    payload = b'{"op":"INSERT","key":"k","value":"dg==","timestamp":0}'
    assert (tmp_path / "wal.log").read_bytes() == _frame(payload)


def test_delete_record_omits_value():
    entry = LogEntry(Operation.DELETE, "k")
    assert entry.encode() == b'{"op":"DELETE","key":"k","timestamp":0}'


def test_html_characters_escaped_and_round_trip():
    entry = LogEntry(Operation.INSERT, "<a&b>", b"x")
    encoded = entry.encode()
    assert b"<" not in encoded and b"&" not in encoded
    assert b"\\u003c" in encoded
    assert LogEntry.decode(encoded) == entry


def test_non_ascii_key_round_trip(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("user:ü", "Bülent".encode())
        assert _replay(wal) == [("insert", "user:ü", "Bülent".encode())]


def test_empty_value_replays_as_empty_bytes(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("k", b"")
        assert _replay(wal) == [("insert", "k", b"")]


def test_corrupted_file_stops_replay_quietly(tmp_path):
    WriteAheadLog(tmp_path).close()
    (tmp_path / "wal.log").write_bytes(b"corrupted data")
    with WriteAheadLog(tmp_path) as wal:
        assert _replay(wal) == []


def test_records_before_garbage_are_replayed(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("good", b"1")
    with open(tmp_path / "wal.log", "ab") as fh:
        fh.write(_frame(b"not json"))
        fh.write(_frame(LogEntry(Operation.INSERT, "after", b"2").encode()))
    with WriteAheadLog(tmp_path) as wal:
        assert _replay(wal) == [("insert", "good", b"1")]


def test_header_without_data_raises(tmp_path):
    (tmp_path / "wal.log").write_bytes(struct.pack(">I", 10))
    ops, on_insert, on_delete = _recorder()
    with WriteAheadLog(tmp_path) as wal:
        with pytest.raises(WALError):
            wal.replay(on_insert, on_delete)
    assert ops == []


def test_unknown_operation_is_skipped(tmp_path):
    data = _frame(b'{"op":"NOOP","key":"x","timestamp":0}') + _frame(
        LogEntry(Operation.INSERT, "y", b"z").encode()
    )
    (tmp_path / "wal.log").write_bytes(data)
    with WriteAheadLog(tmp_path) as wal:
        assert _replay(wal) == [("insert", "y", b"z")]


def test_handler_error_is_wrapped(tmp_path):
    def failing_insert(key, value):
        raise RuntimeError("boom")

    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("k", b"v")
        with pytest.raises(WALError) as info:
            wal.replay(failing_insert, lambda key: None)
    assert isinstance(info.value.__cause__, RuntimeError)


def test_missing_file_replays_nothing(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        (tmp_path / "wal.log").unlink()
        assert _replay(wal) == []


def test_write_after_close_raises(tmp_path):
    with WriteAheadLog(tmp_path) as wal:
        wal.log_insert("k", b"v")
    with pytest.raises(WALError):
        wal.log_insert("k2", b"v2")
    with pytest.raises(WALError):
        wal.log_delete("k")


def test_decode_rejects_malformed_payloads():
    with pytest.raises(ValueError):
        LogEntry.decode(b"corrupted data")
    with pytest.raises(ValueError):
        LogEntry.decode(b"5")
    with pytest.raises(ValueError):
        LogEntry.decode(b'{"op":"INSERT","key":"k","value":"***"}')


def test_decode_unknown_operation_returns_none():
    assert LogEntry.decode(b'{"op":"NOOP","key":"k"}') is None