"""Append-only write-ahead log of length-prefixed JSON records."""

from __future__ import annotations

import base64
import json
import os
import struct
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from halodb.constants import WAL_FILE_NAME

_LENGTH = struct.Struct(">I")
_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


class WALError(Exception):
    """Raised when the log cannot be written, read or replayed."""


class Operation(str, Enum):
    INSERT = "INSERT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class LogEntry:
    """One logged operation."""

    operation: Operation
    key: str
    value: bytes | None = None
    timestamp: int = 0

    def encode(self) -> bytes:
        """Serialise to the JSON payload stored in the log."""
        record: dict[str, object] = {"op": self.operation.value, "key": self.key}
        if self.value:
            record["value"] = base64.b64encode(self.value).decode("ascii")
        record["timestamp"] = self.timestamp
        text = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
        return text.translate(_ESCAPES).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> LogEntry | None:
        """Parse a payload; None for an unknown operation, ValueError if malformed."""
        record = json.loads(data)
        if not isinstance(record, dict):
            raise ValueError("log record is not an object")

        op = record.get("op") or ""
        key = record.get("key") or ""
        if not isinstance(op, str) or not isinstance(key, str):
            raise ValueError("log record has a non-string field")

        raw = record.get("value")
        if raw is None:
            value = None
        elif isinstance(raw, str):
            value = base64.b64decode(raw, validate=True)
        else:
            raise ValueError("log record value is not a string")

        timestamp = record.get("timestamp")
        if timestamp is None:
            timestamp = 0
        elif isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("log record timestamp is not an integer")

        try:
            operation = Operation(op)
        except ValueError:
            return None
        return cls(operation, key, value, timestamp)


def _timestamp() -> int:
    return 0


class WriteAheadLog:
    """A durable, append-only log kept in ``<data_dir>/wal.log``."""

    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self.directory = Path(data_dir)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WALError(f"failed to create data directory: {exc}") from exc
        self.path = self.directory / WAL_FILE_NAME
        self._lock = threading.Lock()
        self._file: BinaryIO | None = self._open_for_append()

    def _open_for_append(self) -> BinaryIO:
        try:
            return open(self.path, "ab")
        except OSError as exc:
            raise WALError(f"failed to open WAL file: {exc}") from exc

    def log_insert(self, key: str, value: bytes) -> None:
        """Durably record an insertion."""
        self._append(LogEntry(Operation.INSERT, key, bytes(value), _timestamp()))

    def log_delete(self, key: str) -> None:
        """Durably record a deletion."""
        self._append(LogEntry(Operation.DELETE, key, None, _timestamp()))

    def _append(self, entry: LogEntry) -> None:
        data = entry.encode()
        with self._lock:
            if self._file is None:
                raise WALError("WAL is closed")
            try:
                self._file.write(_LENGTH.pack(len(data)) + data)
                self._file.flush()
                os.fsync(self._file.fileno())
            except OSError as exc:
                raise WALError(f"failed to write to WAL: {exc}") from exc

    def replay(
        self,
        on_insert: Callable[[str, bytes], object],
        on_delete: Callable[[str], object],
    ) -> None:
        """Feed every logged operation, in order, to the handlers.

        Replay stops quietly at a truncated or unreadable record.
        """
        with self._lock:
            try:
                reader = open(self.path, "rb")
            except FileNotFoundError:
                return
            except OSError as exc:
                raise WALError(f"failed to open WAL file for replay: {exc}") from exc

            with reader:
                if self._file is None:
                    self._file = self._open_for_append()
                for entry in self._read_entries(reader):
                    if entry.operation is Operation.INSERT:
                        value = entry.value if entry.value is not None else b""
                        try:
                            on_insert(entry.key, value)
                        except Exception as exc:
                            raise WALError(f"failed to replay insert operation: {exc}") from exc
                    else:
                        try:
                            on_delete(entry.key)
                        except Exception as exc:
                            raise WALError(f"failed to replay delete operation: {exc}") from exc

    @staticmethod
    def _read_entries(reader: BinaryIO) -> Iterator[LogEntry]:
        while True:
            header = reader.read(_LENGTH.size)
            if len(header) < _LENGTH.size:
                return
            (length,) = _LENGTH.unpack(header)
            data = reader.read(length)
            if length and not data:
                raise WALError("failed to read data from WAL: unexpected end of file")
            if len(data) < length:
                return
            try:
                entry = LogEntry.decode(data)
            except ValueError:
                return
            if entry is not None:
                yield entry

    def close(self) -> None:
        """Close the log file; further writes raise WALError."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def clear(self) -> None:
        """Discard every record, leaving an empty log file."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
            try:
                self.path.unlink(missing_ok=True)
            except OSError as exc:
                raise WALError(f"failed to remove WAL file: {exc}") from exc
            try:
                self._file = open(self.path, "ab")
            except OSError as exc:
                raise WALError(f"failed to create new WAL file: {exc}") from exc

    def __enter__(self) -> WriteAheadLog:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()