"""Interactive shell for the partitioned key-value store."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable, Iterator
from typing import TextIO

from halodb.btree import KeyNotFoundError
from halodb.constants import DATA_DIR, NUM_PARTITIONS
from halodb.partition import PartitionManager
from halodb.wal import WALError

PROMPT = "halo-db> "
_ERRORS = (KeyNotFoundError, WALError, OSError)


def parse_command(text: str) -> list[str]:
    """Split a command line on whitespace, honouring double quotes and backslash escapes."""
    parts: list[str] = []
    current: list[str] = []
    in_quotes = False
    escape_next = False

    for char in text:
        if escape_next:
            current.append(char)
            escape_next = False
        elif char == "\\":
            escape_next = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char.isspace() and not in_quotes:
            if current:
                parts.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        parts.append("".join(current))
    return parts


def _prompted(lines: Iterable[str], out: TextIO) -> Iterator[str]:
    source = iter(lines)
    while True:
        out.write(PROMPT)
        out.flush()
        line = next(source, None)
        if line is None:
            return
        yield line


def _execute(manager: PartitionManager, parts: list[str], out: TextIO) -> bool:
    """Run one parsed command; return False when the shell should stop."""
    command = parts[0]

    def say(text: str) -> None:
        out.write(text + "\n")

    if command in ("quit", "exit"):
        return False
    if command == "put":
        if len(parts) != 3:
            say("Usage: put <key> <value>")
            say('Example: put user:1925 "Halil Bülent Orhon"')
            return True
        try:
            manager.put(parts[1], parts[2].encode("utf-8"))
        except _ERRORS as exc:
            say(f"Error: {exc}")
        else:
            say("OK")
    elif command == "get":
        if len(parts) != 2:
            say("Usage: get <key>")
            return True
        try:
            value = manager.get(parts[1])
        except _ERRORS as exc:
            say(f"Error: {exc}")
        else:
            say(value.decode("utf-8", errors="replace"))
    elif command == "delete":
        if len(parts) != 2:
            say("Usage: delete <key>")
            return True
        try:
            manager.delete(parts[1])
        except _ERRORS as exc:
            say(f"Error: {exc}")
        else:
            say("OK")
    elif command == "list":
        keys = manager.list_keys()
        if not keys:
            say("No keys found")
        for key in keys:
            say(key)
    elif command == "clear":
        try:
            manager.clear()
        except _ERRORS as exc:
            say(f"Error: {exc}")
        else:
            say("OK")
    elif command == "stats":
        for name, value in manager.stats().items():
            say(f"{name}: {value}")
    elif command == "tree":
        stats = manager.stats()
        say(f"Total keys: {stats['total_keys']}")
        say(f"Partitions: {stats['num_partitions']}")
    else:
        say(f"Unknown command: {command}")
    return True


def run_shell(manager: PartitionManager, lines: Iterable[str], out: TextIO) -> None:
    """Read commands from ``lines`` and write responses to ``out`` until quit or end of input."""
    for line in _prompted(lines, out):
        parts = parse_command(line.strip())
        if parts and not _execute(manager, parts, out):
            return


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="halo-db", description="Partitioned key-value store shell."
    )
    parser.parse_args(argv)

    try:
        manager = PartitionManager(NUM_PARTITIONS, DATA_DIR)
    except (WALError, OSError) as exc:
        print(f"Failed to initialize partition manager: {exc}")
        return 1

    try:
        print(f"HaloDB - Partitioned Key-Value Store ({NUM_PARTITIONS} partitions)")
        print(
            "Commands: put <key> <value>, get <key>, delete <key>, "
            "list, clear, stats, tree, quit"
        )
        print('Note: Use quotes for values with spaces: put key "value with spaces"')
        print()
        run_shell(manager, sys.stdin, sys.stdout)
    finally:
        try:
            manager.close()
        except (WALError, OSError) as exc:
            print(f"Error closing partition manager: {exc}")
    return 0


if __name__ == "__main__":
    sys.exit(main())