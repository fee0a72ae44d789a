"""An in-memory B+ tree mapping string keys to byte values."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field

from halodb.constants import MAX_KEYS


class KeyNotFoundError(KeyError):
    """Raised when a key is absent."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return "key not found"


@dataclass(eq=False)
class _Node:
    is_leaf: bool
    keys: list[str] = field(default_factory=list)
    values: list[bytes] = field(default_factory=list)
    children: list[_Node] = field(default_factory=list)
    next: _Node | None = None
    parent: _Node | None = None

    def is_full(self) -> bool:
        return len(self.keys) >= MAX_KEYS

    def index_of(self, key: str) -> int | None:
        pos = bisect_left(self.keys, key)
        if pos < len(self.keys) and self.keys[pos] == key:
            return pos
        return None

    def put(self, key: str, value: bytes) -> None:
        pos = bisect_left(self.keys, key)
        if pos < len(self.keys) and self.keys[pos] == key:
            self.values[pos] = value
        else:
            self.keys.insert(pos, key)
            self.values.insert(pos, value)

    def child_for(self, key: str) -> _Node:
        return self.children[bisect_right(self.keys, key)]


class BPlusTree:
    """A B+ tree without rebalancing on deletion."""

    def __init__(self) -> None:
        self._root: _Node | None = None

    def insert(self, key: str, value: bytes) -> None:
        """Insert ``key`` or overwrite its value."""
        if self._root is None:
            self._root = _Node(is_leaf=True)
            self._root.put(key, value)
            return
        leaf = self._find_leaf(key)
        if leaf.index_of(key) is not None or not leaf.is_full():
            leaf.put(key, value)
            return
        self._split_leaf(leaf, key, value)

    def find(self, key: str) -> bytes:
        """Return the value for ``key``; KeyNotFoundError if absent."""
        if self._root is not None:
            leaf = self._find_leaf(key)
            pos = leaf.index_of(key)
            if pos is not None:
                return leaf.values[pos]
        raise KeyNotFoundError(key)

    def delete(self, key: str) -> None:
        """Remove ``key``; KeyNotFoundError if absent."""
        if self._root is not None:
            leaf = self._find_leaf(key)
            pos = leaf.index_of(key)
            if pos is not None:
                del leaf.keys[pos]
                del leaf.values[pos]
                return
        raise KeyNotFoundError(key)

    def list_keys(self) -> list[str]:
        """All keys in ascending order."""
        if self._root is None:
            return []
        keys: list[str] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                keys.extend(node.keys)
            else:
                stack.extend(reversed(node.children))
        return keys

    def _find_leaf(self, key: str) -> _Node:
        assert self._root is not None
        node = self._root
        while not node.is_leaf:
            node = node.child_for(key)
        return node

    def _split_leaf(self, leaf: _Node, key: str, value: bytes) -> None:
        pos = bisect_right(leaf.keys, key)
        keys = leaf.keys[:pos] + [key] + leaf.keys[pos:]
        values = leaf.values[:pos] + [value] + leaf.values[pos:]
        split = len(keys) // 2

        new_leaf = _Node(
            is_leaf=True,
            keys=keys[split:],
            values=values[split:],
            next=leaf.next,
            parent=leaf.parent,
        )
        leaf.keys = keys[:split]
        leaf.values = values[:split]
        leaf.next = new_leaf
        self._insert_into_parent(leaf, new_leaf.keys[0], new_leaf)

    def _insert_into_parent(self, left: _Node, key: str, right: _Node) -> None:
        parent = left.parent
        if parent is None:
            self._root = _Node(is_leaf=False, keys=[key], children=[left, right])
            left.parent = self._root
            right.parent = self._root
            return

        left_index = next(i for i, child in enumerate(parent.children) if child is left)
        if not parent.is_full():
            parent.keys.insert(left_index, key)
            parent.children.insert(left_index + 1, right)
            right.parent = parent
            return
        self._split_internal(parent, left_index, key, right)

    def _split_internal(self, node: _Node, left_index: int, key: str, right: _Node) -> None:
        keys = list(node.keys)
        keys.insert(left_index, key)
        children = list(node.children)
        children.insert(left_index + 1, right)

        split = len(keys) // 2
        promoted = keys[split - 1]

        new_node = _Node(
            is_leaf=False,
            keys=keys[split:],
            children=children[split:],
            parent=node.parent,
        )
        for child in new_node.children:
            child.parent = new_node

        node.keys = keys[: split - 1]
        node.children = children[:split]
        for child in node.children:
            child.parent = node

        self._insert_into_parent(node, promoted, new_node)