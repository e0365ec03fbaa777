"""An append-only, thread-safe singly linked list."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


@dataclass(eq=False)
class _Node:
    value: Any
    next: Optional["_Node"] = None


class AppendList(Generic[T]):
    """A list that only grows.

    Items are appended at the end; iterators follow the links, so an
    iteration in progress also sees items appended after it started.
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._lock = threading.Lock()
        self._head: Optional[_Node] = None
        self._tail: Optional[_Node] = None
        for item in items:
            self.append(item)

    def _attach(self, first: _Node, last: _Node) -> None:
        with self._lock:
            if self._tail is None:
                self._head = first
            else:
                self._tail.next = first
            self._tail = last

    def _detach(self) -> tuple[Optional[_Node], Optional[_Node]]:
        with self._lock:
            first, last = self._head, self._tail
            self._head = self._tail = None
            return first, last

    def append(self, value: T) -> None:
        """Add ``value`` at the end of the list."""
        node = _Node(value)
        self._attach(node, node)

    def append_list(self, other: "AppendList[T]") -> None:
        """Move every item of ``other`` to the end of this list, emptying ``other``."""
        if other is self:
            raise ValueError("cannot append a list to itself")
        first, last = other._detach()
        if first is not None and last is not None:
            self._attach(first, last)

    def __iter__(self) -> Iterator[T]:
        node = self._head
        while node is not None:
            yield node.value
            node = node.next

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return self._head is not None

    def __repr__(self) -> str:
        return f"AppendList({list(self)!r})"