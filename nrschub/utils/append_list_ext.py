"""An append-only, thread-safe linked list whose items can be cleared."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")

_CLEARED = object()


@dataclass(eq=False)
class _Node:
    value: Any
    next: Optional["_Node"] = None


class AppendListExt(Generic[T]):
    """Like an append-only list, but items may be cleared in place.

    Cleared items keep their slot in the chain and are skipped when
    iterating or counting.
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

    def _nodes(self) -> Iterator[_Node]:
        node = self._head
        while node is not None:
            yield node
            node = node.next

    def append(self, value: T) -> None:
        """Add ``value`` at the end of the list."""
        node = _Node(value)
        self._attach(node, node)

    def append_list(self, other: "AppendListExt[T]") -> None:
        """Move every slot of ``other`` to the end of this list, emptying ``other``."""
        if other is self:
            raise ValueError("cannot append a list to itself")
        first, last = other._detach()
        if first is not None and last is not None:
            self._attach(first, last)

    def remove_with(self, predicate: Callable[[T], bool]) -> bool:
        """Clear the first live item for which ``predicate`` is true.

        Returns True if an item was cleared.
        """
        for node in self._nodes():
            value = node.value
            if value is _CLEARED or not predicate(value):
                continue
            with self._lock:
                if node.value is _CLEARED:
                    continue
                node.value = _CLEARED
            return True
        return False

    def __iter__(self) -> Iterator[T]:
        for node in self._nodes():
            value = node.value
            if value is not _CLEARED:
                yield value

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return any(True for _ in self)

    def __repr__(self) -> str:
        return f"AppendListExt({list(self)!r})"