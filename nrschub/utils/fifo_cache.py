"""A bounded, thread-safe key/value cache."""

from __future__ import annotations

import threading
from typing import Dict, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class FifoCache(Generic[K, V]):
    """Keeps at most ``capacity`` entries.

    When the cache is full, an insert first drops the most recently added
    entry, making room for the new one.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._items: Dict[K, V] = {}
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            return self._items.get(key)

    def insert(self, key: K, value: V) -> Optional[V]:
        """Store ``value`` and return the value previously held by ``key``."""
        with self._lock:
            while len(self._items) > self._capacity - 1:
                self._items.popitem()
            previous = self._items.get(key)
            self._items[key] = value
            return previous

    def remove(self, key: K) -> Optional[V]:
        with self._lock:
            return self._items.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)