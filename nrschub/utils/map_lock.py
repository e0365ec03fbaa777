"""A lock over sets of keys: holders of disjoint keys run side by side."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Generic, Hashable, Iterable, Optional, Set, Tuple, TypeVar

T = TypeVar("T", bound=Hashable)


@dataclass(eq=False)
class _Task(Generic[T]):
    keys: Tuple[T, ...]
    ready: threading.Event = field(default_factory=threading.Event)


class MapLockGuard(Generic[T]):
    """Holds a set of keys of a :class:`MapLock` until released."""

    def __init__(self, owner: "MapLock[T]", keys: Tuple[T, ...]) -> None:
        self._owner = owner
        self._keys = keys
        self._released = False

    @property
    def keys(self) -> Tuple[T, ...]:
        return self._keys

    def release(self) -> None:
        """Free the keys and wake every waiter that can now proceed."""
        if not self._released:
            self._released = True
            self._owner._release_keys(self._keys)

    def __enter__(self) -> "MapLockGuard[T]":
        return self

    def __exit__(self, *args) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"MapLockGuard(keys={self._keys!r})"


class MapLock(Generic[T]):
    """Locks keys by name; waiters are woken in the order they queued."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._keys: Set[T] = set()
        self._tasks: Deque[_Task[T]] = deque()

    def __repr__(self) -> str:
        return "MapLock{ ... }"

    def waiter_count(self) -> int:
        """Number of callers blocked in :meth:`lock`."""
        with self._mutex:
            return len(self._tasks)

    def _is_locked(self, keys: Iterable[T]) -> bool:
        return any(key in self._keys for key in keys)

    def _dequeue_ready(self) -> Optional[_Task[T]]:
        for task in self._tasks:
            if not self._is_locked(task.keys):
                self._tasks.remove(task)
                return task
        return None

    def _release_keys(self, keys: Tuple[T, ...]) -> None:
        with self._mutex:
            self._keys.difference_update(keys)
            while (task := self._dequeue_ready()) is not None:
                self._keys.update(task.keys)
                task.ready.set()

    def try_lock(self, keys: Iterable[T]) -> Optional[MapLockGuard[T]]:
        """Lock all ``keys`` at once, or return ``None`` if any is taken."""
        keys = tuple(keys)
        with self._mutex:
            if self._is_locked(keys):
                return None
            self._keys.update(keys)
        return MapLockGuard(self, keys)

    def lock(self, keys: Iterable[T]) -> MapLockGuard[T]:
        """Lock all ``keys``, blocking until none of them is held."""
        keys = tuple(keys)
        with self._mutex:
            if not self._is_locked(keys):
                self._keys.update(keys)
                return MapLockGuard(self, keys)
            task: _Task[T] = _Task(keys)
            self._tasks.append(task)
        # The releasing side marks our keys as held before waking us.
        task.ready.wait()
        return MapLockGuard(self, keys)