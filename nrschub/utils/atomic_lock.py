"""A non-blocking lock that can only be tried, never waited on."""

from __future__ import annotations

import threading
from typing import Optional


class AtomicLockGuard:
    """Holds an :class:`AtomicLock` until released or the ``with`` block ends."""

    def __init__(self, owner: "AtomicLock") -> None:
        self._owner = owner
        self._released = False

    def release(self) -> None:
        """Unlock the owning lock; calling it again does nothing."""
        if not self._released:
            self._released = True
            self._owner._unlock()

    def __enter__(self) -> "AtomicLockGuard":
        return self

    def __exit__(self, *args) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "held"
        return f"AtomicLockGuard({state})"


class AtomicLock:
    """A flag-style lock: ``try_lock`` succeeds only while nobody holds it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_lock(self) -> Optional[AtomicLockGuard]:
        """Return a guard if the lock was free, otherwise ``None``."""
        if not self._lock.acquire(blocking=False):
            return None
        return AtomicLockGuard(self)

    def is_locked(self) -> bool:
        return self._lock.locked()

    def _unlock(self) -> None:
        self._lock.release()

    def __repr__(self) -> str:
        return f"AtomicLock(locked={self.is_locked()})"