"""A value that is set at most once and can be awaited."""

from __future__ import annotations

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class Once(Generic[T]):
    """Holds a value produced by the first :meth:`call_once`.

    Readers calling :meth:`get` block until the value is available.
    Passing ``None`` (the default) leaves it uninitialised.
    """

    def __init__(self, value: Optional[T] = None) -> None:
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._started = False
        self._value: Optional[T] = None
        if value is not None:
            self._value = value
            self._started = True
            self._ready.set()

    def call_once(self, func: Callable[[], T]) -> bool:
        """Set the value from ``func()``; return False if already set or in progress."""
        with self._lock:
            if self._started:
                return False
            self._started = True
        self._value = func()
        self._ready.set()
        return True

    def get(self, timeout: Optional[float] = None) -> T:
        """Return the value, waiting for it; raise TimeoutError if it never comes."""
        if not self._ready.wait(timeout):
            raise TimeoutError("Once value was not set in time")
        return self._value  # type: ignore[return-value]

    def is_completed(self) -> bool:
        """True once some ``call_once`` has finished."""
        return self._ready.is_set()