"""A slot that accepts a value only the first time."""

from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

_UNSET = object()


class OnceOption(Generic[T]):
    """Can be set once; :meth:`get` returns ``None`` until then."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: object = _UNSET

    def set(self, value: T) -> Optional[T]:
        """Store ``value``; if already set, hand ``value`` back unchanged."""
        with self._lock:
            if self._value is not _UNSET:
                return value
            self._value = value
            return None

    def get(self) -> Optional[T]:
        value = self._value
        return None if value is _UNSET else value  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"OnceOption({self.get()!r})"