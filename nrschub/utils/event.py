"""Typed events with globally registered, asynchronously run handlers."""

from __future__ import annotations

import threading
from typing import Callable, ClassVar, Generic, List, Optional, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound="Event")


class EventHandlers(Generic[T]):
    """The handlers registered for one event type."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: List[Callable[[T], None]] = []

    def add(self, handler: Callable[[T], None]) -> None:
        with self._lock:
            self._handlers.append(handler)

    def run(self, data: T) -> Optional[threading.Thread]:
        """Run every handler on ``data`` in a background thread.

        Returns the thread, or ``None`` when no handler is registered.
        """
        with self._lock:
            handlers = list(self._handlers)
        if not handlers:
            return None

        def call_all() -> None:
            for handler in handlers:
                handler(data)

        thread = threading.Thread(target=call_all, daemon=True)
        thread.start()
        return thread


class Event:
    """Base class for events; every subclass has its own handler list."""

    _handlers: ClassVar[EventHandlers]

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls._handlers = EventHandlers()

    def trigger(self) -> Optional[threading.Thread]:
        """Run the handlers of this event's type asynchronously."""
        return type(self)._handlers.run(self)

    @classmethod
    def add_handler(cls, handler: Callable[[E], None]) -> None:
        """Register a handler that receives each triggered event of this type."""
        cls._handlers.add(handler)


Event._handlers = EventHandlers()


def emit_event(event: Event) -> Optional[threading.Thread]:
    """Trigger ``event``; handlers run asynchronously."""
    return event.trigger()