"""Polling wait for a condition."""

from __future__ import annotations

import time
from typing import Callable, Optional


def wait_cond(
    predicate: Callable[[], bool],
    timeout: Optional[float] = None,
    interval: float = 0.2,
) -> None:
    """Poll ``predicate`` every ``interval`` seconds until it is true.

    With a ``timeout`` in seconds, raise :class:`TimeoutError` once it has
    elapsed without the condition holding; without one, wait forever.
    """
    start = time.monotonic()
    while not predicate():
        if timeout is not None and time.monotonic() - start >= timeout:
            raise TimeoutError("condition not met before timeout")
        time.sleep(interval)