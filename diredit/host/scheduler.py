"""Cooperative single-threaded callback queue.

Adapters hand their completions to ``call_soon`` instead of invoking callbacks
inline, which models backends whose results arrive later. The host drains the
queue with ``run_pending``; callbacks queued while draining run in the same
drain, in FIFO order.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

logger = logging.getLogger(__name__)

MAX_DRAIN_CALLBACKS = 100_000


class Scheduler:
    """FIFO queue of deferred callbacks."""

    def __init__(self) -> None:
        self._queue: deque[tuple[Callable[..., object], tuple[object, ...]]] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_soon(self, callback: Callable[..., object], *args: object) -> None:
        self._queue.append((callback, args))

    def schedule_wrap(self, callback: Callable[..., object]) -> Callable[..., None]:
        """Return a wrapper that defers ``callback`` to the next drain."""

        def wrapper(*args: object) -> None:
            self.call_soon(callback, *args)

        return wrapper

    def run_pending(self, limit: int = MAX_DRAIN_CALLBACKS) -> int:
        """Run queued callbacks until the queue is empty; return the count run.

        ``limit`` bounds runaway callback chains; remaining work stays queued.
        """
        ran = 0
        while self._queue and ran < limit:
            callback, args = self._queue.popleft()
            callback(*args)
            ran += 1
        if self._queue:
            logger.warning("Scheduler stopped with %d callbacks still queued", len(self._queue))
        return ran


__all__ = ["Scheduler"]
