"""
Timer ownership for order polling.

PollScheduler keeps at most one pending timer per order id. Scheduling
again for the same order replaces the previous timer.
"""

from __future__ import annotations

import threading
from typing import Callable


class PollScheduler:
    """
    Cancellable single-shot timers keyed by order id.

    Args:
        timer_factory: Callable with threading.Timer's signature
            (interval, function) returning an object with start()/cancel()
    """

    def __init__(self, timer_factory: Callable = threading.Timer):
        self._timer_factory = timer_factory
        self._timers: dict[str, object] = {}
        self._lock = threading.Lock()

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        """Run callback after delay seconds, replacing any timer for key."""

        def fire() -> None:
            with self._lock:
                if self._timers.get(key) is not timer:
                    return
                del self._timers[key]
            callback()

        timer = self._timer_factory(delay, fire)
        if hasattr(timer, "daemon"):
            timer.daemon = True

        with self._lock:
            previous = self._timers.get(key)
            self._timers[key] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def cancel(self, key: str) -> bool:
        """Cancel the timer for key. Returns False if none was pending."""
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def is_scheduled(self, key: str) -> bool:
        with self._lock:
            return key in self._timers
