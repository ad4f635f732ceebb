from __future__ import annotations
import functools
import threading
from typing import Callable, Optional

DEFAULT_DELAY = 0.8


class Debouncer:
    """Coalesce bursts of trigger() calls into one call of fn.

    fn runs `delay` seconds after the last trigger. timer_factory defaults to
    threading.Timer and is replaceable for deterministic tests. Each timer
    carries the generation it was armed for, so a stale timer firing late
    does nothing.
    """

    def __init__(self, fn: Callable[[], object], delay: float = DEFAULT_DELAY,
                 timer_factory: Callable[..., threading.Timer] = threading.Timer):
        self.fn = fn
        self.delay = delay
        self.timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()

    def trigger(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = self.timer_factory(self.delay, functools.partial(self._fire, self._generation))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int):
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self.fn()

    def _disarm(self) -> Optional[threading.Timer]:
        with self._lock:
            timer, self._timer = self._timer, None
            self._generation += 1
        if timer is not None:
            timer.cancel()
        return timer

    def cancel(self):
        self._disarm()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def flush(self):
        """Run a pending call now instead of waiting for the delay."""
        if self._disarm() is not None:
            self.fn()
