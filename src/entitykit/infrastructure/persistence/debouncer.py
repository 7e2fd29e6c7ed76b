"""Trailing-edge debouncer.

Collapses a burst of calls into one invocation carrying the arguments of
the last call, fired once the burst has been quiet for ``wait_seconds``.

The default timer fires on a background thread. Pass ``loop_timer(loop)``
to fire on an asyncio event loop instead, so the action (and anything it
publishes) runs in the same context as the mutations that scheduled it.
"""

import asyncio
import threading
from typing import Any, Callable, Protocol


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def thread_timer(interval: float, function: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class LoopTimer:
    """One-shot timer scheduled with ``loop.call_later``.

    ``start`` and ``cancel`` must be called from the loop's thread.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, function: Callable[[], None]) -> None:
        self._loop = loop
        self._interval = interval
        self._function = function
        self._handle: asyncio.TimerHandle | None = None

    def start(self) -> None:
        self._handle = self._loop.call_later(self._interval, self._function)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def loop_timer(loop: asyncio.AbstractEventLoop) -> TimerFactory:
    """Timer factory firing on ``loop`` rather than on a background thread."""

    def factory(interval: float, function: Callable[[], None]) -> Timer:
        return LoopTimer(loop, interval, function)

    return factory


class Debouncer:
    """Debounce calls to ``action``.

    A wait of 0 calls ``action`` immediately. ``flush()`` runs a pending
    call right away; ``cancel()`` drops it.
    """

    def __init__(
        self,
        wait_seconds: float,
        action: Callable[..., Any],
        timer_factory: TimerFactory = thread_timer,
    ) -> None:
        self.wait_seconds = wait_seconds
        self._action = action
        self._timer_factory = timer_factory
        self._timer: Timer | None = None
        self._pending: tuple[tuple[Any, ...], dict[str, Any]] | None = None
        self._lock = threading.RLock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        """Schedule ``action(*args, **kwargs)``, replacing any pending call."""
        if self.wait_seconds <= 0:
            self._action(*args, **kwargs)
            return

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = self._timer_factory(self.wait_seconds, self._fire)
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            pending = self._pending
            self._pending = None
            self._timer = None
        if pending is not None:
            args, kwargs = pending
            self._action(*args, **kwargs)

    def flush(self) -> bool:
        """Run the pending call now. Returns False if nothing was pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            if self._pending is None:
                self._timer = None
                return False
        self._fire()
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
