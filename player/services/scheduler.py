"""Timer scheduling for the playback engine.

The engine is single-threaded and cooperative: every timer callback runs while
holding ``scheduler.lock``, and controller entry points take the same lock, so
state is only ever touched by one caller at a time.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable

log = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback. Cancelling it guarantees it never fires."""

    __slots__ = ("due", "callback", "args", "cancelled")

    def __init__(self, due: float, callback: Callable[..., None], args: tuple):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ThreadScheduler:
    """Runs timers on one background worker thread."""

    def __init__(self, name: str = "player-timers"):
        self.name = name
        self.lock = threading.RLock()
        self._condition = threading.Condition()
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()
        self._thread: threading.Thread | None = None
        self._running = False

    def now(self) -> float:
        return time.monotonic()

    def start(self) -> None:
        with self._condition:
            if self._running:
                return
            self._running = True
            self._thread = threading.Thread(
                target=self._worker,
                name=self.name,
                daemon=True,
            )
            self._thread.start()

    def shutdown(self, timeout: float = 1.0) -> None:
        with self._condition:
            self._running = False
            self._queue.clear()
            self._condition.notify_all()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def call_later(self, delay: float, callback: Callable[..., None], *args) -> TimerHandle:
        handle = TimerHandle(self.now() + max(0.0, delay), callback, args)
        with self._condition:
            heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
            self._condition.notify()
        if not self._running:
            self.start()
        return handle

    def _next_due(self) -> TimerHandle | None:
        with self._condition:
            while self._running:
                if not self._queue:
                    self._condition.wait()
                    continue
                due, _, handle = self._queue[0]
                wait_for = due - self.now()
                if wait_for > 0:
                    self._condition.wait(wait_for)
                    continue
                heapq.heappop(self._queue)
                return handle
        return None

    def _worker(self) -> None:
        while True:
            handle = self._next_due()
            if handle is None:
                return
            with self.lock:
                if handle.cancelled:
                    continue
                try:
                    handle.callback(*handle.args)
                except Exception:
                    log.exception("Timer callback %r failed", handle.callback)


class VirtualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock."""

    def __init__(self):
        self.lock = threading.RLock()
        self._now = 0.0
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def start(self) -> None:
        return

    def shutdown(self, timeout: float = 1.0) -> None:
        self._queue.clear()

    def call_later(self, delay: float, callback: Callable[..., None], *args) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (handle.due, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that falls due."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if handle.cancelled:
                continue
            with self.lock:
                handle.callback(*handle.args)
            fired += 1
        self._now = max(self._now, target)
        return fired

    def run_until_idle(self, limit: float = 3600.0) -> int:
        """Fire timers until none are pending or ``limit`` seconds have passed."""
        deadline = self._now + limit
        fired = 0
        while self._queue and self._now <= deadline:
            due = self._queue[0][0]
            if due > deadline:
                break
            fired += self.advance(max(0.0, due - self._now))
        return fired
