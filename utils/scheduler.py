"""
utils/scheduler.py — Periodic tick drivers
===========================================
The scan session never sleeps or spawns threads itself; it hands one
callback to a scheduler and asks it to call that callback at a fixed rate.

Two interchangeable drivers are provided:

* `ThreadScheduler`  — a single daemon thread that calls the callback at
  the requested interval.  Ticks are strictly sequential; if a callback
  overruns, the ticks it covered are skipped instead of queued.
* `ManualScheduler`  — nothing happens until `tick()` is called.  Used for
  replaying recorded data and in the test-suite, where a fake clock is
  advanced by hand.

Both expose the same two methods, `run_periodically(interval, callback)`
and `cancel()`, plus an `active` flag.
"""

import threading
import time
from typing import Callable, Protocol

from utils.logger import get_logger

logger = get_logger("utils.scheduler")


class Scheduler(Protocol):
    """Minimal periodic-callback interface used by `ScanSession`."""

    @property
    def active(self) -> bool: ...

    def run_periodically(self, interval: float, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


class ThreadScheduler:
    """Calls a callback every `interval` seconds on one background thread."""

    def __init__(self, name: str = "scan-tick", join_timeout: float = 2.0):
        self._name = name
        self._join_timeout = join_timeout
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._stop_event.set()

    @property
    def active(self) -> bool:
        return not self._stop_event.is_set()

    def run_periodically(self, interval: float, callback: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}.")
        if self.active:
            raise RuntimeError("Scheduler is already running — cancel() it first.")

        # A fresh event per run: a loop that is still winding down after
        # cancel() keeps watching its own (already set) event.
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop,
            args=(interval, callback, self._stop_event),
            name=self._name,
            daemon=True,
        )
        self._thread.start()
        logger.debug("Tick thread started (%.1f Hz).", 1.0 / interval)

    def cancel(self) -> None:
        """Stop ticking.  Blocks until the current tick finishes, unless called from it."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout)
            if thread.is_alive():
                logger.warning("Tick thread did not stop within %.1f s.", self._join_timeout)

    @staticmethod
    def _loop(interval: float, callback: Callable[[], None], stop_event: threading.Event) -> None:
        next_due = time.monotonic()
        while not stop_event.is_set():
            try:
                callback()
            except Exception:
                logger.exception("Periodic callback raised; continuing with the next tick.")

            next_due += interval
            now = time.monotonic()
            if next_due < now:
                missed = int((now - next_due) // interval) + 1
                next_due += missed * interval
                logger.debug("Tick overran — skipped %d tick(s).", missed)
            stop_event.wait(next_due - now)
        logger.debug("Tick loop exited.")


class ManualScheduler:
    """Scheduler driven explicitly by `tick()`; never calls back on its own."""

    def __init__(self):
        self.interval: float | None = None
        self._callback: Callable[[], None] | None = None
        self._in_tick = False
        self.ticks = 0
        self.skipped = 0

    @property
    def active(self) -> bool:
        return self._callback is not None

    def run_periodically(self, interval: float, callback: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}.")
        if self.active:
            raise RuntimeError("Scheduler is already running — cancel() it first.")
        self.interval = interval
        self._callback = callback

    def cancel(self) -> None:
        self._callback = None

    def tick(self, count: int = 1) -> int:
        """Run up to `count` ticks; returns how many actually ran."""
        ran = 0
        for _ in range(count):
            callback = self._callback
            if callback is None:
                break
            if self._in_tick:
                # Re-entrant call from inside a callback
                self.skipped += 1
                continue
            self._in_tick = True
            try:
                callback()
            finally:
                self._in_tick = False
            self.ticks += 1
            ran += 1
        return ran
