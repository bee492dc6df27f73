"""Timer service driving the sampling ticks.

A single dispatcher thread keeps pending timers in a heap ordered by due
time and sleeps on a condition variable until the earliest one is due. Due
callbacks run on a bounded worker pool, so a slow callback for one process
never holds back another process's tick.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class TimerHandle:
    """Cancellable handle for a scheduled (optionally recurring) callback.

    Cancelling prevents future firings only; a callback that is already
    running is allowed to finish.
    """

    def __init__(self, callback: Callable[[], None], period: float | None) -> None:
        self.callback = callback
        self.period = period
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    handle: TimerHandle = field(compare=False)


class TimerService:
    """Heap-ordered timer dispatcher with a bounded worker pool.

    Example:
        ```python
        timers = TimerService(max_workers=2)
        handle = timers.schedule(0.0, collect, period=5.0)
        ...
        handle.cancel()
        timers.shutdown()
        ```
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        self._heap: list[_Entry] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="procmon-tick"
        )
        self._thread: threading.Thread | None = None
        self._running = False
        self._closed = False

    def schedule(
        self, delay: float, callback: Callable[[], None], period: float | None = None
    ) -> TimerHandle:
        """Schedule ``callback`` after ``delay`` seconds.

        Args:
            delay: Seconds until the first firing
            callback: Zero-argument callable
            period: If set, re-fire every ``period`` seconds at a fixed rate

        Returns:
            Handle that can cancel future firings
        """
        if period is not None and period <= 0:
            raise ValueError(f"Timer period must be positive, got {period}")

        handle = TimerHandle(callback, period)
        with self._cond:
            if self._closed:
                raise RuntimeError("TimerService has been shut down")
            self._ensure_started()
            due = time.monotonic() + max(0.0, delay)
            heapq.heappush(self._heap, _Entry(due, next(self._seq), handle))
            self._cond.notify()
        return handle

    def pending(self) -> int:
        """Number of live (not cancelled) timers waiting in the heap."""
        with self._cond:
            return sum(1 for e in self._heap if not e.handle.cancelled)

    def shutdown(self, wait: bool = True) -> None:
        """Stop dispatching and release the worker pool."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._running = False
            for entry in self._heap:
                entry.handle.cancel()
            self._heap.clear()
            self._cond.notify_all()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Timer service stopped")

    def _ensure_started(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._dispatch_loop, name="procmon-timers", daemon=True
        )
        self._thread.start()
        logger.debug("Timer service started")

    def _dispatch_loop(self) -> None:
        while True:
            with self._cond:
                while self._running:
                    # Drop cancelled timers eagerly
                    while self._heap and self._heap[0].handle.cancelled:
                        heapq.heappop(self._heap)
                    if not self._heap:
                        self._cond.wait()
                        continue
                    timeout = self._heap[0].due - time.monotonic()
                    if timeout <= 0:
                        break
                    # Condition.wait overflows above TIMEOUT_MAX; re-check after waking
                    self._cond.wait(min(timeout, threading.TIMEOUT_MAX))
                if not self._running:
                    return

                entry = heapq.heappop(self._heap)
                handle = entry.handle
                if handle.period is not None:
                    # Fixed rate: next due is derived from this due time, not from "now"
                    heapq.heappush(
                        self._heap, _Entry(entry.due + handle.period, next(self._seq), handle)
                    )

            self._submit(handle)

    def _submit(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            return
        try:
            self._executor.submit(self._run, handle)
        except RuntimeError:
            # Executor shut down between pop and submit
            logger.debug("Dropping timer callback after shutdown")

    @staticmethod
    def _run(handle: TimerHandle) -> None:
        if handle.cancelled:
            return
        try:
            handle.callback()
        except Exception as e:
            logger.error(f"Timer callback failed: {e}", exc_info=True)
