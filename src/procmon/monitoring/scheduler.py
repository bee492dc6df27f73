"""Sampling scheduler for monitored processes.

Owns one registration per monitored pid. Each registration has a fixed-rate
timer that reads a snapshot, derives deltas against the previous one, emits
a result record and adapts its own cadence to network activity.

Per-process lifecycle:
- Active -> Active: successful read
- Active -> Dead: process info absent, or ``failure_threshold`` consecutive
  read failures. The registration is removed and ``on_process_died`` fires
  exactly once with the last good record (or None).
- Active -> Removed: ``stop()``. No death notification.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from procmon.core.errors import InvalidArgument, ProcessNotFound, ReadFailure
from procmon.core.schemas import SamplingConfig
from procmon.monitoring.base import (
    LoggingCallback,
    MonitorCallback,
    NetworkDelta,
    ResultRecord,
    Snapshot,
)
from procmon.monitoring.deltas import compute_deltas
from procmon.monitoring.procfs_reader import ProcfsReader
from procmon.monitoring.timers import TimerService

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    """What the scheduler needs from a snapshot reader."""

    def read_snapshot(self, pid: int, owner_uid: int | None = None) -> Snapshot: ...

    def read_process_name(self, pid: int) -> str: ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    """What the scheduler needs from a timer service."""

    def schedule(
        self, delay: float, callback: Callable[[], None], period: float | None = None
    ) -> Cancellable: ...


@dataclass
class _Registration:
    """Monitoring state for one process."""

    pid: int
    owner_uid: int | None
    config: SamplingConfig
    callback: MonitorCallback
    interval_seconds: float
    previous: Snapshot | None = None
    last_record: ResultRecord | None = None
    failure_count: int = 0
    handle: Cancellable | None = None
    # Guards against overlapping ticks of the same registration
    tick_lock: threading.Lock = field(default_factory=threading.Lock)
    finished: bool = False


class SamplingScheduler:
    """Timer-driven sampler for zero or more processes.

    Example:
        ```python
        scheduler = SamplingScheduler(callback=HistoryRecorder(store))
        scheduler.start(1234)
        ...
        scheduler.shutdown()
        ```
    """

    def __init__(
        self,
        reader: SnapshotSource | None = None,
        callback: MonitorCallback | None = None,
        timer: TimerFactory | None = None,
        default_config: SamplingConfig | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            reader: Snapshot source (defaults to ProcfsReader on /proc)
            callback: Default push callback for registrations that don't bring one
            timer: Timer factory (defaults to a private TimerService)
            default_config: Sampling config for registrations that don't bring one
        """
        self._reader = reader if reader is not None else ProcfsReader()
        self._callback = callback if callback is not None else LoggingCallback()
        self._owns_timer = timer is None
        self._timer: TimerFactory = timer if timer is not None else TimerService()
        self._default_config = default_config or SamplingConfig()
        self._registrations: dict[int, _Registration] = {}
        self._lock = threading.RLock()

    def start(
        self,
        pid: int,
        owner_uid: int | None = None,
        config: SamplingConfig | None = None,
        callback: MonitorCallback | None = None,
    ) -> bool:
        """Start monitoring a process.

        Args:
            pid: Process id (must be positive)
            owner_uid: Owning uid for per-principal network counters
            config: Sampling config (defaults to the scheduler's default)
            callback: Push callback (defaults to the scheduler's callback)

        Returns:
            True if a new registration was created, False if the pid was
            already monitored (the existing registration is kept)

        Raises:
            InvalidArgument: If pid is not a positive integer
        """
        if isinstance(pid, bool) or not isinstance(pid, int) or pid <= 0:
            raise InvalidArgument(f"Invalid PID: {pid!r}")

        config = config or self._default_config
        with self._lock:
            if pid in self._registrations:
                logger.info(f"PID {pid} is already being monitored")
                return False

            registration = _Registration(
                pid=pid,
                owner_uid=owner_uid,
                config=config,
                callback=callback or self._callback,
                interval_seconds=config.interval_seconds,
            )
            self._registrations[pid] = registration
            registration.handle = self._arm(registration, delay=0.0)

        logger.info(
            f"Started monitoring PID {pid} (UID: {owner_uid}) "
            f"with interval {config.interval_seconds}s"
        )
        return True

    def stop(self, pid: int) -> bool:
        """Stop monitoring a process. Idempotent.

        Only the pending tick is cancelled; a tick that is already running
        completes and its result is discarded.

        Returns:
            True if the pid was being monitored
        """
        with self._lock:
            registration = self._registrations.pop(pid, None)
            if registration is None:
                return False
            registration.finished = True
            if registration.handle is not None:
                registration.handle.cancel()

        logger.info(f"Stopped monitoring PID {pid}")
        return True

    def stop_all(self) -> None:
        with self._lock:
            pids = list(self._registrations)
        for pid in pids:
            self.stop(pid)

    def shutdown(self) -> None:
        """Stop all monitoring and release the timer service if we created it."""
        self.stop_all()
        if self._owns_timer and isinstance(self._timer, TimerService):
            self._timer.shutdown()

    def is_monitoring(self, pid: int) -> bool:
        with self._lock:
            return pid in self._registrations

    def monitored_pids(self) -> list[int]:
        with self._lock:
            return sorted(self._registrations)

    def current_interval(self, pid: int) -> float | None:
        """Interval in seconds of the currently armed timer for ``pid``."""
        with self._lock:
            registration = self._registrations.get(pid)
            return registration.interval_seconds if registration else None

    def tick(self, pid: int) -> None:
        """Run one sampling tick for ``pid`` (normally invoked by the timer)."""
        with self._lock:
            registration = self._registrations.get(pid)
        if registration is None:
            return

        if not registration.tick_lock.acquire(blocking=False):
            logger.debug(f"Skipping overlapping tick for PID {pid}")
            return
        try:
            self._run_tick(registration)
        except Exception as e:
            # Never let one process's failure escape into the timer thread
            logger.error(f"Unexpected error sampling PID {pid}: {e}", exc_info=True)
        finally:
            registration.tick_lock.release()

    def _arm(self, registration: _Registration, delay: float) -> Cancellable:
        pid = registration.pid
        return self._timer.schedule(
            delay, lambda: self.tick(pid), period=registration.interval_seconds
        )

    def _is_current(self, registration: _Registration) -> bool:
        with self._lock:
            return (
                not registration.finished
                and self._registrations.get(registration.pid) is registration
            )

    def _run_tick(self, registration: _Registration) -> None:
        pid = registration.pid
        if not self._is_current(registration):
            return

        try:
            snapshot = self._reader.read_snapshot(pid, owner_uid=registration.owner_uid)
        except ProcessNotFound as e:
            logger.info(f"PID {pid} is gone: {e}")
            self._handle_death(registration)
            return
        except ReadFailure as e:
            self._handle_failure(registration, e)
            return

        registration.failure_count = 0
        process_name = self._reader.read_process_name(pid)
        deltas = compute_deltas(registration.previous, snapshot)
        record = ResultRecord.from_snapshot(snapshot, process_name, deltas.cpu_percent)
        had_previous = registration.previous is not None

        if not self._is_current(registration):
            logger.debug(f"Discarding sample for PID {pid}: monitoring was stopped")
            return

        registration.previous = snapshot
        registration.last_record = record
        self._notify(
            registration,
            lambda cb: cb.on_metrics_collected(record, deltas.io, deltas.network),
        )

        if registration.config.adaptive and had_previous:
            self._adjust_interval(registration, deltas.network)

    def _handle_failure(self, registration: _Registration, error: ReadFailure) -> None:
        pid = registration.pid
        if not self._is_current(registration):
            logger.debug(f"Discarding read failure for PID {pid}: monitoring was stopped")
            return

        registration.failure_count += 1
        threshold = registration.config.failure_threshold

        if registration.failure_count >= threshold:
            logger.warning(
                f"PID {pid} failed {registration.failure_count} times, assuming process died"
            )
            self._handle_death(registration)
            return

        logger.warning(
            f"Error collecting metrics for PID {pid} "
            f"({registration.failure_count}/{threshold}): {error}"
        )
        self._notify(registration, lambda cb: cb.on_monitor_error(pid, str(error)))

    def _handle_death(self, registration: _Registration) -> None:
        pid = registration.pid
        with self._lock:
            if not self._is_current(registration):
                # Already stopped or already declared dead
                return
            del self._registrations[pid]
            registration.finished = True
            if registration.handle is not None:
                registration.handle.cancel()

        last_record = registration.last_record
        self._notify(registration, lambda cb: cb.on_process_died(pid, last_record))

    def _adjust_interval(self, registration: _Registration, delta: NetworkDelta) -> None:
        config = registration.config
        network_bps = delta.total_bytes_per_second
        if network_bps < config.idle_threshold_bps:
            new_interval = config.idle_interval_seconds
        else:
            new_interval = config.interval_seconds

        if new_interval == registration.interval_seconds:
            return

        with self._lock:
            if not self._is_current(registration):
                return
            if registration.handle is not None:
                registration.handle.cancel()
            registration.interval_seconds = new_interval
            registration.handle = self._arm(registration, delay=new_interval)

        logger.info(
            f"Adjusted sampling interval for PID {registration.pid} to {new_interval}s "
            f"(network {network_bps:.0f} B/s)"
        )

    def _notify(
        self, registration: _Registration, call: Callable[[MonitorCallback], None]
    ) -> None:
        try:
            call(registration.callback)
        except Exception as e:
            logger.error(f"Monitor callback failed for PID {registration.pid}: {e}", exc_info=True)
