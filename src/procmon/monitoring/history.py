"""Bounded in-memory history of result records.

The store is the only state shared between the sampling tasks (writers) and
the HTTP endpoint (readers).
"""

from __future__ import annotations

import logging
from collections import deque

from procmon.core.constants import DEFAULT_HISTORY_CAPACITY
from procmon.core.errors import InvalidArgument
from procmon.monitoring.base import IoDelta, MonitorCallback, NetworkDelta, ResultRecord
from procmon.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)


class HistoryStore:
    """Insertion-ordered ring of the most recent result records.

    Once ``capacity`` records are held, each append evicts the single oldest
    record. Incoming records are never dropped.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise InvalidArgument(f"History capacity must be >= 1, got {capacity}")
        self._records: deque[ResultRecord] = deque(maxlen=capacity)
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._records)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: ResultRecord) -> None:
        """Append a record, evicting the oldest one when full."""
        with self._lock.write_locked():
            self._records.append(record)

    def snapshot_all(self) -> list[ResultRecord]:
        """Return a copy of all records, oldest first."""
        with self._lock.read_locked():
            return list(self._records)

    def clear(self) -> None:
        with self._lock.write_locked():
            self._records.clear()


class HistoryRecorder(MonitorCallback):
    """Callback that records every sample into a HistoryStore.

    Optionally forwards all notifications to another callback so the pull and
    push interfaces can be used together.
    """

    def __init__(self, store: HistoryStore, forward: MonitorCallback | None = None) -> None:
        self._store = store
        self._forward = forward

    @property
    def store(self) -> HistoryStore:
        return self._store

    def on_metrics_collected(
        self, record: ResultRecord, io_delta: IoDelta, network_delta: NetworkDelta
    ) -> None:
        self._store.append(record)
        logger.info(
            f"PID {record.pid} [{record.process_name}]: "
            f"CPU={record.cpu_percent:.2f}%, MEM={record.memory_mb:.2f} MB"
        )
        if self._forward is not None:
            self._forward.on_metrics_collected(record, io_delta, network_delta)

    def on_process_died(self, pid: int, last_record: ResultRecord | None) -> None:
        if last_record is not None:
            logger.info(f"PID {pid} [{last_record.process_name}] died")
        else:
            logger.info(f"PID {pid} died before any sample was collected")
        if self._forward is not None:
            self._forward.on_process_died(pid, last_record)

    def on_monitor_error(self, pid: int, error: str) -> None:
        logger.warning(f"Failed to sample PID {pid}: {error}")
        if self._forward is not None:
            self._forward.on_monitor_error(pid, error)
