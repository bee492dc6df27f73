"""Monitoring module - per-process sampling engine.

Components:
- ProcfsReader: reads cumulative counters from /proc
- deltas: pure delta/rate derivation between two snapshots
- SamplingScheduler: timer-driven sampling with death detection and adaptive cadence
- HistoryStore: bounded, readers-writer locked history of result records
"""

from __future__ import annotations

from procmon.monitoring.base import (
    CpuDelta,
    IoDelta,
    LoggingCallback,
    MonitorCallback,
    NetworkDelta,
    ResultRecord,
    Snapshot,
)
from procmon.monitoring.deltas import SampleDeltas, compute_deltas, compute_rate
from procmon.monitoring.discovery import (
    find_processes_by_name,
    pid_from_process,
    resolve_target_pid,
)
from procmon.monitoring.history import HistoryRecorder, HistoryStore
from procmon.monitoring.procfs_reader import ProcfsReader
from procmon.monitoring.scheduler import SamplingScheduler
from procmon.monitoring.timers import TimerHandle, TimerService

__all__ = [
    "compute_deltas",
    "compute_rate",
    "CpuDelta",
    "find_processes_by_name",
    "HistoryRecorder",
    "HistoryStore",
    "IoDelta",
    "LoggingCallback",
    "MonitorCallback",
    "NetworkDelta",
    "pid_from_process",
    "ProcfsReader",
    "resolve_target_pid",
    "ResultRecord",
    "SampleDeltas",
    "SamplingScheduler",
    "Snapshot",
    "TimerHandle",
    "TimerService",
]
