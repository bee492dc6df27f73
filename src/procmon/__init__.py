"""procmon - per-process resource sampling for Linux hosts."""

from __future__ import annotations

from procmon.core.schemas import MonitorConfig, SamplingConfig
from procmon.monitoring.base import MonitorCallback, ResultRecord, Snapshot
from procmon.monitoring.history import HistoryStore
from procmon.monitoring.scheduler import SamplingScheduler

__version__ = "0.1.0"

__all__ = [
    "HistoryStore",
    "MonitorCallback",
    "MonitorConfig",
    "ResultRecord",
    "SamplingConfig",
    "SamplingScheduler",
    "Snapshot",
    "__version__",
]
