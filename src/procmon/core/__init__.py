"""Core module - configuration, schemas and errors."""

from __future__ import annotations

from procmon.core.config import apply_env_overrides, load_config
from procmon.core.errors import (
    InvalidArgument,
    MalformedData,
    MonitorError,
    ProcessNotFound,
    ReadFailure,
)
from procmon.core.schemas import MonitorConfig, SamplingConfig, StatsRecord

__all__ = [
    "apply_env_overrides",
    "InvalidArgument",
    "load_config",
    "MalformedData",
    "MonitorConfig",
    "MonitorError",
    "ProcessNotFound",
    "ReadFailure",
    "SamplingConfig",
    "StatsRecord",
]
