"""Pydantic schemas for procmon.

Configuration models consumed by the sampling engine and the wire model
served by the HTTP endpoint.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, field_serializer, model_validator

from procmon.core.constants import (
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_HISTORY_CAPACITY,
    DEFAULT_HOST,
    DEFAULT_IDLE_INTERVAL_SECONDS,
    DEFAULT_IDLE_THRESHOLD_BPS,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PORT,
    DEFAULT_PROC_ROOT,
    DEFAULT_PROCESS_NAME,
)

if TYPE_CHECKING:
    from procmon.monitoring.base import ResultRecord


class SamplingConfig(BaseModel):
    """Sampling cadence and failure policy for one monitored process.

    Attributes:
        interval_seconds: Active sampling interval
        idle_interval_seconds: Interval used while network activity is low
        idle_threshold_bps: Combined rx+tx rate below which the process is idle
        failure_threshold: Consecutive read failures before assuming death
        adaptive: Switch between active and idle intervals; False keeps a fixed cadence
    """

    interval_seconds: float = Field(default=DEFAULT_INTERVAL_SECONDS, gt=0)
    idle_interval_seconds: float = Field(default=DEFAULT_IDLE_INTERVAL_SECONDS, gt=0)
    idle_threshold_bps: float = Field(default=DEFAULT_IDLE_THRESHOLD_BPS, ge=0)
    failure_threshold: int = Field(default=DEFAULT_FAILURE_THRESHOLD, ge=1)
    adaptive: bool = Field(default=True)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def default_idle_interval(cls, data: Any) -> Any:
        """An unset idle interval is never shorter than the active one."""
        if isinstance(data, dict) and data.get("idle_interval_seconds") is None:
            interval = data.get("interval_seconds")
            if isinstance(interval, int | float) and interval > DEFAULT_IDLE_INTERVAL_SECONDS:
                data = {**data, "idle_interval_seconds": interval}
        return data

    @model_validator(mode="after")
    def check_intervals(self) -> SamplingConfig:
        """Adaptive sampling needs an idle cadence no faster than the active one."""
        if self.adaptive and self.idle_interval_seconds < self.interval_seconds:
            raise ValueError(
                "idle_interval_seconds must be >= interval_seconds when adaptive is enabled"
            )
        return self


class MonitorConfig(BaseModel):
    """Top-level configuration for the monitor service.

    This is the configuration loaded from YAML/JSON files and environment.
    """

    pid: int | None = Field(default=None, ge=1, description="Target process id")
    process_name: str = Field(
        default=DEFAULT_PROCESS_NAME,
        min_length=1,
        description="Process name to look up when pid is not set",
    )
    owner_uid: int | None = Field(
        default=None, ge=0, description="Owning uid for per-principal network counters"
    )
    host: str = Field(default=DEFAULT_HOST)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    history_capacity: int = Field(default=DEFAULT_HISTORY_CAPACITY, ge=1)
    proc_root: Path = Field(default=DEFAULT_PROC_ROOT)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)


class StatsRecord(BaseModel):
    """One entry of the ``GET /stats`` response."""

    timestamp: datetime
    pid: int = Field(ge=1)
    process_name: str
    cpu_percent: float = Field(ge=0)
    memory_mb: float = Field(ge=0)
    network_rx_bytes: int = Field(ge=0)
    network_tx_bytes: int = Field(ge=0)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat().replace("+00:00", "Z")

    @classmethod
    def from_record(cls, record: ResultRecord) -> StatsRecord:
        return cls(
            timestamp=record.timestamp,
            pid=record.pid,
            process_name=record.process_name,
            cpu_percent=record.cpu_percent,
            memory_mb=record.memory_mb,
            network_rx_bytes=record.network_rx_bytes,
            network_tx_bytes=record.network_tx_bytes,
        )
