"""Data model and push interface for process sampling.

Snapshots hold raw cumulative counters, deltas hold clamped differences
between two snapshots, and result records are what consumers receive.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Cumulative counters for one process at one instant."""

    pid: int
    timestamp_ms: int  # Wall clock, epoch milliseconds
    cpu_ticks: int  # utime + stime of the process
    system_cpu_ticks: int  # Aggregate "cpu" line of /proc/stat
    # Monotonic clock in milliseconds for interval calculation.
    # Left at 0.0 when unknown (e.g. snapshots built by hand in tests),
    # in which case elapsed time falls back to `timestamp_ms`.
    monotonic_ms: float = 0.0
    rss_bytes: int = 0
    io_read_bytes: int = 0
    io_write_bytes: int = 0
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0
    is_alive: bool = True


@dataclass(frozen=True)
class CpuDelta:
    """CPU ticks consumed by the process and by the whole system over an interval."""

    process_ticks: int
    system_ticks: int
    elapsed_ms: float

    @property
    def percent(self) -> float:
        """Share of total system capacity (not normalized per core)."""
        if self.system_ticks <= 0:
            return 0.0
        return self.process_ticks / self.system_ticks * 100.0


@dataclass(frozen=True)
class IoDelta:
    """Disk I/O bytes transferred over an interval."""

    read_bytes: int
    write_bytes: int
    elapsed_ms: float

    @property
    def read_bytes_per_second(self) -> float:
        return compute_rate(self.read_bytes, self.elapsed_ms)

    @property
    def write_bytes_per_second(self) -> float:
        return compute_rate(self.write_bytes, self.elapsed_ms)


@dataclass(frozen=True)
class NetworkDelta:
    """Network bytes received and transmitted over an interval."""

    rx_bytes: int
    tx_bytes: int
    elapsed_ms: float

    @property
    def rx_bytes_per_second(self) -> float:
        return compute_rate(self.rx_bytes, self.elapsed_ms)

    @property
    def tx_bytes_per_second(self) -> float:
        return compute_rate(self.tx_bytes, self.elapsed_ms)

    @property
    def total_bytes_per_second(self) -> float:
        return self.rx_bytes_per_second + self.tx_bytes_per_second


def compute_rate(delta: int | float, elapsed_ms: float) -> float:
    """Per-second rate: ``delta * 1000 / elapsed_ms``, 0.0 for a non-positive interval."""
    if elapsed_ms <= 0:
        return 0.0
    return delta * 1000 / elapsed_ms


@dataclass(frozen=True)
class ResultRecord:
    """One computed sample, as stored in history and pushed to callbacks.

    Network and I/O byte fields are the cumulative counters of the sample;
    per-interval rates travel alongside in IoDelta/NetworkDelta.
    """

    pid: int
    timestamp: datetime  # Timezone-aware UTC
    process_name: str
    cpu_percent: float
    memory_mb: float
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0
    io_read_bytes: int = 0
    io_write_bytes: int = 0
    is_alive: bool = True

    @classmethod
    def from_snapshot(
        cls, snapshot: Snapshot, process_name: str, cpu_percent: float
    ) -> ResultRecord:
        return cls(
            pid=snapshot.pid,
            timestamp=datetime.fromtimestamp(snapshot.timestamp_ms / 1000, tz=UTC),
            process_name=process_name,
            cpu_percent=cpu_percent,
            memory_mb=snapshot.rss_bytes / (1024 * 1024),
            network_rx_bytes=snapshot.network_rx_bytes,
            network_tx_bytes=snapshot.network_tx_bytes,
            io_read_bytes=snapshot.io_read_bytes,
            io_write_bytes=snapshot.io_write_bytes,
            is_alive=snapshot.is_alive,
        )

    def to_dict(self) -> dict[str, int | float | str | bool]:
        """Convert to a JSON-ready dictionary with an ISO-8601 UTC timestamp."""
        return {
            "timestamp": self.timestamp.astimezone(UTC).isoformat().replace("+00:00", "Z"),
            "pid": self.pid,
            "process_name": self.process_name,
            "cpu_percent": self.cpu_percent,
            "memory_mb": self.memory_mb,
            "network_rx_bytes": self.network_rx_bytes,
            "network_tx_bytes": self.network_tx_bytes,
            "io_read_bytes": self.io_read_bytes,
            "io_write_bytes": self.io_write_bytes,
            "is_alive": self.is_alive,
        }

    def to_csv(self) -> str:
        """Format as ``pid,timestamp_ms,cpu,mem_kb,io_r,io_w,net_rx,net_tx,alive``."""
        timestamp_ms = round(self.timestamp.timestamp() * 1000)
        memory_kb = int(round(self.memory_mb * 1024))
        return (
            f"{self.pid},{timestamp_ms},{self.cpu_percent:.2f},{memory_kb},"
            f"{self.io_read_bytes},{self.io_write_bytes},"
            f"{self.network_rx_bytes},{self.network_tx_bytes},{str(self.is_alive).lower()}"
        )


class MonitorCallback(ABC):
    """Push interface for a host application.

    Notifications are delivered synchronously from the sampling task, so
    implementations must return quickly or they delay the next tick.
    """

    @abstractmethod
    def on_metrics_collected(
        self, record: ResultRecord, io_delta: IoDelta, network_delta: NetworkDelta
    ) -> None:
        """Called after every successful sample.

        Args:
            record: The computed result record
            io_delta: Disk I/O delta since the previous sample
            network_delta: Network delta since the previous sample
        """
        pass

    @abstractmethod
    def on_process_died(self, pid: int, last_record: ResultRecord | None) -> None:
        """Called exactly once when a monitored process is judged dead.

        Args:
            pid: Process id that died
            last_record: Last successfully computed record, if any
        """
        pass

    @abstractmethod
    def on_monitor_error(self, pid: int, error: str) -> None:
        """Called for a non-fatal sampling error."""
        pass


class LoggingCallback(MonitorCallback):
    """Callback that only logs; the default when no callback is supplied."""

    def on_metrics_collected(
        self, record: ResultRecord, io_delta: IoDelta, network_delta: NetworkDelta
    ) -> None:
        logger.info(
            f"PID {record.pid} [{record.process_name}]: "
            f"CPU={record.cpu_percent:.2f}%, MEM={record.memory_mb:.2f} MB"
        )

    def on_process_died(self, pid: int, last_record: ResultRecord | None) -> None:
        logger.info(f"PID {pid} died")

    def on_monitor_error(self, pid: int, error: str) -> None:
        logger.warning(f"Error monitoring PID {pid}: {error}")
