"""Delta and rate derivation between two snapshots.

Pure functions, no I/O. Given the previous and current snapshot of the same
process they produce clamped counter deltas and per-second rates.

CPU percentage is the process's share of total system capacity:

    (cur.cpu_ticks - prev.cpu_ticks) / (cur.system_cpu_ticks - prev.system_cpu_ticks) * 100

It is not normalized per core, so a process saturating one core of an
8-core machine reports at most 12.5%.

Functions:
    clamped_delta: Non-negative difference of a cumulative counter
    compute_rate: Bytes per second from a delta and elapsed milliseconds
    elapsed_ms: Interval between two snapshots
    compute_cpu_delta / compute_io_delta / compute_network_delta
    compute_deltas: All of the above at once
    bytes_to_mb: Convert bytes to megabytes
"""

from __future__ import annotations

from dataclasses import dataclass

from procmon.monitoring.base import CpuDelta, IoDelta, NetworkDelta, Snapshot, compute_rate

__all__ = [
    "SampleDeltas",
    "bytes_to_mb",
    "clamped_delta",
    "compute_cpu_delta",
    "compute_deltas",
    "compute_io_delta",
    "compute_network_delta",
    "compute_rate",
    "elapsed_ms",
]


@dataclass(frozen=True)
class SampleDeltas:
    """Every delta derived from one (previous, current) pair."""

    cpu: CpuDelta
    io: IoDelta
    network: NetworkDelta

    @property
    def cpu_percent(self) -> float:
        return self.cpu.percent


def bytes_to_mb(byte_count: int | float) -> float:
    """Convert bytes to megabytes."""
    return byte_count / (1024 * 1024)


def clamped_delta(previous: int, current: int) -> int:
    """Difference of a cumulative counter, 0 if it went backwards (reset or wrap)."""
    return max(0, current - previous)


def _comparable(previous: Snapshot | None, current: Snapshot) -> bool:
    return previous is not None and previous.pid == current.pid


def elapsed_ms(previous: Snapshot, current: Snapshot) -> float:
    """Milliseconds between two snapshots.

    Uses the monotonic clock when both snapshots carry it, so wall-clock
    adjustments (NTP) don't distort rates.
    """
    if (
        previous.monotonic_ms > 0
        and current.monotonic_ms > 0
        and current.monotonic_ms >= previous.monotonic_ms
    ):
        return current.monotonic_ms - previous.monotonic_ms
    return float(current.timestamp_ms - previous.timestamp_ms)


def compute_cpu_delta(previous: Snapshot | None, current: Snapshot) -> CpuDelta:
    if not _comparable(previous, current):
        return CpuDelta(0, 0, 0.0)
    assert previous is not None
    return CpuDelta(
        process_ticks=clamped_delta(previous.cpu_ticks, current.cpu_ticks),
        system_ticks=clamped_delta(previous.system_cpu_ticks, current.system_cpu_ticks),
        elapsed_ms=elapsed_ms(previous, current),
    )


def compute_io_delta(previous: Snapshot | None, current: Snapshot) -> IoDelta:
    if not _comparable(previous, current):
        return IoDelta(0, 0, 0.0)
    assert previous is not None
    return IoDelta(
        read_bytes=clamped_delta(previous.io_read_bytes, current.io_read_bytes),
        write_bytes=clamped_delta(previous.io_write_bytes, current.io_write_bytes),
        elapsed_ms=elapsed_ms(previous, current),
    )


def compute_network_delta(previous: Snapshot | None, current: Snapshot) -> NetworkDelta:
    if not _comparable(previous, current):
        return NetworkDelta(0, 0, 0.0)
    assert previous is not None
    return NetworkDelta(
        rx_bytes=clamped_delta(previous.network_rx_bytes, current.network_rx_bytes),
        tx_bytes=clamped_delta(previous.network_tx_bytes, current.network_tx_bytes),
        elapsed_ms=elapsed_ms(previous, current),
    )


def compute_deltas(previous: Snapshot | None, current: Snapshot) -> SampleDeltas:
    """Derive CPU, I/O and network deltas.

    A missing previous snapshot, or one for a different pid, yields all-zero
    deltas and 0% CPU.
    """
    return SampleDeltas(
        cpu=compute_cpu_delta(previous, current),
        io=compute_io_delta(previous, current),
        network=compute_network_delta(previous, current),
    )
