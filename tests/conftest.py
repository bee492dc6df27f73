"""Shared fixtures: a fake proc filesystem and scheduler test doubles."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from procmon.monitoring.base import IoDelta, MonitorCallback, NetworkDelta, ResultRecord, Snapshot


class FakeProcTree:
    """Builds a minimal /proc layout under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.set_system_cpu([1000, 0, 500, 8000, 100, 0, 0, 0, 0, 0])
        self.set_net_dev({"lo": (1000, 1000)})

    def add_process(
        self,
        pid: int,
        name: str = "worker",
        utime: int = 100,
        stime: int = 50,
        rss_kb: int | None = 2048,
        io: tuple[int, int] | None = (4096, 8192),
    ) -> Path:
        proc_dir = self.root / str(pid)
        proc_dir.mkdir(parents=True, exist_ok=True)
        (proc_dir / "comm").write_text(f"{name}\n")
        self.set_stat(pid, name, utime, stime)

        status = [f"Name:\t{name}", "State:\tS (sleeping)", f"Pid:\t{pid}"]
        if rss_kb is not None:
            status.append(f"VmRSS:\t{rss_kb:>8} kB")
        status.append("Threads:\t1")
        (proc_dir / "status").write_text("\n".join(status) + "\n")

        if io is not None:
            (proc_dir / "io").write_text(
                "rchar: 1000\nwchar: 2000\nsyscr: 10\nsyscw: 20\n"
                f"read_bytes: {io[0]}\nwrite_bytes: {io[1]}\ncancelled_write_bytes: 0\n"
            )
        return proc_dir

    def set_stat(self, pid: int, name: str, utime: int, stime: int) -> None:
        line = (
            f"{pid} ({name}) S 1 {pid} {pid} 0 -1 4194560 100 0 0 0 "
            f"{utime} {stime} 0 0 20 0 1 0 100 1000000 500\n"
        )
        (self.root / str(pid) / "stat").write_text(line)

    def write_raw_stat(self, pid: int, content: str) -> None:
        (self.root / str(pid) / "stat").write_text(content)

    def set_system_cpu(self, values: list[int]) -> None:
        joined = " ".join(str(v) for v in values)
        (self.root / "stat").write_text(f"cpu  {joined}\ncpu0 {joined}\nintr 0\nctxt 0\n")

    def set_net_dev(self, interfaces: dict[str, tuple[int, int]]) -> None:
        lines = [
            "Inter-|   Receive                                                |  Transmit",
            " face |bytes    packets errs drop fifo frame compressed multicast|"
            "bytes    packets errs drop fifo colls carrier compressed",
        ]
        for iface, (rx, tx) in interfaces.items():
            lines.append(f"{iface:>6}: {rx} 10 0 0 0 0 0 0 {tx} 12 0 0 0 0 0 0")
        (self.root / "net").mkdir(exist_ok=True)
        (self.root / "net" / "dev").write_text("\n".join(lines) + "\n")

    def set_uid_stat(self, uid: int, rx: int, tx: int) -> None:
        uid_dir = self.root / "uid_stat" / str(uid)
        uid_dir.mkdir(parents=True, exist_ok=True)
        (uid_dir / "tcp_rcv").write_text(f"{rx}\n")
        (uid_dir / "tcp_snd").write_text(f"{tx}\n")

    def remove_process(self, pid: int) -> None:
        proc_dir = self.root / str(pid)
        for child in proc_dir.iterdir():
            child.unlink()
        proc_dir.rmdir()


@pytest.fixture
def proc_tree(tmp_path: Path) -> FakeProcTree:
    return FakeProcTree(tmp_path / "proc")


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[[], None], period: float | None) -> None:
        self.delay = delay
        self.callback = callback
        self.period = period
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeTimer:
    """Records scheduled timers; tests fire them by hand."""

    def __init__(self) -> None:
        self.scheduled: list[FakeHandle] = []

    def schedule(
        self, delay: float, callback: Callable[[], None], period: float | None = None
    ) -> FakeHandle:
        handle = FakeHandle(delay, callback, period)
        self.scheduled.append(handle)
        return handle

    def live(self) -> list[FakeHandle]:
        return [h for h in self.scheduled if not h.cancelled]


@pytest.fixture
def fake_timer() -> FakeTimer:
    return FakeTimer()


class StubReader:
    """Returns queued snapshots or raises queued exceptions, in order."""

    def __init__(self, results: list[Snapshot | Exception], name: str = "worker") -> None:
        self._results = list(results)
        self.name = name
        self.calls = 0
        self.on_read: Callable[[], None] | None = None

    def read_snapshot(self, pid: int, owner_uid: int | None = None) -> Snapshot:
        self.calls += 1
        if self.on_read is not None:
            self.on_read()
        if not self._results:
            raise AssertionError("StubReader ran out of results")
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def read_process_name(self, pid: int) -> str:
        return self.name


class RecordingCallback(MonitorCallback):
    def __init__(self) -> None:
        self.metrics: list[tuple[ResultRecord, IoDelta, NetworkDelta]] = []
        self.died: list[tuple[int, ResultRecord | None]] = []
        self.errors: list[tuple[int, str]] = []

    def on_metrics_collected(
        self, record: ResultRecord, io_delta: IoDelta, network_delta: NetworkDelta
    ) -> None:
        self.metrics.append((record, io_delta, network_delta))

    def on_process_died(self, pid: int, last_record: ResultRecord | None) -> None:
        self.died.append((pid, last_record))

    def on_monitor_error(self, pid: int, error: str) -> None:
        self.errors.append((pid, error))


@pytest.fixture
def recorder() -> RecordingCallback:
    return RecordingCallback()


def make_snapshot(
    pid: int = 100,
    timestamp_ms: int = 0,
    cpu_ticks: int = 1000,
    system_cpu_ticks: int = 10000,
    **kwargs: int,
) -> Snapshot:
    return Snapshot(
        pid=pid,
        timestamp_ms=timestamp_ms,
        cpu_ticks=cpu_ticks,
        system_cpu_ticks=system_cpu_ticks,
        **kwargs,
    )
