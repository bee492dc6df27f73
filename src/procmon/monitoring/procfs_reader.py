"""Snapshot reader for the Linux proc filesystem.

Reads instantaneous and cumulative counters for one process and for the
system as a whole. Stateless: every call reflects current kernel state.

Metrics sourced:
- /proc/<pid>/stat: utime + stime (CPU ticks)
- /proc/stat: aggregate "cpu" line (system CPU ticks)
- /proc/<pid>/status: VmRSS (resident memory)
- /proc/<pid>/io: read_bytes, write_bytes (optional)
- /proc/net/dev: system-wide rx/tx bytes (network fallback)
- /proc/uid_stat/<uid>/tcp_rcv, tcp_snd: per-uid network bytes (Android kernels)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from procmon.core.constants import (
    DEFAULT_PROC_ROOT,
    STAT_MIN_FIELDS,
    STAT_STIME_INDEX,
    STAT_UTIME_INDEX,
    SYSTEM_CPU_FIELDS,
    UNKNOWN_PROCESS_NAME,
)
from procmon.core.errors import MalformedData, ProcessNotFound, ReadFailure
from procmon.monitoring.base import Snapshot

logger = logging.getLogger(__name__)


class ProcfsReader:
    """Reads process and system counters from a proc filesystem.

    Example:
        ```python
        reader = ProcfsReader()
        snapshot = reader.read_snapshot(1234)
        print(snapshot.cpu_ticks, snapshot.rss_bytes)
        ```
    """

    def __init__(self, proc_root: Path | str = DEFAULT_PROC_ROOT) -> None:
        """Initialize the reader.

        Args:
            proc_root: Mount point of the proc filesystem (overridable for tests)
        """
        self._proc_root = Path(proc_root)

    @property
    def proc_root(self) -> Path:
        return self._proc_root

    def read_snapshot(self, pid: int, owner_uid: int | None = None) -> Snapshot:
        """Read a full snapshot for one process.

        Args:
            pid: Process id
            owner_uid: Owning uid for per-principal network counters. When None,
                system-wide interface totals are used instead.

        Raises:
            ProcessNotFound: The process's stat or status file is absent
            MalformedData: A CPU accounting file has an unexpected shape
            ReadFailure: CPU or memory accounting could not be read
        """
        timestamp_ms = int(time.time() * 1000)
        monotonic_ms = time.monotonic() * 1000

        cpu_ticks = self.read_process_cpu_ticks(pid)
        system_cpu_ticks = self.read_system_cpu_ticks()
        rss_bytes = self.read_rss_bytes(pid)
        io_read, io_write = self.read_io_bytes(pid)
        if owner_uid is None:
            net_rx, net_tx = self.read_system_network_bytes()
        else:
            net_rx, net_tx = self.read_uid_network_bytes(owner_uid)

        return Snapshot(
            pid=pid,
            timestamp_ms=timestamp_ms,
            monotonic_ms=monotonic_ms,
            cpu_ticks=cpu_ticks,
            system_cpu_ticks=system_cpu_ticks,
            rss_bytes=rss_bytes,
            io_read_bytes=io_read,
            io_write_bytes=io_write,
            network_rx_bytes=net_rx,
            network_tx_bytes=net_tx,
            is_alive=True,
        )

    def process_exists(self, pid: int) -> bool:
        return (self._proc_root / str(pid)).is_dir()

    def read_process_name(self, pid: int) -> str:
        """Read the process name from /proc/<pid>/comm, "unknown" on failure."""
        comm_path = self._proc_root / str(pid) / "comm"
        try:
            name = comm_path.read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            return UNKNOWN_PROCESS_NAME
        return name or UNKNOWN_PROCESS_NAME

    def read_process_cpu_ticks(self, pid: int) -> int:
        """Read utime + stime from /proc/<pid>/stat.

        Format (the second field may contain spaces and parentheses):
            1234 (my proc) S 1 1234 ... utime stime cutime cstime ...
        """
        stat_path = self._proc_root / str(pid) / "stat"
        content = self._read_process_file(pid, stat_path)

        # Split after the last ')' so names like "(a b)" don't shift fields
        rparen = content.rfind(")")
        if rparen == -1:
            raise MalformedData(f"Missing ')' in {stat_path}", pid=pid, path=stat_path)
        fields = content[rparen + 1 :].split()

        if len(fields) < STAT_MIN_FIELDS:
            raise MalformedData(
                f"Expected at least {STAT_MIN_FIELDS} fields after comm in {stat_path}, "
                f"got {len(fields)}",
                pid=pid,
                path=stat_path,
            )

        try:
            utime = int(fields[STAT_UTIME_INDEX])
            stime = int(fields[STAT_STIME_INDEX])
        except ValueError as e:
            raise MalformedData(
                f"Non-numeric utime/stime in {stat_path}", pid=pid, path=stat_path
            ) from e

        return utime + stime

    def read_system_cpu_ticks(self) -> int:
        """Read the aggregate CPU ticks from the first line of /proc/stat.

        Format:
            cpu  user nice system idle iowait irq softirq steal guest guest_nice
        """
        stat_path = self._proc_root / "stat"
        try:
            with open(stat_path, encoding="utf-8") as f:
                first = f.readline()
        except OSError as e:
            raise ReadFailure(f"Cannot read {stat_path}: {e}", path=stat_path) from e

        parts = first.split()
        if not parts or parts[0] != "cpu" or len(parts) < 5:
            raise MalformedData(f"Unexpected first line in {stat_path}: {first!r}", path=stat_path)

        try:
            return sum(int(v) for v in parts[1 : 1 + SYSTEM_CPU_FIELDS])
        except ValueError as e:
            raise MalformedData(f"Non-numeric CPU field in {stat_path}", path=stat_path) from e

    def read_rss_bytes(self, pid: int) -> int:
        """Read VmRSS from /proc/<pid>/status.

        A missing VmRSS line (kernel threads, some kernel variants) yields 0.
        """
        status_path = self._proc_root / str(pid) / "status"
        content = self._read_process_file(pid, status_path)

        for line in content.splitlines():
            if line.startswith("VmRSS:"):
                parts = line.split()
                if len(parts) >= 2:
                    try:
                        return int(parts[1]) * 1024  # Reported in kB
                    except ValueError:
                        logger.debug(f"Non-numeric VmRSS in {status_path}: {line!r}")
                        return 0
        return 0

    def read_io_bytes(self, pid: int) -> tuple[int, int]:
        """Read storage read_bytes/write_bytes from /proc/<pid>/io.

        Format:
            rchar: 323934931
            wchar: 323929600
            ...
            read_bytes: 0
            write_bytes: 323932160

        Unsupported or unreadable (needs same uid or CAP_SYS_PTRACE) → (0, 0).
        """
        result = {"read_bytes": 0, "write_bytes": 0}
        io_path = self._proc_root / str(pid) / "io"

        try:
            content = io_path.read_text()
            for line in content.splitlines():
                key, _, value = line.partition(":")
                if key in result:
                    result[key] = int(value.strip())
        except (OSError, ValueError) as e:
            logger.debug(f"I/O counters unavailable for PID {pid}: {e}")
            return 0, 0

        return result["read_bytes"], result["write_bytes"]

    def read_system_network_bytes(self) -> tuple[int, int]:
        """Sum rx/tx bytes across all interfaces in /proc/net/dev.

        This is system-wide: for a single target process it overcounts any
        traffic generated by other processes.

        Format (after two header lines):
            eth0: 1234 10 0 0 0 0 0 0 5678 12 0 0 0 0 0 0
        """
        dev_path = self._proc_root / "net" / "dev"
        rx_total = 0
        tx_total = 0

        try:
            content = dev_path.read_text()
        except OSError as e:
            logger.debug(f"Network counters unavailable: {e}")
            return 0, 0

        for line in content.splitlines():
            if ":" not in line:
                continue
            _, _, counters = line.partition(":")
            fields = counters.split()
            if len(fields) < 9:
                continue
            try:
                rx_total += int(fields[0])
                tx_total += int(fields[8])
            except ValueError:
                continue

        return rx_total, tx_total

    def read_uid_network_bytes(self, uid: int) -> tuple[int, int]:
        """Read per-uid TCP byte counters from /proc/uid_stat/<uid>.

        Kernels without per-uid accounting don't expose the directory; that
        "unsupported" case reads as (0, 0).
        """
        uid_dir = self._proc_root / "uid_stat" / str(uid)
        try:
            rx = int((uid_dir / "tcp_rcv").read_text().strip())
            tx = int((uid_dir / "tcp_snd").read_text().strip())
        except FileNotFoundError:
            return 0, 0
        except (OSError, ValueError) as e:
            logger.debug(f"Error reading traffic stats for UID {uid}: {e}")
            return 0, 0

        if rx < 0 or tx < 0:
            return 0, 0
        return rx, tx

    def _read_process_file(self, pid: int, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError as e:
            raise ProcessNotFound(f"Process {pid} not found ({path})", pid=pid, path=path) from e
        except ProcessLookupError as e:
            # Reading a file of a process that exited mid-read
            raise ProcessNotFound(f"Process {pid} exited ({path})", pid=pid, path=path) from e
        except OSError as e:
            raise ReadFailure(f"Cannot read {path}: {e}", pid=pid, path=path) from e
