"""Process discovery helpers.

Used when no pid is configured: find a default process by name, the way
``pgrep -x <name>`` does.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from procmon.core.constants import DEFAULT_PROC_ROOT
from procmon.core.errors import ProcessNotFound
from procmon.core.schemas import MonitorConfig

logger = logging.getLogger(__name__)


def find_processes_by_name(name: str, proc_root: Path | str = DEFAULT_PROC_ROOT) -> list[int]:
    """Return pids whose /proc/<pid>/comm equals ``name`` exactly, sorted ascending.

    Args:
        name: Process name (as in /proc/<pid>/comm, at most 15 characters)
        proc_root: Mount point of the proc filesystem
    """
    proc_root = Path(proc_root)
    pids: list[int] = []

    try:
        entries = list(proc_root.iterdir())
    except OSError as e:
        logger.warning(f"Cannot list {proc_root}: {e}")
        return pids

    for entry in entries:
        if not entry.name.isdigit():
            continue
        try:
            comm = (entry / "comm").read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            # Process exited while scanning, or not readable
            continue
        if comm == name:
            pids.append(int(entry.name))

    return sorted(pids)


def resolve_target_pid(config: MonitorConfig) -> int:
    """Pick the pid to monitor: the configured one, else the first process named
    ``config.process_name``.

    Raises:
        ProcessNotFound: If no pid is configured and discovery finds nothing
    """
    if config.pid is not None:
        return config.pid

    logger.info(f"No PID specified, attempting to find '{config.process_name}' processes...")
    pids = find_processes_by_name(config.process_name, config.proc_root)
    if not pids:
        raise ProcessNotFound(
            f"No '{config.process_name}' processes found. "
            "Please set MONITOR_PID or pass --pid."
        )

    logger.info(f"Found {len(pids)} '{config.process_name}' processes: {pids}")
    return pids[0]


def pid_from_process(process: Any) -> int:
    """Return the pid of a ``subprocess.Popen``-like object, or -1 if unavailable."""
    pid = getattr(process, "pid", None)
    if isinstance(pid, int) and not isinstance(pid, bool) and pid > 0:
        return pid
    return -1
