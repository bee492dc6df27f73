"""Shared constants for procmon.

Centralized defaults so the scheduler, configuration models and CLI agree.
"""

from __future__ import annotations

from pathlib import Path

# Root of the process-information pseudo-filesystem
DEFAULT_PROC_ROOT = Path("/proc")

# Sampling cadence (seconds)
DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_IDLE_INTERVAL_SECONDS = 30.0

# Combined rx+tx rate below which a process is considered idle (bytes/sec)
DEFAULT_IDLE_THRESHOLD_BPS = 1024

# Consecutive read failures before a process is assumed dead
DEFAULT_FAILURE_THRESHOLD = 3

# Number of result records kept in memory
DEFAULT_HISTORY_CAPACITY = 1000

# HTTP exposure
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# Process name looked up when no pid is configured
DEFAULT_PROCESS_NAME = "termux"

# Minimum number of /proc/<pid>/stat fields after the "(comm)" field.
# utime and stime sit at positions 11 and 12 of that remainder.
STAT_MIN_FIELDS = 15
STAT_UTIME_INDEX = 11
STAT_STIME_INDEX = 12

# user, nice, system, idle, iowait, irq, softirq, steal
# (guest and guest_nice are already accounted in user and nice)
SYSTEM_CPU_FIELDS = 8

UNKNOWN_PROCESS_NAME = "unknown"
