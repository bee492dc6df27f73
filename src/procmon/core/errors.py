"""Error taxonomy for process sampling.

``ProcessNotFound`` is the authoritative death signal. ``MalformedData`` and
plain ``ReadFailure`` are transient and count toward the failure threshold.
"""

from __future__ import annotations

from pathlib import Path


class MonitorError(Exception):
    """Base class for all procmon errors."""


class InvalidArgument(MonitorError, ValueError):
    """A caller passed an argument that can never be valid (e.g. pid <= 0)."""


class ReadFailure(MonitorError):
    """Reading kernel-exposed counters failed."""

    def __init__(self, message: str, pid: int | None = None, path: Path | None = None) -> None:
        super().__init__(message)
        self.pid = pid
        self.path = path


class ProcessNotFound(ReadFailure):
    """The process-information file is absent; the process is gone."""


class MalformedData(ReadFailure):
    """A kernel file did not have the expected shape."""
