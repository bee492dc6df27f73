"""Utils module - Shared utilities."""

from __future__ import annotations

from procmon.utils.locks import ReadWriteLock
from procmon.utils.logging import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "ReadWriteLock", "setup_logging"]
