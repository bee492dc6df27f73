"""Monitor service wiring.

Builds the reader, scheduler, history store and HTTP app from a
MonitorConfig. The CLI ``serve`` command is a thin wrapper around this.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from procmon.core.schemas import MonitorConfig
from procmon.monitoring.base import MonitorCallback
from procmon.monitoring.discovery import resolve_target_pid
from procmon.monitoring.history import HistoryRecorder, HistoryStore
from procmon.monitoring.procfs_reader import ProcfsReader
from procmon.monitoring.scheduler import SamplingScheduler, TimerFactory
from procmon.server import create_app

logger = logging.getLogger(__name__)


class MonitorService:
    """Samples one target process into a history store served over HTTP.

    Example:
        ```python
        service = MonitorService(MonitorConfig(pid=1234))
        service.start()
        uvicorn.run(service.app, port=service.config.port)
        service.stop()
        ```
    """

    def __init__(
        self,
        config: MonitorConfig,
        forward: MonitorCallback | None = None,
        timer: TimerFactory | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Monitor configuration
            forward: Optional push callback receiving every notification too
            timer: Timer factory override (tests)
        """
        self.config = config
        self.store = HistoryStore(capacity=config.history_capacity)
        self.reader = ProcfsReader(config.proc_root)
        self.scheduler = SamplingScheduler(
            reader=self.reader,
            callback=HistoryRecorder(self.store, forward=forward),
            timer=timer,
            default_config=config.sampling,
        )
        self.app: FastAPI = create_app(self.store)
        self._pid: int | None = None

    @property
    def pid(self) -> int | None:
        return self._pid

    def start(self) -> int:
        """Resolve the target process and start sampling it.

        Returns:
            The monitored pid

        Raises:
            ProcessNotFound: If no pid is configured and discovery finds nothing
        """
        pid = resolve_target_pid(self.config)
        logger.info(f"Starting monitor for PID: {pid}")
        self.scheduler.start(pid, owner_uid=self.config.owner_uid)
        self._pid = pid
        return pid

    def stop(self) -> None:
        self.scheduler.shutdown()
        logger.info("Monitor service stopped")
