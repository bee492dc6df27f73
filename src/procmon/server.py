"""HTTP exposure of the history store.

Read-only endpoints:
- GET /stats: history contents, oldest first
- GET /health: 200 "OK" once serving
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from procmon import __version__
from procmon.core.schemas import StatsRecord
from procmon.monitoring.history import HistoryStore

logger = logging.getLogger(__name__)


def create_app(store: HistoryStore) -> FastAPI:
    """Build the FastAPI application serving ``store``.

    Args:
        store: History store shared with the sampling scheduler

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="procmon", version=__version__)

    @app.get("/stats", response_model=list[StatsRecord])
    def stats() -> list[StatsRecord]:
        return [StatsRecord.from_record(r) for r in store.snapshot_all()]

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    return app
