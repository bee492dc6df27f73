"""Tests for the HTTP endpoints."""

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from procmon.monitoring.base import ResultRecord
from procmon.monitoring.history import HistoryStore
from procmon.server import create_app


@pytest.fixture
def store():
    return HistoryStore(capacity=3)


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def make_record(second: int) -> ResultRecord:
    return ResultRecord(
        pid=1234,
        timestamp=datetime(2024, 1, 15, 10, 30, second, tzinfo=UTC),
        process_name="termux",
        cpu_percent=1.25,
        memory_mb=10.5,
        network_rx_bytes=100 * second,
        network_tx_bytes=200 * second,
    )


class TestStatsEndpoint:
    def test_empty_history(self, client):
        response = client.get("/stats")

        assert response.status_code == 200
        assert response.json() == []

    def test_returns_records_oldest_first(self, client, store):
        for second in range(1, 5):
            store.append(make_record(second))

        response = client.get("/stats")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        # Capacity 3: the first record was evicted
        assert [entry["timestamp"] for entry in body] == [
            "2024-01-15T10:30:02Z",
            "2024-01-15T10:30:03Z",
            "2024-01-15T10:30:04Z",
        ]
        assert body[0] == {
            "timestamp": "2024-01-15T10:30:02Z",
            "pid": 1234,
            "process_name": "termux",
            "cpu_percent": 1.25,
            "memory_mb": 10.5,
            "network_rx_bytes": 200,
            "network_tx_bytes": 400,
        }


class TestHealthEndpoint:
    def test_health_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.text == "OK"

    def test_unknown_path(self, client):
        assert client.get("/metrics").status_code == 404
