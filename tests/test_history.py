"""Tests for HistoryStore, HistoryRecorder and ReadWriteLock."""

import threading
from datetime import UTC, datetime

import pytest

from conftest import RecordingCallback
from procmon.core.errors import InvalidArgument
from procmon.monitoring.base import IoDelta, NetworkDelta, ResultRecord
from procmon.monitoring.history import HistoryRecorder, HistoryStore
from procmon.utils.locks import ReadWriteLock


def make_record(seq: int, pid: int = 100) -> ResultRecord:
    return ResultRecord(
        pid=pid,
        timestamp=datetime.fromtimestamp(seq, tz=UTC),
        process_name="worker",
        cpu_percent=float(seq % 100),
        memory_mb=1.5,
    )


class TestHistoryStore:
    """Tests for the bounded ring."""

    def test_evicts_oldest_when_full(self):
        store = HistoryStore(capacity=1000)

        for seq in range(1001):
            store.append(make_record(seq))

        records = store.snapshot_all()
        assert len(records) == 1000
        assert records[0].timestamp == datetime.fromtimestamp(1, tz=UTC)
        assert records[-1].timestamp == datetime.fromtimestamp(1000, tz=UTC)

    def test_preserves_insertion_order(self):
        store = HistoryStore(capacity=5)
        for seq in (3, 1, 2):
            store.append(make_record(seq))

        assert [int(r.timestamp.timestamp()) for r in store.snapshot_all()] == [3, 1, 2]

    def test_snapshot_is_a_copy(self):
        store = HistoryStore(capacity=5)
        store.append(make_record(1))

        records = store.snapshot_all()
        records.clear()

        assert len(store) == 1

    def test_clear(self):
        store = HistoryStore(capacity=5)
        store.append(make_record(1))

        store.clear()

        assert store.snapshot_all() == []
        assert store.capacity == 5

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(InvalidArgument):
            HistoryStore(capacity=capacity)

    def test_concurrent_writers_and_readers(self):
        store = HistoryStore(capacity=100)
        writers = 4
        per_writer = 500
        errors = []

        def write(pid):
            for seq in range(per_writer):
                store.append(make_record(seq, pid=pid))

        def read():
            for _ in range(200):
                records = store.snapshot_all()
                if len(records) > 100:
                    errors.append(len(records))
                # Within one writer's records, order must be preserved
                for pid in range(1, writers + 1):
                    seqs = [r.timestamp for r in records if r.pid == pid]
                    if seqs != sorted(seqs):
                        errors.append(pid)

        threads = [threading.Thread(target=write, args=(pid,)) for pid in range(1, writers + 1)]
        threads += [threading.Thread(target=read) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert errors == []
        assert len(store) == 100


class TestHistoryRecorder:
    def test_appends_and_forwards(self):
        store = HistoryStore(capacity=10)
        forward = RecordingCallback()
        recorder = HistoryRecorder(store, forward=forward)
        record = make_record(1)
        io_delta = IoDelta(read_bytes=0, write_bytes=0, elapsed_ms=0)
        net_delta = NetworkDelta(rx_bytes=0, tx_bytes=0, elapsed_ms=0)

        recorder.on_metrics_collected(record, io_delta, net_delta)
        recorder.on_process_died(100, record)
        recorder.on_monitor_error(100, "boom")

        assert store.snapshot_all() == [record]
        assert forward.metrics == [(record, io_delta, net_delta)]
        assert forward.died == [(100, record)]
        assert forward.errors == [(100, "boom")]

    def test_logs_sample_line(self, caplog):
        store = HistoryStore(capacity=10)
        recorder = HistoryRecorder(store)
        record = ResultRecord(
            pid=42,
            timestamp=datetime.now(UTC),
            process_name="termux",
            cpu_percent=12.345,
            memory_mb=64.0,
        )

        with caplog.at_level("INFO", logger="procmon.monitoring.history"):
            recorder.on_metrics_collected(
                record,
                IoDelta(read_bytes=0, write_bytes=0, elapsed_ms=0),
                NetworkDelta(rx_bytes=0, tx_bytes=0, elapsed_ms=0),
            )

        assert "PID 42 [termux]: CPU=12.35%, MEM=64.00 MB" in caplog.text

    def test_died_without_record(self):
        recorder = HistoryRecorder(HistoryStore(capacity=1))

        recorder.on_process_died(7, None)

        assert recorder.store.snapshot_all() == []


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=2.0)

        def reader():
            with lock.read_locked():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=3.0)

        assert not inside.broken

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        entered = threading.Event()

        lock.acquire_write()
        t = threading.Thread(target=lambda: (lock.acquire_read(), entered.set()))
        t.start()

        assert not entered.wait(timeout=0.1)
        lock.release_write()
        assert entered.wait(timeout=2.0)
        t.join(timeout=2.0)
        lock.release_read()
