"""Tests for the concurrent entry/status ingestion."""

from __future__ import annotations

import threading
import time

import pytest

from t411.api.exceptions import IngestError, IngestTimeoutError
from t411.api.ingest import RecordCollector, ingest_torrent, ingest_torrents
from t411.api.models import TorrentStatus

from .fakes import make_torrent


class RecordingSink(RecordCollector):
    """Collector that remembers the order of calls per torrent."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[tuple[str, int]] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def add_entry(self, entry):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.calls.append(("entry", entry.id))
        time.sleep(self.delay)
        return super().add_entry(entry)

    def add_status(self, entry, status):
        with self._lock:
            self.calls.append(("status", status.torrent_id))
            self.active -= 1
        return super().add_status(entry, status)


def test_ingest_empty_list():
    assert ingest_torrents([]) == []


def test_ingest_preserves_input_order():
    raw = [make_torrent(i) for i in range(1, 21)]
    records = ingest_torrents(raw, max_workers=5)

    assert [record.id for record in records] == list(range(1, 21))
    for record in records:
        assert record.entry.id == record.status.torrent_id


def test_status_is_added_after_its_entry():
    sink = RecordingSink()
    ingest_torrents([make_torrent(i) for i in range(1, 6)], sink, max_workers=3)

    for torrent_id in range(1, 6):
        assert sink.calls.index(("entry", torrent_id)) < sink.calls.index(("status", torrent_id))


def test_concurrency_is_bounded_by_max_workers():
    sink = RecordingSink(delay=0.02)
    ingest_torrents([make_torrent(i) for i in range(1, 13)], sink, max_workers=3)
    assert 1 <= sink.peak <= 3


def test_invalid_torrent_fails_the_batch():
    raw = [make_torrent(1), make_torrent(2, name=""), make_torrent(3)]
    with pytest.raises(IngestError):
        ingest_torrents(raw, max_workers=1)


def test_sink_rejection_is_ingest_error():
    class MismatchSink(RecordCollector):
        def add_status(self, entry, status):
            return super().add_status(entry, TorrentStatus(torrent_id=entry.id + 1))

    with pytest.raises(IngestError):
        ingest_torrent(make_torrent(1), MismatchSink())


def test_unexpected_sink_error_is_wrapped():
    class BrokenSink(RecordCollector):
        def add_entry(self, entry):
            raise RuntimeError("storage unavailable")

    with pytest.raises(IngestError) as exc_info:
        ingest_torrents([make_torrent(1)], BrokenSink())
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_failure_cancels_pending_tasks():
    started: list[int] = []

    class FailFirstSink(RecordCollector):
        def add_entry(self, entry):
            started.append(entry.id)
            if entry.id == 1:
                raise RuntimeError("boom")
            time.sleep(0.05)
            return entry

    with pytest.raises(IngestError):
        ingest_torrents([make_torrent(i) for i in range(1, 11)], FailFirstSink(), max_workers=1)

    time.sleep(0.1)
    assert len(started) < 10


def test_slow_task_times_out():
    release = threading.Event()

    class StuckSink(RecordCollector):
        def add_entry(self, entry):
            release.wait(5)
            return entry

    try:
        started = time.monotonic()
        with pytest.raises(IngestTimeoutError):
            ingest_torrents([make_torrent(1)], StuckSink(), task_timeout=0.05)
        assert time.monotonic() - started < 2
    finally:
        release.set()


def test_max_workers_must_be_positive():
    with pytest.raises(ValueError):
        ingest_torrents([make_torrent(1)], max_workers=0)


def test_slow_task_in_batch_times_out():
    release = threading.Event()

    class SlowFirstSink(RecordCollector):
        def add_entry(self, entry):
            if entry.id == 1:
                release.wait(0.5)
            return entry

    try:
        raw = [make_torrent(i) for i in range(1, 4)]
        with pytest.raises(IngestTimeoutError) as exc_info:
            ingest_torrents(raw, SlowFirstSink(), max_workers=1, task_timeout=0.1)
        assert "'1'" in str(exc_info.value)
    finally:
        release.set()


def test_time_spent_queued_does_not_count_against_timeout():
    class SteadySink(RecordCollector):
        def add_entry(self, entry):
            time.sleep(0.03)
            return entry

    # The batch takes longer than one timeout, each task does not
    raw = [make_torrent(i) for i in range(1, 7)]
    records = ingest_torrents(raw, SteadySink(), max_workers=1, task_timeout=0.1)
    assert [record.id for record in records] == [1, 2, 3, 4, 5, 6]
