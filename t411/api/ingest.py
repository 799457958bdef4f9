"""Concurrent ingestion of raw search results into TorrentRecord values."""
import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import ValidationError

from t411.api.exceptions import IngestError, IngestTimeoutError, T411Error
from t411.api.models import TorrentEntry, TorrentRecord, TorrentStatus
from t411.api.parser import split_torrent

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    """Receives the two parts of every torrent, entry first."""

    def add_entry(self, entry: TorrentEntry) -> TorrentEntry:
        ...

    def add_status(self, entry: TorrentEntry, status: TorrentStatus) -> TorrentStatus:
        ...


class RecordCollector:
    """Default sink: accepts parts that belong together and hands them back."""

    def add_entry(self, entry: TorrentEntry) -> TorrentEntry:
        return entry

    def add_status(self, entry: TorrentEntry, status: TorrentStatus) -> TorrentStatus:
        if status.torrent_id != entry.id:
            raise IngestError(f"Status of torrent {status.torrent_id} does not match entry {entry.id}")
        return status


def ingest_torrent(raw: Dict[str, Any], sink: RecordSink) -> TorrentRecord:
    """
    Ingest one raw torrent: split it, then add its entry and its status in order.

    Raises:
        IngestError: If either part is rejected
    """
    try:
        entry, status = split_torrent(raw)
        accepted_entry = sink.add_entry(entry)
        accepted_status = sink.add_status(accepted_entry, status)
        return TorrentRecord(entry=accepted_entry, status=accepted_status)
    except IngestError:
        raise
    except (T411Error, ValidationError) as e:
        raise IngestError(f"Failed to ingest torrent {raw.get('id')!r}: {e}") from e
    except Exception as e:
        logger.error(f"Unexpected error ingesting torrent {raw.get('id')!r}: {e}", exc_info=True)
        raise IngestError(f"Failed to ingest torrent {raw.get('id')!r}: {e}") from e


def ingest_torrents(
    raw_torrents: Sequence[Dict[str, Any]],
    sink: Optional[RecordSink] = None,
    *,
    max_workers: int = 8,
    task_timeout: Optional[float] = None,
) -> List[TorrentRecord]:
    """
    Ingest every raw torrent on a bounded worker pool.

    Records come back in input order. The first failing task cancels the
    tasks that have not started yet and its error is raised. Each task's
    timeout is measured from the moment a worker picks it up, so time spent
    queued behind other torrents does not count against it.

    Args:
        raw_torrents: Raw torrent dicts from a search payload
        sink: Receiver of entries and statuses, RecordCollector by default
        max_workers: Upper bound on concurrently running tasks
        task_timeout: Seconds allowed per task, None for no limit

    Returns:
        List of TorrentRecord objects

    Raises:
        IngestError: If any torrent fails to ingest
        IngestTimeoutError: If a task runs longer than task_timeout
    """
    if not raw_torrents:
        return []
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    sink = sink or RecordCollector()
    workers = min(max_workers, len(raw_torrents))
    started: Dict[int, float] = {}

    def run(index: int, raw: Dict[str, Any]) -> TorrentRecord:
        started[index] = time.monotonic()
        return ingest_torrent(raw, sink)

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="t411-ingest")
    try:
        futures: List[Future] = [executor.submit(run, index, raw) for index, raw in enumerate(raw_torrents)]
        positions = {future: index for index, future in enumerate(futures)}
        pending = set(futures)

        while pending:
            done, pending = wait(pending, timeout=_next_check(pending, positions, started, task_timeout),
                                 return_when=FIRST_COMPLETED)

            for future in sorted(done, key=positions.get):
                if future.exception() is not None:
                    _cancel(pending)
                    raise future.exception()

            overdue = _overdue(pending, positions, started, task_timeout)
            if overdue:
                _cancel(pending)
                ids = [raw_torrents[index].get("id") for index in overdue]
                raise IngestTimeoutError(
                    f"Ingestion of torrent(s) {ids} did not finish within {task_timeout}s"
                )

        records = [future.result() for future in futures]
    finally:
        # Running tasks cannot be interrupted; do not block on them after a failure
        executor.shutdown(wait=False, cancel_futures=True)

    logger.debug(f"Ingested {len(records)} torrent(s) with {workers} worker(s)")
    return records


def _next_check(pending, positions, started, task_timeout) -> Optional[float]:
    """Seconds until the earliest running task reaches its timeout."""
    if task_timeout is None:
        return None
    starts = [started[positions[f]] for f in pending if positions[f] in started]
    if not starts:
        # Nothing picked up yet; look again once a task could have timed out
        return task_timeout
    return max(0.0, min(starts) + task_timeout - time.monotonic())


def _overdue(pending, positions, started, task_timeout) -> List[int]:
    if task_timeout is None:
        return []
    now = time.monotonic()
    return sorted(
        positions[f] for f in pending
        if positions[f] in started and now - started[positions[f]] >= task_timeout
    )


def _cancel(futures) -> None:
    cancelled = sum(1 for future in futures if future.cancel())
    if cancelled:
        logger.debug(f"Cancelled {cancelled} pending ingestion task(s)")
