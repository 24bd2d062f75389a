# bulk_loadgen/pipeline/counters.py
"""Shared accounting for documents, batches and bytes across workers."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from bulk_loadgen.io.bulk import BulkResult

__all__ = ["LoadCounters", "LoadSnapshot"]


@dataclass(frozen=True)
class LoadSnapshot:
    """Immutable snapshot of the counters at a point in time."""

    docs_sent: int
    docs_failed: int  # documents inside failed batches
    batches_sent: int
    batches_failed: int
    bytes_sent: int
    timestamp: float

    @property
    def docs_attempted(self) -> int:
        return self.docs_sent + self.docs_failed

    @property
    def megabytes_sent(self) -> float:
        return self.bytes_sent / (1024.0 * 1024.0)

    def docs_rate(self, elapsed_time: float) -> float:
        """Documents sent per second."""
        if elapsed_time <= 0:
            return 0.0
        return self.docs_sent / elapsed_time


class LoadCounters:
    """
    Thread-safe counters shared by every worker and the reporter.

    A single lock guards all fields so a snapshot never sees a batch
    half-recorded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._docs_sent = 0
        self._docs_failed = 0
        self._batches_sent = 0
        self._batches_failed = 0
        self._bytes_sent = 0

    def record(self, result: BulkResult) -> None:
        """Account one bulk response: success adds docs and bytes."""
        with self._lock:
            if result.ok:
                self._docs_sent += result.doc_count
                self._batches_sent += 1
                self._bytes_sent += result.body_bytes
            else:
                self._docs_failed += result.doc_count
                self._batches_failed += 1

    def record_failure(self, doc_count: int) -> None:
        """Account a batch that never got a response (transport error)."""
        with self._lock:
            self._docs_failed += doc_count
            self._batches_failed += 1

    def snapshot(self) -> LoadSnapshot:
        with self._lock:
            return LoadSnapshot(
                docs_sent=self._docs_sent,
                docs_failed=self._docs_failed,
                batches_sent=self._batches_sent,
                batches_failed=self._batches_failed,
                bytes_sent=self._bytes_sent,
                timestamp=time.perf_counter(),
            )
