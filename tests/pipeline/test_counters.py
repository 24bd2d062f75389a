# tests/pipeline/test_counters.py
from __future__ import annotations

import threading

from bulk_loadgen.io.bulk import BulkResult
from bulk_loadgen.pipeline.counters import LoadCounters, LoadSnapshot


def test_success_counts_docs_and_bytes_failure_counts_batch():
    c = LoadCounters()
    c.record(BulkResult(status_code=200, doc_count=100, body_bytes=5000))
    c.record(BulkResult(status_code=500, doc_count=40, body_bytes=2000))
    c.record_failure(10)

    s = c.snapshot()
    assert s.docs_sent == 100
    assert s.bytes_sent == 5000
    assert s.batches_sent == 1
    assert s.batches_failed == 2
    assert s.docs_failed == 50
    assert s.docs_attempted == 150


def test_concurrent_recording_loses_nothing():
    c = LoadCounters()
    ok = BulkResult(status_code=200, doc_count=3, body_bytes=7)
    bad = BulkResult(status_code=503, doc_count=2, body_bytes=7)

    def hammer():
        for i in range(2000):
            c.record(bad if i % 10 == 0 else ok)

    threads = [threading.Thread(target=hammer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    s = c.snapshot()
    assert s.batches_failed == 8 * 200
    assert s.batches_sent == 8 * 1800
    assert s.docs_sent == 8 * 1800 * 3
    assert s.docs_failed == 8 * 200 * 2
    assert s.bytes_sent == 8 * 1800 * 7


def test_rate_and_megabytes():
    s = LoadSnapshot(docs_sent=1000, docs_failed=0, batches_sent=10,
                     batches_failed=0, bytes_sent=3 * 1024 * 1024, timestamp=0.0)
    assert s.docs_rate(4.0) == 250.0
    assert s.docs_rate(0.0) == 0.0
    assert s.megabytes_sent == 3.0
