# tests/pipeline/test_barrier.py
from __future__ import annotations

import threading

import pytest

from bulk_loadgen.pipeline.barrier import StartBarrier


def test_rejects_zero_parties():
    with pytest.raises(ValueError):
        StartBarrier(0)


def test_release_requires_every_party():
    barrier = StartBarrier(2)
    barrier.arrive()
    with pytest.raises(RuntimeError, match="not ready"):
        barrier.release()
    assert not barrier.released


def test_release_fires_once():
    barrier = StartBarrier(1)
    barrier.arrive()
    ts = barrier.release()
    assert barrier.released
    assert barrier.released_at == ts
    with pytest.raises(RuntimeError, match="already released"):
        barrier.release()


def test_extra_arrival_is_an_error():
    barrier = StartBarrier(1)
    barrier.arrive()
    with pytest.raises(RuntimeError):
        barrier.arrive()


def test_wait_until_ready_times_out_when_parties_missing():
    barrier = StartBarrier(3)
    barrier.arrive()
    assert barrier.wait_until_ready(timeout=0.05) is False
    assert barrier.ready_count == 1


def test_wait_for_release_times_out_before_release():
    barrier = StartBarrier(1)
    assert barrier.wait_for_release(timeout=0.05) is False


def test_no_worker_proceeds_before_all_arrive_and_release():
    n = 8
    barrier = StartBarrier(n)
    passed = []
    lock = threading.Lock()
    gates = [threading.Event() for _ in range(n)]

    def worker(i: int) -> None:
        # Arrive in a staggered order controlled by the test.
        gates[i].wait(5)
        barrier.arrive()
        barrier.wait_for_release()
        with lock:
            passed.append((i, barrier.ready_count))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()

    for i in reversed(range(n)):
        assert not barrier.wait_until_ready(timeout=0.01)
        gates[i].set()

    assert barrier.wait_until_ready(timeout=5)
    assert passed == []  # everyone is parked on the release gate

    barrier.release()
    for t in threads:
        t.join(5)

    assert sorted(i for i, _ in passed) == list(range(n))
    assert all(ready == n for _, ready in passed)
