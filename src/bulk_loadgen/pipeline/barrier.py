# bulk_loadgen/pipeline/barrier.py
"""Two-phase start barrier: ready countdown, then a one-shot release."""
from __future__ import annotations

import threading
import time
from typing import Optional

__all__ = ["StartBarrier"]


class StartBarrier:
    """
    Align the start of ``parties`` workers.

    Workers call :meth:`arrive` once their file is open and positioned, then
    block in :meth:`wait_for_release`. The orchestrator blocks in
    :meth:`wait_until_ready` until every worker has arrived and then calls
    :meth:`release`, which stamps the measurement start and wakes everyone.
    """

    def __init__(self, parties: int):
        if parties < 1:
            raise ValueError(f"parties must be >= 1, got {parties}")
        self._parties = parties
        self._remaining = parties
        self._cond = threading.Condition()
        self._release = threading.Event()
        self._released_at: Optional[float] = None

    @property
    def parties(self) -> int:
        return self._parties

    @property
    def ready_count(self) -> int:
        with self._cond:
            return self._parties - self._remaining

    @property
    def released(self) -> bool:
        return self._release.is_set()

    @property
    def released_at(self) -> Optional[float]:
        """``time.perf_counter()`` value at release, None before it."""
        return self._released_at

    def arrive(self) -> None:
        """Count one worker as ready. Raises if more than ``parties`` arrive."""
        with self._cond:
            if self._remaining == 0:
                raise RuntimeError("All parties have already arrived")
            self._remaining -= 1
            if self._remaining == 0:
                self._cond.notify_all()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until every party has arrived; False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._remaining == 0, timeout)

    def release(self) -> float:
        """
        Open the gate exactly once and return the release timestamp.

        Raises RuntimeError if called before every party arrived or twice.
        """
        with self._cond:
            if self._remaining:
                raise RuntimeError(
                    f"Cannot release: {self._remaining} of {self._parties} "
                    "parties not ready"
                )
            if self._release.is_set():
                raise RuntimeError("Barrier already released")
            self._released_at = time.perf_counter()
            self._release.set()
            return self._released_at

    def wait_for_release(self, timeout: Optional[float] = None) -> bool:
        """Block until :meth:`release` fires; False on timeout."""
        return self._release.wait(timeout)
