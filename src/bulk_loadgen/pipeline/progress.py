"""Periodic progress sampling for a running bulk load."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from tqdm import tqdm

from bulk_loadgen.pipeline.counters import LoadCounters, LoadSnapshot

logger = logging.getLogger(__name__)

__all__ = ["ProgressReporter", "format_progress_line"]


def format_progress_line(snapshot: LoadSnapshot, elapsed_s: float) -> str:
    """One-line progress summary, e.g. ``Progress: 12,000 docs sent ...``."""
    return (
        f"Progress: {snapshot.docs_sent:,} docs sent, "
        f"{snapshot.batches_failed:,} failed bulks, "
        f"{snapshot.megabytes_sent:,.1f} MB, "
        f"{snapshot.docs_rate(elapsed_s):,.0f} docs/s"
    )


class ProgressReporter:
    """
    Sample the counters every ``interval_s`` on a background thread.

    Each tick advances a tqdm bar by the documents sent since the previous
    tick and logs a progress line. Use as a context manager so the thread
    and bar are torn down however the run ends.
    """

    def __init__(
        self,
        counters: LoadCounters,
        *,
        interval_s: float = 5.0,
        total_docs: Optional[int] = None,
        disable: bool = False,
    ):
        self.counters = counters
        self.interval_s = interval_s
        self.total_docs = total_docs
        self.disable = disable
        self.ticks = 0

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._bar: Optional[tqdm] = None
        self._reported_docs = 0
        self._started_at = 0.0

    def start(self) -> "ProgressReporter":
        if self._thread is not None:
            raise RuntimeError("ProgressReporter already started")
        self._started_at = time.perf_counter()
        self._bar = tqdm(
            total=self.total_docs,
            desc="Sending Docs",
            unit="docs",
            colour="blue",
            disable=self.disable,
        )
        self._thread = threading.Thread(
            target=self._run, name="bulk-progress", daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        """Stop sampling, take a final sample and close the bar."""
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        self.tick()
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def __enter__(self) -> "ProgressReporter":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            self.tick()

    def tick(self) -> LoadSnapshot:
        snapshot = self.counters.snapshot()
        elapsed = snapshot.timestamp - self._started_at
        self.ticks += 1

        if self._bar is not None:
            delta = snapshot.docs_sent - self._reported_docs
            if delta:
                self._bar.update(delta)
            self._reported_docs = snapshot.docs_sent
            self._bar.set_postfix(
                failed=snapshot.batches_failed,
                MB=f"{snapshot.megabytes_sent:.1f}",
                refresh=False,
            )

        logger.info("%s", format_progress_line(snapshot, elapsed))
        return snapshot
