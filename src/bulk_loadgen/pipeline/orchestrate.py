# bulk_loadgen/pipeline/orchestrate.py
from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

import requests
from setproctitle import setproctitle

from bulk_loadgen.config import InputMode, LoadConfig
from bulk_loadgen.io.bulk import BulkSender
from bulk_loadgen.io.partition import (
    Range,
    count_lines,
    partition_bytes,
    partition_lines,
    partition_records,
    scan_record_batches,
)
from bulk_loadgen.pipeline.barrier import StartBarrier
from bulk_loadgen.pipeline.counters import LoadCounters, LoadSnapshot
from bulk_loadgen.pipeline.progress import ProgressReporter
from bulk_loadgen.pipeline.report import (
    log_load_summary,
    print_load_summary,
    print_run_summary,
)
from bulk_loadgen.pipeline.worker import WorkerOutcome, WorkerState, run_worker

logger = logging.getLogger(__name__)

__all__ = ["LoadPlan", "LoadResult", "plan_ranges", "run_bulk_load"]


@dataclass(frozen=True)
class LoadPlan:
    """Per-worker ranges plus the size they were cut from."""

    ranges: List[Range]
    total_extent: int  # lines, bytes or records
    total_docs: Optional[int]  # unknown up front in byte mode


@dataclass
class LoadResult:
    snapshot: LoadSnapshot
    elapsed_s: float
    outcomes: List[WorkerOutcome] = field(default_factory=list)

    @property
    def throughput(self) -> float:
        return self.snapshot.docs_rate(self.elapsed_s)

    @property
    def failed_workers(self) -> List[WorkerOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def exit_code(self, fail_on_errors: bool = False) -> int:
        """0 unless ``fail_on_errors`` and a bulk or a worker failed."""
        if not fail_on_errors:
            return 0
        if self.snapshot.batches_failed or self.failed_workers:
            return 1
        return 0


def plan_ranges(config: LoadConfig) -> LoadPlan:
    """
    Measure the input and cut it into ``config.num_threads`` ranges.

    Raises ValueError for an empty input and OSError if the file cannot be
    read; both are fatal before any worker starts.
    """
    path = config.file_path
    n = config.num_threads

    if config.input_mode is InputMode.LINES:
        total = count_lines(path)
        return LoadPlan(partition_lines(total, n), total, total)

    file_size = os.path.getsize(path)
    if config.input_mode is InputMode.BYTES:
        return LoadPlan(partition_bytes(file_size, n), file_size, None)

    batches = scan_record_batches(path, config.bulk_size)
    total_records = sum(count for _, count in batches)
    ranges = partition_records(batches, n, file_size=file_size)
    logger.info("Total bulk requests: %d", len(batches))
    return LoadPlan(ranges, total_records, total_records)


def run_bulk_load(
    config: LoadConfig,
    *,
    session_factory: Optional[Callable[[], requests.Session]] = None,
    plan: Optional[LoadPlan] = None,
) -> LoadResult:
    """
    Replay ``config.file_path`` against the bulk endpoint and measure it.

    Process
    -------
    1. Partition the input into one range per worker
    2. Launch a fixed pool of workers; each seeks and arrives at the barrier
    3. Once all have arrived, start the reporter and release the barrier
    4. Join every worker, stop the reporter, print the summary

    ``session_factory`` builds one HTTP session per worker (tests inject
    fakes here).
    """
    setproctitle("bulk-loadgen")
    start_time = datetime.now()

    if plan is None:
        plan = plan_ranges(config)
    ranges = plan.ranges
    n = len(ranges)

    print_run_summary(
        config=config,
        ranges=ranges,
        total_extent=plan.total_extent,
        start_time=start_time,
    )

    counters = LoadCounters()
    barrier = StartBarrier(n)
    abort = threading.Event()
    senders = [
        BulkSender.from_config(
            config, session=session_factory() if session_factory else None
        )
        for _ in ranges
    ]

    outcomes: List[WorkerOutcome] = []
    reporter = ProgressReporter(
        counters,
        interval_s=config.progress_every_s,
        total_docs=plan.total_docs,
        disable=not config.show_progress,
    )

    with ThreadPoolExecutor(max_workers=n, thread_name_prefix="bulk-worker") as executor:
        futures = {
            executor.submit(
                run_worker,
                worker_id,
                rng,
                config,
                barrier=barrier,
                counters=counters,
                sender=senders[worker_id],
                abort=abort,
            ): worker_id
            for worker_id, rng in enumerate(ranges)
        }

        barrier.wait_until_ready()
        logger.info("All %d workers ready, releasing start barrier", n)

        with reporter:
            released_at = barrier.release()
            for fut in as_completed(futures):
                outcomes.append(_collect(fut, futures[fut], ranges))
            elapsed = time.perf_counter() - released_at

    outcomes.sort(key=lambda o: o.worker_id)
    for outcome in outcomes:
        if not outcome.ok:
            logger.error(
                "Worker %d ended %s: %s",
                outcome.worker_id, outcome.state.value, outcome.error,
            )

    result = LoadResult(
        snapshot=counters.snapshot(), elapsed_s=elapsed, outcomes=outcomes
    )
    failed_workers = len(result.failed_workers)
    print_load_summary(result.snapshot, elapsed, failed_workers=failed_workers)
    log_load_summary(result.snapshot, elapsed, failed_workers=failed_workers)
    return result


def _collect(fut, worker_id: int, ranges: List[Range]) -> WorkerOutcome:
    try:
        return fut.result()
    except Exception as exc:
        logger.exception("Worker %d crashed", worker_id)
        return WorkerOutcome(
            worker_id=worker_id,
            range=ranges[worker_id],
            state=WorkerState.FAILED,
            error=f"ERROR: {exc}",
        )
