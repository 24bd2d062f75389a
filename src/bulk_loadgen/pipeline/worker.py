# bulk_loadgen/pipeline/worker.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

import requests
from setproctitle import setthreadtitle

from bulk_loadgen.config import LoadConfig, TransportErrorPolicy
from bulk_loadgen.io.bulk import BulkSender
from bulk_loadgen.io.framing import action_line, action_record, frame_line, frame_record
from bulk_loadgen.io.partition import Range
from bulk_loadgen.io.ranges import PrematureEndOfInput, open_range_reader
from bulk_loadgen.pipeline.barrier import StartBarrier
from bulk_loadgen.pipeline.counters import LoadCounters

logger = logging.getLogger(__name__)

__all__ = [
    "Batch",
    "RunAborted",
    "WorkerOutcome",
    "WorkerState",
    "make_framer",
    "run_worker",
]

Framer = Callable[[bytearray, bytes], None]


class WorkerState(str, Enum):
    SEEKING = "seeking"
    READY = "ready"
    SENDING = "sending"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"
    ABORTED = "aborted"


class RunAborted(RuntimeError):
    """Another worker hit a transport error under the abort-run policy."""


@dataclass
class Batch:
    """Framed documents awaiting one bulk request."""

    buffer: bytearray = field(default_factory=bytearray)
    count: int = 0

    def reset(self) -> None:
        self.buffer = bytearray()
        self.count = 0


@dataclass
class WorkerOutcome:
    """What one worker did; returned instead of raising into the pool."""

    worker_id: int
    range: Range
    state: WorkerState = WorkerState.SEEKING
    docs_attempted: int = 0
    batches_attempted: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is WorkerState.DONE


def make_framer(config: LoadConfig) -> Framer:
    """Bind the run's action header to the framing function for its mode."""
    if config.input_mode.is_binary:
        header = action_record(config.action)
        return lambda buf, doc: frame_record(buf, header, doc)
    header = action_line(config.action)
    return lambda buf, doc: frame_line(buf, header, doc)


def run_worker(
    worker_id: int,
    rng: Range,
    config: LoadConfig,
    *,
    barrier: StartBarrier,
    counters: LoadCounters,
    sender: BulkSender,
    abort: Optional[threading.Event] = None,
) -> WorkerOutcome:
    """
    Seek to ``rng``, wait for the barrier, then stream the range as bulks.

    Always arrives at the barrier exactly once, even when seeking fails, so
    the orchestrator is never left waiting. Failures are logged and carried
    in the returned outcome; failed HTTP statuses only bump the counters.
    """
    outcome = WorkerOutcome(worker_id=worker_id, range=rng)
    arrived = False

    try:
        setthreadtitle(f"bulk-worker-{worker_id}")
        frame = make_framer(config)
        with open_range_reader(config.input_mode, config.file_path, rng) as reader:
            outcome.state = WorkerState.READY
            barrier.arrive()
            arrived = True
            barrier.wait_for_release()

            outcome.state = WorkerState.SENDING
            batch = Batch()
            for doc in reader:
                frame(batch.buffer, doc)
                batch.count += 1
                if batch.count >= config.bulk_size:
                    _flush(worker_id, batch, sender, counters, outcome, abort)

            outcome.state = WorkerState.DRAINING
            if batch.count:
                _flush(worker_id, batch, sender, counters, outcome, abort)

        outcome.state = WorkerState.DONE
        logger.info(
            "Worker %d: done, %d docs in %d bulks",
            worker_id, outcome.docs_attempted, outcome.batches_attempted,
        )

    except RunAborted as exc:
        outcome.state = WorkerState.ABORTED
        outcome.error = str(exc)
        logger.warning("Worker %d: stopping, %s", worker_id, exc)
    except requests.RequestException as exc:
        outcome.state = WorkerState.FAILED
        outcome.error = f"TRANSPORT_ERROR: {exc}"
        if config.transport_error_policy is TransportErrorPolicy.ABORT_RUN and abort is not None:
            abort.set()
            logger.error("Worker %d: transport error, aborting run: %s", worker_id, exc)
        else:
            logger.error("Worker %d: transport error, aborting worker: %s", worker_id, exc)
    except PrematureEndOfInput as exc:
        outcome.state = WorkerState.FAILED
        outcome.error = f"PREMATURE_EOF: {exc}"
        logger.error("Worker %d: %s", worker_id, exc)
    except OSError as exc:
        outcome.state = WorkerState.FAILED
        outcome.error = f"IO_ERROR: {exc}"
        logger.error("Worker %d: I/O error on %s: %s", worker_id, config.file_path, exc)
    finally:
        if not arrived:
            barrier.arrive()
        sender.close()

    return outcome


def _flush(
    worker_id: int,
    batch: Batch,
    sender: BulkSender,
    counters: LoadCounters,
    outcome: WorkerOutcome,
    abort: Optional[threading.Event],
) -> None:
    if abort is not None and abort.is_set():
        raise RunAborted(f"run aborted with {batch.count} docs unsent")

    outcome.batches_attempted += 1
    outcome.docs_attempted += batch.count
    try:
        result = sender.send(bytes(batch.buffer), batch.count)
    except requests.RequestException:
        counters.record_failure(batch.count)
        raise
    finally:
        batch.reset()

    counters.record(result)
    if not result.ok:
        logger.warning(
            "Worker %d: bulk of %d docs failed with HTTP %d: %s",
            worker_id, result.doc_count, result.status_code, result.error_body,
        )
