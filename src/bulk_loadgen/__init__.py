"""
Parallel bulk-load generator for document-store ``_bulk`` endpoints.

Replays an NDJSON file or a length-prefixed binary record file as parallel
bulk requests from a fixed pool of workers that all start sending at the
same instant, and reports throughput.

Main entry point:
    run_bulk_load() - partition, launch workers, release, join, summarise

Key components:
    - io.partition: per-worker ranges by line count, byte offset or bulk
    - io.framing: action headers and NDJSON/binary record framing
    - io.ranges: seek-then-iterate readers for one range
    - io.bulk: HTTP bulk client
    - pipeline.barrier: ready countdown and one-shot release
    - pipeline.worker: per-range batch loop
    - pipeline.progress / pipeline.report: progress and summaries
"""

from bulk_loadgen.config import InputMode, LoadConfig, TransportErrorPolicy
from bulk_loadgen.io.framing import ActionKind
from bulk_loadgen.pipeline.orchestrate import LoadResult, run_bulk_load

__all__ = [
    "run_bulk_load",
    "LoadResult",
    "LoadConfig",
    "InputMode",
    "ActionKind",
    "TransportErrorPolicy",
]
