# bulk_loadgen/pipeline/report.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from bulk_loadgen.config import LoadConfig
from bulk_loadgen.io.partition import Range
from bulk_loadgen.pipeline.counters import LoadSnapshot

logger = logging.getLogger(__name__)


def _abbrev(s: str, width: int = 96) -> str:
    """Return s truncated with an ellipsis if it exceeds width."""
    return s if len(s) <= width else (s[: max(0, width - 1)] + "…")


def format_run_summary(
    *,
    config: LoadConfig,
    ranges: Sequence[Range],
    total_extent: int,
    start_time: datetime,
    color: bool = True,
) -> str:
    """
    Build a formatted, human-readable summary of the planned run.

    ``total_extent`` is the partitioned size: lines, bytes or records
    depending on the input mode.
    """
    heading = f"Start Time: {start_time:%Y-%m-%d %H:%M:%S}"
    if color:
        heading = f"\033[31m{heading}\033[0m"

    mode = config.input_mode.value

    lines = [
        heading,
        ("\033[4mBulk Load Configuration\033[0m" if color
         else "Bulk Load Configuration"),
        f"Bulk endpoint:              {_abbrev(config.bulk_url)}",
        f"Input file:                 {_abbrev(str(config.file_path))}",
        f"Input mode:                 {mode}",
        f"Total input:                {total_extent:,} {mode}",
        f"Bulk action:                {config.action.value}",
        f"Bulk size:                  {config.bulk_size:,} docs",
        f"Worker threads:             {config.num_threads}",
        f"Transport errors:           {config.transport_error_policy.value}",
    ]

    for i, rng in enumerate(ranges):
        lines.append(
            f"  worker {i:<3d} start={rng.start:,} length={rng.length:,}"
        )
    return "\n".join(lines) + "\n"


def format_load_summary(
    snapshot: LoadSnapshot,
    elapsed_s: float,
    *,
    failed_workers: int = 0,
    color: bool = True,
) -> str:
    """Build the end-of-run throughput summary."""
    red = "\033[31m" if color else ""
    reset = "\033[0m" if color else ""

    failed_bulks = f"Total failed bulks: {snapshot.batches_failed:,}"
    if snapshot.batches_failed:
        failed_bulks = f"{red}{failed_bulks}{reset}"

    lines = [
        "",
        "=== Bulk Load Summary ===",
        f"Total docs sent: {snapshot.docs_sent:,}",
        failed_bulks,
        f"Docs in failed bulks: {snapshot.docs_failed:,}",
        f"Total bytes sent: {snapshot.bytes_sent:,} ({snapshot.megabytes_sent:.2f} MB)",
        f"Elapsed time: {elapsed_s:.2f} sec",
        f"Average throughput: {snapshot.docs_rate(elapsed_s):.2f} docs/sec",
    ]
    if failed_workers:
        lines.append(f"{red}Failed workers: {failed_workers}{reset}")
    lines.append("========================")
    return "\n".join(lines) + "\n"


def print_run_summary(**kwargs) -> None:
    """Print the run summary to stdout (CLI usage)."""
    print(format_run_summary(**kwargs), end="")


def log_run_summary(*, color: bool = False, **kwargs) -> None:
    """Log the run summary at INFO level."""
    summary = format_run_summary(color=color, **kwargs)
    for line in summary.rstrip("\n").splitlines():
        logger.info(line)


def print_load_summary(snapshot: LoadSnapshot, elapsed_s: float, **kwargs) -> None:
    print(format_load_summary(snapshot, elapsed_s, **kwargs), end="")


def log_load_summary(
    snapshot: LoadSnapshot, elapsed_s: float, *, color: bool = False, **kwargs
) -> None:
    summary = format_load_summary(snapshot, elapsed_s, color=color, **kwargs)
    for line in summary.strip("\n").splitlines():
        logger.info(line)
