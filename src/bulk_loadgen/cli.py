"""Command-line interface for the bulk load generator."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bulk_loadgen.config import InputMode, LoadConfig, TransportErrorPolicy
from bulk_loadgen.io.framing import ActionKind
from bulk_loadgen.pipeline.logger import LOG_FORMAT, setup_logger
from bulk_loadgen.pipeline.orchestrate import plan_ranges, run_bulk_load


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging to write to stderr."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bulk-loadgen",
        description="Replay a document file as parallel bulk requests and "
                    "measure indexing throughput.",
    )

    parser.add_argument("es_url", help="Base URL of the endpoint, e.g. http://localhost:9200")
    parser.add_argument("index_name", help="Target index or data stream")
    parser.add_argument("bulk_size", type=int, help="Documents per bulk request")
    parser.add_argument("threads", type=int, help="Number of worker threads")
    parser.add_argument("file_path", type=Path, help="Input file")

    parser.add_argument(
        "--mode",
        choices=[m.value for m in InputMode],
        default=InputMode.LINES.value,
        help="lines: NDJSON split by line count; bytes: NDJSON split by byte "
             "offset; records: length-prefixed binary records (default: lines)",
    )
    parser.add_argument(
        "--data-stream",
        action="store_true",
        help="Target is a data stream: use the 'create' action instead of 'index'",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=10.0,
        help="Connection timeout in seconds (default: 10)",
    )
    parser.add_argument(
        "--read-timeout",
        type=float,
        default=None,
        help="Read timeout in seconds (default: none)",
    )
    parser.add_argument(
        "--progress-interval",
        type=float,
        default=5.0,
        help="Seconds between progress samples (default: 5)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--transport-errors",
        choices=[p.value for p in TransportErrorPolicy],
        default=TransportErrorPolicy.ABORT_WORKER.value,
        help="What a connection failure aborts (default: abort_worker)",
    )
    parser.add_argument(
        "--fail-on-errors",
        action="store_true",
        help="Exit 1 if any bulk or worker failed",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Write a timestamped log file here instead of logging to stderr",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser


def build_config(args: argparse.Namespace) -> LoadConfig:
    return LoadConfig(
        base_url=args.es_url,
        index_name=args.index_name,
        file_path=args.file_path,
        input_mode=InputMode(args.mode),
        action=ActionKind.for_target(args.data_stream),
        bulk_size=args.bulk_size,
        num_threads=args.threads,
        connect_timeout_s=args.connect_timeout,
        read_timeout_s=args.read_timeout,
        progress_every_s=args.progress_interval,
        show_progress=not args.no_progress,
        transport_error_policy=TransportErrorPolicy(args.transport_errors),
        fail_on_errors=args.fail_on_errors,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = getattr(logging, args.log_level)
    if args.log_dir is not None:
        setup_logger(args.log_dir, level=log_level, force=True)
    else:
        configure_logging(log_level)

    try:
        config = build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    if not config.file_path.is_file():
        parser.error(f"input file not found: {config.file_path}")

    # Partitioning errors are fatal before any worker starts.
    try:
        plan = plan_ranges(config)
    except (ValueError, OSError) as exc:
        parser.error(f"cannot partition {config.file_path}: {exc}")

    result = run_bulk_load(config, plan=plan)
    return result.exit_code(config.fail_on_errors)


if __name__ == "__main__":
    sys.exit(main())
