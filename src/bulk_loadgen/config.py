# bulk_loadgen/config.py
"""Configuration for a bulk load run."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from bulk_loadgen.io.framing import ActionKind


class InputMode(str, Enum):
    """How the input file is laid out and partitioned."""

    LINES = "lines"      # NDJSON, partitioned by line count
    BYTES = "bytes"      # NDJSON, partitioned by byte offset
    RECORDS = "records"  # [int32 BE length][payload], partitioned by bulk

    @property
    def is_binary(self) -> bool:
        return self is InputMode.RECORDS


class TransportErrorPolicy(str, Enum):
    """What a connection-level send failure aborts."""

    ABORT_WORKER = "abort_worker"
    ABORT_RUN = "abort_run"


NDJSON_HEADERS = {"Content-Type": "application/x-ndjson"}
SMILE_HEADERS = {
    "Content-Type": "application/smile",
    "Bulk-Format": "prefix-length",
}


@dataclass(frozen=True)
class LoadConfig:
    """Everything a bulk load run needs, validated on construction."""

    # Endpoint
    base_url: str
    index_name: str

    # Input
    file_path: Path
    input_mode: InputMode = InputMode.LINES
    action: ActionKind = ActionKind.INDEX

    # Parallelism
    bulk_size: int = 1000  # documents per bulk request
    num_threads: int = 8

    # HTTP
    connect_timeout_s: float = 10.0
    read_timeout_s: Optional[float] = None  # None waits indefinitely

    # Progress reporting
    progress_every_s: float = 5.0
    show_progress: bool = True

    # Failure policy
    transport_error_policy: TransportErrorPolicy = TransportErrorPolicy.ABORT_WORKER
    fail_on_errors: bool = False  # non-zero exit when any batch or worker failed

    def __post_init__(self) -> None:
        # Frozen: coerce through object.__setattr__.
        object.__setattr__(self, "file_path", Path(self.file_path))
        object.__setattr__(self, "input_mode", InputMode(self.input_mode))
        object.__setattr__(self, "action", ActionKind(self.action))
        object.__setattr__(
            self, "transport_error_policy",
            TransportErrorPolicy(self.transport_error_policy),
        )

        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if not self.index_name:
            raise ValueError("index_name must not be empty")
        if self.bulk_size < 1:
            raise ValueError(f"bulk_size must be >= 1, got {self.bulk_size}")
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be >= 1, got {self.num_threads}")
        if self.connect_timeout_s <= 0:
            raise ValueError(
                f"connect_timeout_s must be > 0, got {self.connect_timeout_s}"
            )
        if self.read_timeout_s is not None and self.read_timeout_s <= 0:
            raise ValueError(f"read_timeout_s must be > 0, got {self.read_timeout_s}")
        if self.progress_every_s <= 0:
            raise ValueError(
                f"progress_every_s must be > 0, got {self.progress_every_s}"
            )

    @property
    def bulk_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.index_name}/_bulk"

    @property
    def headers(self) -> Dict[str, str]:
        return dict(SMILE_HEADERS if self.input_mode.is_binary else NDJSON_HEADERS)
