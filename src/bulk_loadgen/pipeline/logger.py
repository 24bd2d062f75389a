# bulk_loadgen/pipeline/logger.py
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


def setup_logger(
    log_dir: str | Path,
    *,
    level: int = logging.INFO,
    filename_prefix: str = "bulk_load",
    console: bool = False,
    rotate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """
    Configure root logging to write a timestamped file under ``log_dir``.

    A path with a suffix is treated as a file and its parent directory is
    used. Returns the path to the log file. Safe to call once at process
    start.
    """
    p = Path(log_dir).expanduser()
    log_dir = p if (p.is_dir() or not p.suffix) else p.parent
    log_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"{filename_prefix}_{ts}.log"

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)

    root.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if rotate:
        fhandler = RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    else:
        fhandler = logging.FileHandler(log_path, mode="w", encoding="utf-8")

    fhandler.setLevel(level)
    fhandler.setFormatter(fmt)
    root.addHandler(fhandler)

    if console:
        shandler = logging.StreamHandler()
        shandler.setLevel(level)
        shandler.setFormatter(fmt)
        root.addHandler(shandler)

    root.info("Logging to: %s", str(log_path))
    return log_path
