"""
Logging setup shared by the API process and Celery workers.

Two sinks on the root logger:
- console: one readable line per record
- CSV file: one row per record, rotated at midnight, 30 days kept

Sync code attaches its context through `extra=`; the CSV columns after
`message` are filled from those attributes so a job can be traced with a
plain filter on `job_id`:

    logger.info("[REPO_SYNC] ...", extra={"user_id": user_id, "job_id": job_id})
"""

import csv
import io
import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from app.core.config import get_settings

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes copied into the CSV row, in column order
CONTEXT_FIELDS = ("user_id", "job_id", "task_id", "error")
CSV_FIELDS = ("timestamp", "level", "module", "message") + CONTEXT_FIELDS

NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


class CsvFormatter(logging.Formatter):
    """Formats a record as one CSV line; csv.writer handles quoting."""

    def format(self, record: logging.LogRecord) -> str:
        row = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            record.name,
            record.getMessage(),
        ]
        row.extend(getattr(record, field, "") or "" for field in CONTEXT_FIELDS)

        buffer = io.StringIO()
        csv.writer(buffer).writerow(row)
        return buffer.getvalue().rstrip("\r\n")


class CsvRotatingFileHandler(TimedRotatingFileHandler):
    """Writes the header row whenever it opens an empty file (first run, after rotation)."""

    def _open(self):
        needs_header = not os.path.exists(self.baseFilename) or os.path.getsize(self.baseFilename) == 0
        stream = super()._open()
        if needs_header:
            stream.write(",".join(CSV_FIELDS) + "\n")
            stream.flush()
        return stream


def _resolve_level(level: Optional[int]) -> int:
    if level is not None:
        return level
    resolved = logging.getLevelName(get_settings().log_level)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: Optional[int] = None, log_dir: Optional[Path] = None) -> None:
    """
    Install the console and CSV handlers on the root logger.

    Safe to call more than once (FastAPI lifespan, each Celery logging
    signal): a root logger that already has a CsvRotatingFileHandler is left
    untouched.
    """
    root = logging.getLogger()
    if any(isinstance(h, CsvRotatingFileHandler) for h in root.handlers):
        return

    log_dir = Path(log_dir or get_settings().log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root.setLevel(_resolve_level(level))

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    root.addHandler(console)

    csv_file = log_dir / f"repo_sync_{datetime.now():%Y_%m_%d}.csv"
    csv_handler = CsvRotatingFileHandler(
        filename=csv_file,
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8",
    )
    csv_handler.setFormatter(CsvFormatter(datefmt=DATE_FORMAT))
    root.addHandler(csv_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
