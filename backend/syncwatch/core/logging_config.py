"""
Logging setup for hosts embedding the sync monitor.

Console gets readable lines; a daily CSV file gets one row per record with
the monitored job pulled out into its own column, so a single sync can be
followed with a plain filter. Modules attach context through `extra`:

    logger.warning("Sync progress stream rejected", extra={'job_id': job_id, 'error': str(e)})
"""

import csv
import io
import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

# Default log directory (backend/logs)
LOG_DIR = Path(__file__).parent.parent.parent / "logs"
LOG_FILE_PREFIX = "sync_monitor"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes supplied through `extra`, written after the message
CONTEXT_FIELDS = ('job_id', 'error')
CSV_FIELDS = ['timestamp', 'level', 'module', 'message', *CONTEXT_FIELDS]


class CsvFormatter(logging.Formatter):
    """One CSV row per record; missing context fields are left empty."""

    def format(self, record):
        row = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            record.name,
            record.getMessage(),
        ]
        row.extend(getattr(record, field, '') or '' for field in CONTEXT_FIELDS)

        output = io.StringIO()
        csv.writer(output, quoting=csv.QUOTE_MINIMAL).writerow(row)
        return output.getvalue().strip()


class CsvRotatingFileHandler(TimedRotatingFileHandler):
    """Rotates at midnight and starts every fresh file with the header row."""

    def _open(self):
        is_new = not os.path.exists(self.baseFilename) or \
                 os.path.getsize(self.baseFilename) == 0

        stream = super()._open()
        if is_new:
            stream.write(','.join(CSV_FIELDS) + '\n')
            stream.flush()
        return stream


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> None:
    """
    Attach console and CSV handlers to the root logger.

    Safe to call more than once; the second call is a no-op.
    """
    log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    if any(isinstance(h, CsvRotatingFileHandler) for h in root_logger.handlers):
        return

    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # sync_monitor_2025_12_19.csv, 30 days kept
    today = datetime.now().strftime("%Y_%m_%d")
    csv_handler = CsvRotatingFileHandler(
        filename=log_dir / f"{LOG_FILE_PREFIX}_{today}.csv",
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8"
    )
    csv_handler.setFormatter(CsvFormatter(datefmt=DATE_FORMAT))
    root_logger.addHandler(csv_handler)

    # Per-request chatter from the HTTP client drowns out stream events
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
