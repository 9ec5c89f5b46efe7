# src/config/logging_config.py

"""Per-run logging for the gold_watch service.

Every launch (server, one-shot scrape, health probe) writes to its own
``logs/run_<timestamp>.log``.  The ``gold_watch`` hierarchy logs at DEBUG
into that file; the console only sees warnings.  APScheduler and uvicorn
records are routed into the same file so a missed cron tick or a failed
request can be read next to the scrape that caused it.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers whose INFO output belongs in the run log
_ATTACHED_LOGGERS: tuple[str, ...] = ("apscheduler", "uvicorn")


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Configure the ``gold_watch`` logger for this run.

    Returns:
        Path of the log file for this run.  Repeated calls keep the
        handlers installed by the first call.
    """
    directory = logs_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = directory / f"run_{stamp}.log"

    app_logger = logging.getLogger("gold_watch")
    app_logger.setLevel(logging.DEBUG)

    if app_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    app_logger.addHandler(file_handler)
    app_logger.addHandler(console_handler)

    for name in _ATTACHED_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.setLevel(logging.INFO)
        third_party.addHandler(file_handler)

    app_logger.info("Logging initialised, writing to %s", log_file)
    return log_file
