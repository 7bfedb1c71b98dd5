"""
scan_log.py - Per-run message sink and the optional scan log file.

Every run gets its own RunLog, so errors collected by one run never show up
in the report of another.
"""

import logging
import os
from typing import List, Optional

from models import ScanSettings

RUN_LOGGER_NAME = "video_cleaner.run"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)

_file_handler: Optional[logging.FileHandler] = None


class RunLog:
    """Collects the error messages of one run and mirrors everything to logging."""

    def __init__(self, name: str = RUN_LOGGER_NAME):
        self._logger = logging.getLogger(name)
        self.errors: List[str] = []

    def info(self, message: str, *args) -> None:
        self._logger.info(message, *args)

    def error(self, message: str) -> None:
        self.errors.append(message)
        self._logger.error(message)

    def __len__(self) -> int:
        return len(self.errors)


def configure_file_logging(settings: ScanSettings, log_file: str) -> Optional[logging.FileHandler]:
    """
    Attaches (or detaches) the scan log file according to ``settings.log_enabled``.

    A log file that cannot be opened is reported as a warning and the run
    carries on without it.
    """
    global _file_handler
    run_logger = logging.getLogger(RUN_LOGGER_NAME.split(".")[0])

    if _file_handler is not None:
        run_logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None

    if not settings.log_enabled:
        return None

    try:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError as exc:
        logger.warning("Scan log %s is not writable: %s", log_file, exc)
        return None

    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    run_logger.addHandler(handler)
    if run_logger.level == logging.NOTSET:
        run_logger.setLevel(logging.INFO)
    _file_handler = handler
    return handler
