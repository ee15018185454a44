from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

__all__ = [
    "setup_logging",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "formdata_import"
DEFAULT_LOG_FILE = "logs/formdata_import.log"

# run summary lines sit between INFO (20) and WARNING (30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formats records as `LABEL message` (INFO|WARN|ERROR|SUMMARY)."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


class FileLineFormatter(LabeledFormatter):
    """Same labels, prefixed with a timestamp and the module logger name for the log file."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        line = f"{stamp} {record.name} {super().format(record)}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_log_file() -> Path:
    """Log file path from `FORMDATA_LOG_FILE`, or the default under `logs/`."""
    return Path(os.getenv("FORMDATA_LOG_FILE", DEFAULT_LOG_FILE))


def setup_logging(*, log_file: Path | None = None, level: int = logging.INFO) -> logging.Logger:
    """Configure the package logger once (idempotent).

    - stdout handler with labeled prefixes
    - append-only file handler for diagnostic lines (`log_file` or `FORMDATA_LOG_FILE`)

    Module loggers (`logging.getLogger(__name__)`) propagate into this one.
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    # the file handler keeps DEBUG lines, the console filters by `level`
    logger.setLevel(logging.DEBUG)

    # clear any existing handlers to avoid duplication
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(LabeledFormatter())
    logger.addHandler(console)

    path = log_file if log_file is not None else get_log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(FileLineFormatter())
    logger.addHandler(file_handler)

    # prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    _logger = logger
    return logger


def log_summary(message: str) -> None:
    """Log a run summary at SUMMARY level, configuring logging with defaults on first use."""
    logger = _logger if _logger is not None else setup_logging()
    logger.log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Drop handlers and the cached logger. Mainly for testing purposes."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
            handler.close()
    _logger = None
