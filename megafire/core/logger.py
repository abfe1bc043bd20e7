"""
Centralized logging for Mega Fire Roulette.

One `megafire` logger with per-component children (`table`, `ledger`,
`database`, ...). Console output is colored or JSON; file output is plain
text with rotation. Round events carry their context (`round`, `balance`)
as `extra=` fields, which every formatter prints.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "megafire"

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> dict:
    """The `extra=` fields attached to a record."""
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


def _with_traceback(formatter: logging.Formatter, record: logging.LogRecord, line: str) -> str:
    if record.exc_info:
        return f"{line}\n{formatter.formatException(record.exc_info)}"
    return line


class ColoredFormatter(logging.Formatter):
    """Console formatter: colored level, then the round context as key=value pairs."""

    RESET = "\033[0m"
    DIM = "\033[90m"
    NAME = "\033[96m"
    LEVELS = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[92m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[95m",
    }

    def format(self, record):
        color = self.LEVELS.get(record.levelno, self.RESET)
        stamp = self.formatTime(record, "%H:%M:%S")
        line = (
            f"{self.DIM}{stamp}{self.RESET} {color}{record.levelname:<7}{self.RESET} "
            f"{self.NAME}{record.name}{self.RESET} {record.getMessage()}"
        )
        context = record_context(record)
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            line = f"{line} {self.DIM}[{pairs}]{self.RESET}"
        return _with_traceback(self, record, line)


class PlainFormatter(logging.Formatter):
    """File formatter: no colors, context kept."""

    def format(self, record):
        stamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        line = f"{stamp} | {record.levelname:<7} | {record.name} | {record.getMessage()}"
        context = record_context(record)
        if context:
            line = f"{line} | " + " ".join(f"{k}={v}" for k, v in context.items())
        return _with_traceback(self, record, line)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, context fields at the top level."""

    def format(self, record):
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logger(
    level: str = "INFO",
    log_to_file: bool = False,
    log_file_path: Optional[Path] = None,
    formatter: str = "color",
    max_bytes: int = 2 * 1024 * 1024,
    backups: int = 3,
) -> logging.Logger:
    """
    Configure the `megafire` logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_to_file: also write to `log_file_path` with rotation
        log_file_path: required when `log_to_file` is set
        formatter: "color" or "json" for the console
        max_bytes / backups: rotation policy of the file handler

    Calling it again only changes the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JsonFormatter() if formatter == "json" else ColoredFormatter())
    logger.addHandler(console)

    if log_to_file and log_file_path is not None:
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(log_file_path, maxBytes=max_bytes, backupCount=backups)
            handler.setFormatter(PlainFormatter())
            logger.addHandler(handler)
        except OSError as e:
            sys.stderr.write(f"WARNING: file logging disabled ({e})\n")

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """The `megafire` logger, or its `name` child (e.g. "table")."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        setup_logger()
    return root.getChild(name) if name else root


def init_logging(
    level: str = "INFO",
    log_to_file: bool = False,
    formatter: str = "color",
    log_file_path: Optional[Path] = None,
):
    """Called once at application startup, before the first request."""
    # Replace the default console handler installed by early get_logger() calls
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    logger = setup_logger(
        level=level,
        log_to_file=log_to_file,
        log_file_path=log_file_path,
        formatter=formatter,
    )
    logger.info(f"Logging initialized at {level} level")
