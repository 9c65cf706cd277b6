"""Structured local logging for the lab, plus crash hooks for every thread."""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import os
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import config_root


_LOGGER_NAME = "telemetrylab"
LOG_FILE_NAME = "telemetrylab.log"
FAULT_FILE_NAME = "fault.log"
LEVEL_ENV = "TELEMETRYLAB_LOG_LEVEL"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_fault_file = None


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def log_files(directory: Path | None = None) -> list[Path]:
    """Current and rotated log files, fault log included, oldest name first."""
    base = directory or log_dir()
    return sorted(p for p in base.glob("*.log*") if p.is_file())


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are carried through as-is."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _resolve_level(level: int | str | None) -> int:
    raw = level if level is not None else os.environ.get(LEVEL_ENV, "INFO")
    if isinstance(raw, int):
        return raw
    resolved = logging.getLevelName(str(raw).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    directory: Path | None = None,
    level: int | str | None = None,
) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(_resolve_level(level))
    base = directory or log_dir()
    base.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(base / LOG_FILE_NAME),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    file_handler.setFormatter(JsonFormatter())
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(levelname)s [%(threadName)s] %(name)s: %(message)s"))
        logger.addHandler(console_handler)

    logger.info(
        "logging configured",
        extra={"event": "logging_configured", "log_dir": str(base), "level": logging.getLevelName(logger.level)},
    )
    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


def _install_fault_handler(logger: logging.Logger) -> None:
    global _fault_file
    if _fault_file is None:
        _fault_file = (log_dir() / FAULT_FILE_NAME).open("a", encoding="utf-8")
    faulthandler.enable(file=_fault_file, all_threads=True)
    logger.info("fault handler enabled", extra={"event": "fault_handler_enabled"})


def _report_crash(logger: logging.Logger, event: str, where: str, exc_info) -> str:
    crash_id = str(uuid.uuid4())
    logger.critical(
        f"{where} crash_id={crash_id}",
        exc_info=exc_info,
        extra={"event": event, "crash_id": crash_id},
    )
    return crash_id


def install_crash_hooks() -> None:
    """Route uncaught exceptions from the GUI thread and the pacer thread into the log."""
    logger = get_logger()

    def _main_hook(exc_type, exc_value, exc_tb) -> None:
        _report_crash(logger, "uncaught_exception", "uncaught exception", (exc_type, exc_value, exc_tb))

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        name = args.thread.name if args.thread is not None else "unknown"
        _report_crash(
            logger,
            "thread_exception",
            f"thread exception thread={name}",
            (args.exc_type, args.exc_value, args.exc_traceback),
        )

    sys.excepthook = _main_hook
    threading.excepthook = _thread_hook
    _install_fault_handler(logger)
