"""
Structured logging for the recommendation engine.

Every record may carry a subsystem (learn, recommend, stats, ...) and a
set of fields: user, state key, movie, event kind, reward, latency.
Console output is human-readable; with a log directory, records are
also written to rotating plain-text and JSON-lines files.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

# Short labels used by the human formatter, in display order
FIELD_LABELS = (
    ("user_id", "user"),
    ("state_key", "state"),
    ("movie_id", "movie"),
    ("event", "event"),
    ("reward", "reward"),
)


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "fields", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "ts": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "subsystem", None):
            data["subsystem"] = record.subsystem
        data.update(_fields(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """``12:00:01.234 INFO [learn] user=u1 state=Drama|fun|night: message (1.2ms)``"""

    COLORS = {"WARNING": "\033[33m", "ERROR": "\033[31m", "CRITICAL": "\033[35m"}
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        fields = _fields(record)
        parts = [
            datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3],
            record.levelname[:4],
        ]
        if getattr(record, "subsystem", None):
            parts.append(f"[{record.subsystem}]")
        parts.extend(f"{label}={fields[key]}" for key, label in FIELD_LABELS if key in fields)

        line = f"{' '.join(parts)}: {record.getMessage()}"
        if "latency_ms" in fields:
            line += f" ({fields['latency_ms']:.1f}ms)"

        color = self.COLORS.get(record.levelname)
        if color and self.use_colors and sys.stderr.isatty():
            line = f"{color}{line}{self.RESET}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger with helpers for the engine's two kinds of structured record."""

    def structured(self, level: int, msg: str, subsystem: Optional[str] = None, **fields: Any) -> None:
        """Log ``msg`` with the given fields; None-valued fields are dropped."""
        if self.isEnabledFor(level):
            clean = {k: v for k, v in fields.items() if v is not None}
            self.log(level, msg, extra={"subsystem": subsystem, "fields": clean})

    def interaction(self, kind: str, msg: str, **fields: Any) -> None:
        """An interaction the learner applied (INFO)."""
        self.structured(logging.INFO, msg, event=kind, **fields)

    def latency(self, operation: str, latency_ms: float, **fields: Any) -> None:
        """Timing of one engine operation (DEBUG)."""
        self.structured(
            logging.DEBUG,
            f"{operation} completed",
            latency_ms=round(latency_ms, 2),
            **fields,
        )


# Loggers created from here on, including get_logger(), are StructuredLoggers
logging.setLoggerClass(StructuredLogger)


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Install console and (optionally) rotating file handlers on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for ``cinerl.log`` and ``cinerl.json.log``
        max_bytes: Max size per log file before rotation
        backup_count: Rotated files to keep
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = []

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(HumanFormatter())
    root.addHandler(console)

    if not log_dir:
        return

    os.makedirs(log_dir, exist_ok=True)
    for filename, formatter in (
        ("cinerl.log", HumanFormatter(use_colors=False)),
        ("cinerl.json.log", JSONFormatter()),
    ):
        handler = RotatingFileHandler(
            os.path.join(log_dir, filename),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a cinerl module."""
    logger = logging.getLogger(name)
    if not isinstance(logger, StructuredLogger):
        raise TypeError(f"Logger {name!r} was created before cinerl.logging_config was imported")
    return logger
