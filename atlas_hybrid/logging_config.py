"""
Structured logging for the decision loop.

Two renderings of the same record:
- a compact, optionally colored console/file line for humans
- one JSON object per line for log shippers

Structured fields travel on the LogRecord (set by log_event) and are
listed once in STRUCTURED_FIELDS so both formatters stay in sync.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

# LogRecord attribute -> JSON key
STRUCTURED_FIELDS = (
    ("subsystem", "subsystem"),
    ("context", "context"),
    ("action", "action"),
    ("event_type", "event"),
    ("latency_ms", "latency_ms"),
)

HUMAN_LOG_NAME = "atlas.log"
JSON_LOG_NAME = "atlas.json.log"


def _structured(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured fields present on a record. Empty strings and None are skipped; 0 is kept."""
    fields = {}
    for attr, key in STRUCTURED_FIELDS:
        value = getattr(record, attr, None)
        if value is not None and value != "":
            fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_structured(record))
        payload.update(getattr(record, "extra_data", None) or {})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """
    `HH:MM:SS.mmm LEVL [subsystem] ctx=... action=...: message (N.Nms)`

    Colors are only applied when stderr is a terminal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        fields = _structured(record)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]

        head = [clock, record.levelname[:4]]
        if fields.get("subsystem", "general") != "general":
            head.append(f"[{fields['subsystem']}]")
        if "context" in fields:
            head.append(f"ctx={fields['context']}")
        if "action" in fields:
            head.append(f"action={fields['action']}")

        body = record.getMessage()
        if "latency_ms" in fields:
            body += f" ({fields['latency_ms']:.1f}ms)"

        text = f"{' '.join(head)}: {body}"
        if self.use_colors and sys.stderr.isatty():
            text = f"{self.LEVEL_COLORS.get(record.levelno, '')}{text}{self.RESET}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def log_event(
    logger: logging.Logger,
    event_type: Optional[str],
    msg: str,
    level: int = logging.INFO,
    subsystem: str = "general",
    context: Optional[str] = None,
    action: Optional[int] = None,
    latency_ms: Optional[float] = None,
    **extra,
) -> None:
    """
    Log `msg` with structured fields on any logger.

    Keyword arguments beyond the named fields are merged into the JSON
    record as-is.
    """
    logger.log(
        level,
        msg,
        extra={
            "subsystem": subsystem,
            "context": context,
            "action": action,
            "event_type": event_type,
            "latency_ms": latency_ms,
            "extra_data": extra,
        },
    )


class StructuredLogger(logging.Logger):
    """Logger class installed by configure_logging()."""

    def event(self, event_type: str, msg: str, **kwargs) -> None:
        log_event(self, event_type, msg, **kwargs)


def _rotating(path: str, formatter: logging.Formatter, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    json_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Install console logging and, with a log_dir, rotating log files.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        level: Root level name (unknown names fall back to INFO)
        log_dir: Directory for atlas.log and atlas.json.log
        json_file: Alternative JSON log path (relative paths land in log_dir)
        max_bytes: Rotation size per file
        backup_count: Rotated files kept per log
    """
    logging.setLoggerClass(StructuredLogger)

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(HumanFormatter())
    root.addHandler(console)

    if not log_dir:
        return

    os.makedirs(log_dir, exist_ok=True)
    json_path = json_file or JSON_LOG_NAME
    if not os.path.isabs(json_path):
        json_path = os.path.join(log_dir, json_path)

    root.addHandler(
        _rotating(os.path.join(log_dir, HUMAN_LOG_NAME), HumanFormatter(use_colors=False), max_bytes, backup_count)
    )
    root.addHandler(_rotating(json_path, JSONFormatter(), max_bytes, backup_count))


def get_logger(name: str) -> StructuredLogger:
    """Logger for `name`; a StructuredLogger once configure_logging() has run."""
    return logging.getLogger(name)  # type: ignore
