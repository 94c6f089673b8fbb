"""
Structured JSON logging for the capture pipeline.

Every log line is a single JSON object with guaranteed keys: ``timestamp``,
``level``, ``logger``, ``message``, ``service`` and ``version``, plus the
well-known pipeline fields (``event_id``, ``status_code``, ``method``,
``path``, ``queue_url``...) when passed through ``extra`` or bound with
``capture_context``.  A rotating file handler is attached only when
``HTTP_ERROR_CAPTURE_LOG_DIR`` is set; the host application owns everything
else about log routing.
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from ..constants import (
    APP_VERSION,
    LOG_BACKUP_COUNT,
    LOG_DIR_ENV_VAR,
    LOG_MAX_BYTES,
    SERVICE_NAME_DEFAULT,
)
from .pii import PiiScrubber

# Overridable via LOG_SERVICE_NAME
SERVICE_NAME: str = os.environ.get("LOG_SERVICE_NAME", SERVICE_NAME_DEFAULT)

# Fields a record may carry, via ``extra`` or the capture context.
PIPELINE_FIELDS = (
    "event_id",
    "application_name",
    "status_code",
    "method",
    "path",
    "queue_url",
    "batch_size",
    "failed_count",
    "successful_count",
    "message_id",
    "error_code",
    "queue_depth",
)

_context = threading.local()


# ── Capture context ──────────────────────────────────────────────


@contextmanager
def capture_context(**fields: Any) -> Iterator[None]:
    """Tag every line this thread logs inside the block with *fields*.

    Worker threads wrap one capture task in this so the sink's own log
    lines (batch failures, transport errors) carry the event they concern::

        with capture_context(event_id=event.id, path=event.path):
            publisher.publish(event)
    """
    previous = getattr(_context, "fields", {})
    _context.fields = {**previous, **fields}
    try:
        yield
    finally:
        _context.fields = previous


def current_context() -> Dict[str, Any]:
    return dict(getattr(_context, "fields", {}))


def _pipeline_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Context fields overlaid with the record's own ``extra`` values."""
    fields = current_context()
    for key in PIPELINE_FIELDS:
        val = getattr(record, key, None)
        if val is not None:
            fields[key] = val
    return fields


# ── JSON Formatter ───────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; ``error_event`` payloads are nested as-is."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
            "version": APP_VERSION,
            "thread": record.threadName,
        }
        if record.levelno >= logging.ERROR:
            entry["func"] = record.funcName
            entry["line"] = record.lineno

        entry.update(_pipeline_fields(record))

        event = getattr(record, "error_event", None)
        if event is not None:
            entry["error_event"] = event

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
            entry["error_type"] = record.exc_info[0].__name__

        return json.dumps(entry, default=str, ensure_ascii=False)


# ── Plain Formatter (dev / console) ─────────────────────────────


class _DevFormatter(logging.Formatter):
    """Coloured output prefixed with the short event id.

    An ``error_event`` payload is printed as compact JSON on the next line.
    """

    _COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        fields = _pipeline_fields(record)
        event_id = str(fields.get("event_id") or "")
        prefix = f"[{event_id[:8]}] " if event_id else ""
        status = f" ({fields['status_code']})" if "status_code" in fields else ""
        line = (
            f"{color}{ts} {record.levelname:<8}{self._RESET} "
            f"{record.name} {prefix}{record.getMessage()}{status}"
        )
        event = getattr(record, "error_event", None)
        if event is not None:
            line += "\n  " + json.dumps(event, default=str, ensure_ascii=False)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ── Logger Factory ───────────────────────────────────────────────


def setup_structured_logger(
    name: str,
    log_file: Optional[str] = None,
    *,
    level: Optional[int] = None,
    debug: bool = False,
) -> logging.Logger:
    """Create (or retrieve) a structured logger for a pipeline component.

    Args:
        name: Logger name.
        log_file: Filename under ``$HTTP_ERROR_CAPTURE_LOG_DIR``; ignored
            when that variable is unset.
        level: Explicit level (overrides *debug*).
        debug: If ``True``, sets level to ``DEBUG``.

    Returns:
        A configured ``logging.Logger``.
    """
    if level is None:
        level = logging.DEBUG if debug else logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handlers = [_console_handler()]
    log_dir = os.environ.get(LOG_DIR_ENV_VAR, "")
    if log_dir and log_file:
        handlers.append(_file_handler(Path(log_dir) / log_file))

    scrubber = PiiScrubber()
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(scrubber)
        logger.addHandler(handler)
    return logger


def _console_handler() -> logging.Handler:
    """stderr; JSON when ``LOG_FORMAT=json``, coloured otherwise."""
    handler = logging.StreamHandler(sys.stderr)
    as_json = os.environ.get("LOG_FORMAT", "").lower() == "json"
    handler.setFormatter(_JsonFormatter() if as_json else _DevFormatter())
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setFormatter(_JsonFormatter())
    return handler
