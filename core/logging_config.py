"""
core/logging_config.py
Logging for the supervisor host: human-readable or JSON lines, with a
correlation ID per host operation so one start() can be followed through
config reconciliation, probing, spawn and pairing.
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
import time
import uuid

# ── Correlation ID (per-operation tracing) ────────────────────────────────

# ContextVar rather than thread-local: concurrent asyncio tasks share a thread
_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default="")


def set_correlation_id(cid: str = "") -> str:
    """Set correlation ID for the current task/context."""
    cid = cid or str(uuid.uuid4())[:8]
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str:
    return _correlation_id.get()


class CorrelationFilter(logging.Filter):
    """Expose the correlation ID to plain formatters as %(cid)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.cid = get_correlation_id() or "-"
        return True


# ── Structured JSON Formatter ─────────────────────────────────────────────

class StructuredFormatter(logging.Formatter):
    """
    JSON log formatter for machine-parseable logs.
    Fields: ts, level, logger, msg, cid (correlation ID), extra, exception
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        cid = get_correlation_id()
        if cid:
            entry["cid"] = cid

        if hasattr(record, "extra_data"):
            entry["extra"] = record.extra_data

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


# ── Setup ─────────────────────────────────────────────────────────────────

def setup_logging(level: str = "INFO", structured: bool = False,
                  log_dir: str = "", verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the supervisor host.
    Args:
        level: file log level (DEBUG/INFO/WARNING/ERROR)
        structured: if True, the log file gets one JSON object per line
        log_dir: directory for clapp.log (no file handler if empty)
        verbose: also show INFO on the console (gateway output included)
    """
    root = logging.getLogger()
    file_level = getattr(logging, level.upper(), logging.INFO)
    console_level = logging.INFO if verbose else logging.WARNING
    root.setLevel(min(file_level, console_level))

    for h in root.handlers[:]:
        root.removeHandler(h)

    cid_filter = CorrelationFilter()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(
        "[%(asctime)s][%(name)s] %(message)s", datefmt="%H:%M:%S"))
    console.setLevel(console_level)
    console.addFilter(cid_filter)
    root.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        if structured:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                "[%(asctime)s][%(cid)s][%(name)s][%(levelname)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        file_handler = logging.FileHandler(os.path.join(log_dir, "clapp.log"),
                                           encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(file_level)
        file_handler.addFilter(cid_filter)
        root.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root
