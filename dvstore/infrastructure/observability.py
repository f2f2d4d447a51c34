"""Structured Logging — JSON, logfmt and console formatters plus one-shot setup.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Every `extra=` field on a record is rendered (topic, endpoint, status_code, ...)
    - setup_logging replaces its own handler on repeat calls, never stacks handlers

Design Decisions:
    - Standard-library formatters, selected by the log_format setting
    - "warn" accepted as an alias for WARNING
"""

import json
import logging
from datetime import datetime, timezone

HANDLER_NAME = "dvstore"

_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "taskName",
}

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def record_fields(record: logging.LogRecord) -> dict:
    """Extra fields attached to a record, in insertion order."""
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED}


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, val in record_fields(record).items():
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def _logfmt_value(value: object) -> str:
    text = str(value)
    if not text or any(c in text for c in ' ="'):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


class LogfmtFormatter(logging.Formatter):
    """Format logs as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        pairs = [
            ("ts", datetime.now(timezone.utc).isoformat()),
            ("level", record.levelname.lower()),
            ("logger", record.name),
            ("msg", record.getMessage()),
        ]
        pairs.extend(
            (k, v) for k, v in record_fields(record).items() if v is not None
        )
        if record.exc_info:
            pairs.append(("exception", self.formatException(record.exc_info)))
        return " ".join(f"{k}={_logfmt_value(v)}" for k, v in pairs)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with extra fields appended."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-5s %(name)s  %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if fields:
            extra = " ".join(f"{k}={v}" for k, v in fields.items() if v is not None)
            # Keep the traceback (if any) after the fields.
            head, sep, tail = line.partition("\n")
            line = f"{head}  {extra}{sep}{tail}"
        return line


_FORMATTERS = {
    "json": JSONFormatter,
    "logfmt": LogfmtFormatter,
    "console": ConsoleFormatter,
}


def parse_level(level: str) -> int:
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"unknown log level: {level}") from None


def setup_logging(level: str = "info", fmt: str = "console"):
    """Configure logging for the application."""
    if fmt not in _FORMATTERS:
        raise ValueError(f"unknown log format: {fmt}")
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(_FORMATTERS[fmt]())

    for existing in list(logging.root.handlers):
        if existing.get_name() == HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(parse_level(level))
