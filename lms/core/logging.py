"""Logging configuration for lms-data-service.

Two output shapes share one stdout handler on the root logger:

  _ContainerFormatter: one readable line per record, for local dev.
    Request and store context (request_id, actor_id, collection) is
    appended as key=value tags; WARNING and above also carry
    [filename:lineno] so a rejected enrollment or a malformed storage
    slot can be traced to the guard clause.

  _JsonFormatter: one JSON object per line, for log aggregation.
    The same context becomes top-level keys, so "every malformed
    collection in the last hour" is a field filter rather than a regex.

Set LOG_JSON=true to switch to JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from datetime import UTC, datetime

# Attributes the request middleware, the context filter or the entity
# store may set on a LogRecord.
_CONTEXT_FIELDS = (
    "request_id",
    "actor_id",
    "collection",
    "method",
    "path",
    "status_code",
    "duration_ms",
)

# Subset worth repeating on every human-readable line.
_TAG_FIELDS = ("request_id", "actor_id", "collection")

_NOISY_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx")


def _context(record: logging.LogRecord, fields: Iterable[str]) -> dict[str, object]:
    out: dict[str, object] = {}
    for key in fields:
        value = getattr(record, key, None)
        # "-" is the filter's placeholder outside a request.
        if value is not None and value != "-":
            out[key] = value
    return out


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter for container stdout.

    2026-03-14T09:30:00.123+00:00 WARNING  lms.services.guards  Rejected enroll: ...  request_id=ab12 actor_id=s1  [guards.py:27]
    """

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created).astimezone()
        return stamp.isoformat(timespec="milliseconds")

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{self.formatTime(record)} {record.levelname:<8} {record.name}  "
            f"{record.getMessage()}"
        )
        tags = _context(record, _TAG_FIELDS)
        if tags:
            line += "  " + " ".join(f"{k}={v}" for k, v in tags.items())
        if record.levelno >= logging.WARNING:
            line += f"  [{record.filename}:{record.lineno}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for machine-parseable log output."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context(record, _CONTEXT_FIELDS))
        if record.levelno >= logging.WARNING:
            entry["location"] = f"{record.filename}:{record.lineno}"
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def _resolve_level(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    level_name: str,
    *,
    json_format: bool = False,
    filters: Iterable[logging.Filter] = (),
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level_name: debug/info/warning/error; anything else means info.
        json_format: emit JSON lines instead of readable lines
                     (LOG_JSON in Settings).
        filters: attached to the handler, so they see records
                 propagated from every module logger.
    """
    level = _resolve_level(level_name)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    for f in filters:
        handler.addFilter(f)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Uvicorn and httpx stay at WARNING or quieter, whatever the app level.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
