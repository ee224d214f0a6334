"""
Structured JSON Logging.

Every component logs through a :class:`StructuredLogger`, which writes one
JSON object per line to the console and to a size-rotated file.  Handler
settings come from ``AppConfig`` (``LOG_LEVEL``, ``LOG_FILE``,
``LOG_MAX_BYTES``, ``LOG_BACKUP_COUNT``) via :meth:`StructuredLogger.from_config`;
the logger never reads configuration on its own.

Fields passed through ``extra=`` are kept as JSON values.  An ``event``
field is lifted to the top level so sweep failures, partial transactions
and skipped rows can be filtered without parsing messages.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO

from safeqr.config import AppConfig, get_config

DEFAULT_MAX_BYTES: int = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT: int = 3

# Attributes every LogRecord carries; anything else arrived via ``extra``.
_RECORD_FIELDS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


class JSONFormatter(logging.Formatter):
    """Render a record as ``{"timestamp", "level", "logger", "event"?, "message", "context"?, "exception"?}``."""

    def format(self, record: logging.LogRecord) -> str:
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS
        }
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        event = context.pop("event", None)
        if event is not None:
            entry["event"] = event
        entry["message"] = record.getMessage()
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter over a named ``logging.Logger`` configured for JSON output.

    Handlers are attached the first time a name is used; later instances
    with the same name share them.
    """

    def __init__(
        self,
        name: str = "safeqr",
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
    ) -> None:
        super().__init__(logging.getLogger(name), {})
        self.logger.setLevel(level)
        if self.logger.handlers:
            return

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self.logger.addHandler(console)

        if log_file:
            self._attach_file(log_file, max_bytes, backup_count, formatter)

    @classmethod
    def from_config(
        cls,
        name: str,
        config: AppConfig,
        stream: Optional[TextIO] = None,
    ) -> "StructuredLogger":
        """Build a logger from the ``LOG_*`` settings of *config*."""
        return cls(
            name=name,
            level=config.log_level,
            stream=stream,
            log_file=config.LOG_FILE or None,
            max_bytes=config.LOG_MAX_BYTES,
            backup_count=config.LOG_BACKUP_COUNT,
        )

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        # LoggerAdapter would replace the caller's ``extra``; keep it instead.
        return msg, kwargs

    def _attach_file(
        self,
        log_file: str,
        max_bytes: int,
        backup_count: int,
        formatter: logging.Formatter,
    ) -> None:
        path = Path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
            )
        except OSError as exc:
            self.logger.warning(
                "Log file %s unavailable, logging to console only: %s", path, exc,
            )
            return
        handler.setFormatter(formatter)
        self.logger.addHandler(handler)


def get_logger(name: str = "safeqr", config: Optional[AppConfig] = None) -> StructuredLogger:
    """Logger for *name* configured from *config* (the cached settings by default)."""
    return StructuredLogger.from_config(name, config or get_config())
