from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from shared_database.context import get_log_context


_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}
_KNOWN_FIELDS = frozenset(
    {
        "entity",
        "operation",
        "entity_id",
        "conversation_id",
        "direction",
        "status",
        "stage",
        "outcome",
        "duration_ms",
        "error",
        "user_id",
    }
)
_MAX_ERROR_LENGTH = 500
_HANDLER_MARKER = "_shared_database_handler"


def _stamp_context(record: logging.LogRecord) -> logging.LogRecord:
    for key, value in get_log_context().items():
        if not getattr(record, key, None):
            setattr(record, key, value)
    return record


class BrandContextFilter(logging.Filter):
    """Copies the active correlation id and brand onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        _stamp_context(record)
        return True


_DEFAULT_RECORD_FACTORY = logging.getLogRecordFactory()


def _record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    return _stamp_context(_DEFAULT_RECORD_FACTORY(*args, **kwargs))


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; whitelisted ``extra`` keys land under ``fields``."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            key: value
            for key, value in vars(record).items()
            if key in _KNOWN_FIELDS and key not in _RESERVED
        }
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:_MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "brand_id": getattr(record, "brand_id", None),
            "correlation_id": getattr(record, "correlation_id", None),
            "fields": fields,
        }
        return json.dumps(payload, default=str)


def configure_logging(level_name: str | None = None, stream: TextIO | None = None) -> None:
    """Install the JSON stdout handler on the root logger once per process."""

    root_logger = logging.getLogger()
    if any(getattr(handler, _HANDLER_MARKER, False) for handler in root_logger.handlers):
        return

    if level_name is None:
        from shared_database.core.config import get_settings

        level_name = get_settings().log_level
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(BrandContextFilter())
    setattr(handler, _HANDLER_MARKER, True)

    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    logging.setLogRecordFactory(_record_factory)
