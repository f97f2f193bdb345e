from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# LogRecord attributes that are never copied into the JSON payload.
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# extra= keys whose values must never reach a log line
_SECRET_KEYS = frozenset({"password", "client_secret", "access_token", "refresh_token", "authorization"})
_MASK = "***"


def _redact(key: str, value: Any) -> Any:
    if key.lower() in _SECRET_KEYS and value:
        return _MASK
    if isinstance(value, dict):
        return {k: _redact(str(k), v) for k, v in value.items()}
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg and any ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_FIELDS:
                payload[key] = _redact(key, value)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def init_logging(level: str = "INFO", *, stream: Optional[TextIO] = None) -> None:
    root = logging.getLogger()

    # re-running replaces the handler instead of stacking another one
    for handler in list(root.handlers):
        root.removeHandler(handler)

    resolved = logging.getLevelName(str(level).upper())
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "trakt_sync")
