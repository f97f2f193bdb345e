from __future__ import annotations

import json
import os
import threading
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from trakt_sync.backend.common.logging import get_logger

from .paths import get_user_settings_path, read_json

log = get_logger(__name__)

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

DEFAULT_SYNC_MODE = "dry-run"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_HTTP_TIMEOUT = 30.0

_SECRET_FIELDS = ("client_secret", "password")

# field -> (environment variable, key inside the user file's "trakt" table or None for top level)
_SOURCES = {
    "client_id": ("TRAKT_CLIENT_ID", "trakt"),
    "client_secret": ("TRAKT_CLIENT_SECRET", "trakt"),
    "email": ("TRAKT_EMAIL", "trakt"),
    "password": ("TRAKT_PASSWORD", "trakt"),
    "sync_mode": ("TRAKT_SYNC_MODE", "trakt"),
    "log_level": ("TRAKT_SYNC_LOG_LEVEL", None),
    "http_timeout": ("TRAKT_SYNC_HTTP_TIMEOUT", None),
}


@dataclass(frozen=True)
class Settings:
    client_id: str = ""
    client_secret: str = ""
    email: str = ""
    password: str = ""
    sync_mode: str = DEFAULT_SYNC_MODE
    log_level: str = DEFAULT_LOG_LEVEL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    def as_dict(self) -> Dict[str, Any]:
        """Settings with secrets masked, safe to print or log."""
        data = asdict(self)
        for name in _SECRET_FIELDS:
            data[name] = "***" if data[name] else ""
        return data


def load_user_settings() -> Dict[str, Any]:
    path = get_user_settings_path()
    if not path.is_file():
        return {}
    try:
        data = read_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("ignoring unreadable user settings %s: %s", path, exc)
        return {}

    return data if isinstance(data, dict) else {}


def _lookup(field_name: str, user_cfg: Mapping[str, Any]) -> Any:
    env_var, table = _SOURCES[field_name]
    value = os.getenv(env_var)
    if value:
        return value
    scope = user_cfg.get(table) if table else user_cfg
    return scope.get(field_name) if isinstance(scope, Mapping) else None


def _timeout(raw: Any) -> float:
    if raw is None:
        return DEFAULT_HTTP_TIMEOUT
    try:
        return max(1.0, float(raw))
    except (TypeError, ValueError):
        log.warning("invalid http timeout %r, using %ss", raw, DEFAULT_HTTP_TIMEOUT)
        return DEFAULT_HTTP_TIMEOUT


def _build_settings() -> Settings:
    user_cfg = load_user_settings()
    values = {name: _lookup(name, user_cfg) for name in _SOURCES}

    return Settings(
        client_id=str(values["client_id"] or ""),
        client_secret=str(values["client_secret"] or ""),
        email=str(values["email"] or ""),
        password=str(values["password"] or ""),
        sync_mode=str(values["sync_mode"] or DEFAULT_SYNC_MODE),
        log_level=str(values["log_level"] or DEFAULT_LOG_LEVEL).upper(),
        http_timeout=_timeout(values["http_timeout"]),
    )


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = _build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "Settings",
    "get_settings",
    "load_user_settings",
]
