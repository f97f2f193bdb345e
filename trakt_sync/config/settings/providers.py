"""Static per-service settings: base URLs, default headers, retry budget, endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from trakt_sync.backend.common.errors import ConfigError

from .paths import expand_env, get_service_settings_path, read_json


def load_service_settings() -> Dict[str, Dict[str, Any]]:
    data = expand_env(read_json(get_service_settings_path()))
    services = data.get("providers") if isinstance(data, dict) else None
    if not isinstance(services, dict):
        raise ConfigError(f"{get_service_settings_path()} has no 'providers' table")

    return {name: dict(cfg or {}) for name, cfg in services.items()}


SERVICE_SETTINGS: Dict[str, Dict[str, Any]] = load_service_settings()


def service_names() -> List[str]:
    return sorted(SERVICE_SETTINGS)


def get_service_config(service: str) -> Dict[str, Any]:
    try:
        return dict(SERVICE_SETTINGS[service])
    except KeyError:
        raise ConfigError(f"unknown service {service!r}, known: {', '.join(service_names())}") from None


__all__ = [
    "SERVICE_SETTINGS",
    "get_service_config",
    "load_service_settings",
    "service_names",
]
