"""Configuration for trakt-sync.

Attributes resolve lazily so that importing the package does not read the
service settings file until something actually needs it.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any, Dict, List

_EXPORTS: Dict[str, str] = {
    "Settings": "core",
    "get_settings": "core",
    "load_user_settings": "core",
    "expand_env": "paths",
    "get_service_settings_path": "paths",
    "get_user_settings_path": "paths",
    "SERVICE_SETTINGS": "providers",
    "get_service_config": "providers",
    "load_service_settings": "providers",
    "service_names": "providers",
}

_SUBMODULES = frozenset({"core", "paths", "providers"})

__all__ = sorted(set(_EXPORTS) | _SUBMODULES)

if TYPE_CHECKING:  # pragma: no cover
    from . import core, paths, providers
    from .core import Settings, get_settings, load_user_settings
    from .paths import expand_env, get_service_settings_path, get_user_settings_path
    from .providers import SERVICE_SETTINGS, get_service_config, load_service_settings, service_names


def __getattr__(name: str) -> Any:
    if name in _SUBMODULES:
        value = importlib.import_module(f"{__name__}.{name}")
    elif name in _EXPORTS:
        value = getattr(importlib.import_module(f"{__name__}.{_EXPORTS[name]}"), name)
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

    globals()[name] = value
    return value


def __dir__() -> List[str]:
    return sorted(set(globals()) | set(__all__))
