"""Public entry points of the sync client, imported on first access."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any, List

_EXPORTS = {
    "HttpSession": "network_handlers.session",
    "Credentials": "sync_handlers.auth_flow",
    "Item": "sync_handlers.models",
    "ItemSpec": "sync_handlers.models",
    "ItemType": "sync_handlers.models",
    "SyncMode": "sync_handlers.models",
    "SyncResult": "sync_handlers.models",
    "TraktList": "sync_handlers.models",
    "TraktManager": "sync_handlers.trakt_manager",
}

__all__ = sorted(_EXPORTS)

if TYPE_CHECKING:  # pragma: no cover
    from .network_handlers.session import HttpSession
    from .sync_handlers.auth_flow import Credentials
    from .sync_handlers.models import Item, ItemSpec, ItemType, SyncMode, SyncResult, TraktList
    from .sync_handlers.trakt_manager import TraktManager


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

    value = getattr(importlib.import_module(f"{__name__}.{_EXPORTS[name]}"), name)
    globals()[name] = value
    return value


def __dir__() -> List[str]:
    return sorted(set(globals()) | set(__all__))
