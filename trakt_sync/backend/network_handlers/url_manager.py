from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode, urljoin

from trakt_sync.backend.common.errors import ConfigError
from trakt_sync.config.settings import get_service_config, service_names

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class ServiceView:
    """Read-only view of one service entry from the service settings."""

    name: str
    base_url: str
    default_headers: Dict[str, str] = field(default_factory=dict)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    endpoints: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, name: str, cfg: Mapping[str, Any]) -> "ServiceView":
        base_url = cfg.get("base_url") or ""
        if not base_url:
            raise ConfigError(f"service {name!r} has no base_url")
        limits = cfg.get("rate_limits") or {}
        try:
            attempts = max(1, int(limits.get("max_attempts", DEFAULT_MAX_ATTEMPTS)))
        except (TypeError, ValueError):
            attempts = DEFAULT_MAX_ATTEMPTS

        return cls(
            name=name,
            base_url=base_url if base_url.endswith("/") else f"{base_url}/",
            default_headers={str(k): str(v) for k, v in (cfg.get("default_headers") or {}).items()},
            max_attempts=attempts,
            endpoints=dict(cfg.get("endpoints") or {}),
        )


class URLManager:
    """
    Turns (service, path) pairs into absolute URLs plus the service's default
    headers. Pure configuration, no network I/O.

    - trakt: the JSON API (api.trakt.tv)
    - trakt_web: the browser-facing site (trakt.tv) used for sign-in and activation
    """

    def __init__(self, service_overrides: Optional[Mapping[str, Mapping[str, Any]]] = None):
        overrides = service_overrides or {}
        self._views: Dict[str, ServiceView] = {}
        for name in service_names():
            cfg = get_service_config(name)
            cfg.update(overrides.get(name) or {})
            self._views[name] = ServiceView.from_config(name, cfg)

    def build(self, service: str, path: str, params: Optional[Mapping[str, Any]] = None
              ) -> Tuple[str, Dict[str, str]]:
        """Return ``(url, headers)`` for a path relative to the service base URL."""
        view = self.view(service)
        url = urljoin(view.base_url, path.lstrip("/"))
        if params:
            url = f"{url}?{urlencode(dict(params), doseq=True)}"

        return url, dict(view.default_headers)

    def endpoint(self, service: str, *keys: str, **fmt: Any) -> str:
        """
        Resolve a nested endpoint template and fill its placeholders, e.g.
        ``endpoint("trakt", "users", "list_items", username="me", list_id="films")``.
        """
        node: Any = self.view(service).endpoints
        dotted = ".".join(keys)
        for key in keys:
            if not isinstance(node, Mapping) or key not in node:
                raise ConfigError(f"unknown endpoint {dotted!r} for service {service!r}")
            node = node[key]
        if not isinstance(node, str):
            raise ConfigError(f"endpoint {dotted!r} for service {service!r} is a group, not a path")

        return node.format(**fmt) if fmt else node

    def max_attempts(self, service: str) -> int:
        return self.view(service).max_attempts

    def view(self, service: str) -> ServiceView:
        try:
            return self._views[service]
        except KeyError:
            raise ConfigError(f"unknown service {service!r}, known: {', '.join(sorted(self._views))}") from None
