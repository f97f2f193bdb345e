# trakt-sync test scripts
from __future__ import annotations

import json

import pytest

from trakt_sync.backend.common.errors import ConfigError
from trakt_sync.config.settings import core, paths
from trakt_sync.backend.network_handlers.url_manager import URLManager

ENV_KEYS = (
    "TRAKT_CLIENT_ID",
    "TRAKT_CLIENT_SECRET",
    "TRAKT_EMAIL",
    "TRAKT_PASSWORD",
    "TRAKT_SYNC_MODE",
    "TRAKT_SYNC_LOG_LEVEL",
    "TRAKT_SYNC_HTTP_TIMEOUT",
)


@pytest.fixture()
def user_settings(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    target = tmp_path / "settings.json"
    monkeypatch.setenv(paths.USER_SETTINGS_ENV, str(target))
    monkeypatch.setattr(core, "_SETTINGS_SINGLETON", None)
    return target


def test_defaults_without_any_configuration(user_settings) -> None:
    settings = core.get_settings(reload=True)

    assert settings.sync_mode == "dry-run"
    assert settings.log_level == "INFO"
    assert settings.http_timeout == 30.0
    assert settings.client_id == ""


def test_environment_overrides_user_file(user_settings, monkeypatch) -> None:
    user_settings.write_text(
        json.dumps({"trakt": {"client_id": "from-file", "email": "file@example.com", "sync_mode": "full"}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("TRAKT_CLIENT_ID", "from-env")
    monkeypatch.setenv("TRAKT_SYNC_LOG_LEVEL", "debug")

    settings = core.get_settings(reload=True)

    assert settings.client_id == "from-env"
    assert settings.email == "file@example.com"
    assert settings.sync_mode == "full"
    assert settings.log_level == "DEBUG"


def test_invalid_timeout_falls_back(user_settings, monkeypatch) -> None:
    monkeypatch.setenv("TRAKT_SYNC_HTTP_TIMEOUT", "soon")

    assert core.get_settings(reload=True).http_timeout == 30.0


def test_unreadable_user_file_is_ignored(user_settings) -> None:
    user_settings.write_text("{not json", encoding="utf-8")

    assert core.load_user_settings() == {}


def test_secrets_are_masked(user_settings, monkeypatch) -> None:
    monkeypatch.setenv("TRAKT_PASSWORD", "hunter2")
    monkeypatch.setenv("TRAKT_CLIENT_SECRET", "shh")

    dumped = core.get_settings(reload=True).as_dict()

    assert dumped["password"] == "***"
    assert dumped["client_secret"] == "***"


def test_settings_are_cached(user_settings) -> None:
    first = core.get_settings(reload=True)

    assert core.get_settings() is first


def test_expand_env(monkeypatch) -> None:
    monkeypatch.setenv("TRAKT_SYNC_TEST_HOST", "api.example.test")

    assert paths.expand_env({"urls": ["https://${TRAKT_SYNC_TEST_HOST}/v2"]}) == {
        "urls": ["https://api.example.test/v2"]
    }


# ---------------- url manager ----------------

def test_endpoint_resolution() -> None:
    urlm = URLManager()

    assert urlm.endpoint("trakt", "users", "list_items", username="me", list_id="films") == "/users/me/lists/films/items"
    assert urlm.endpoint("trakt_web", "activate_authorize") == "/activate/authorize"


@pytest.mark.parametrize("keys", [("sync", "nope"), ("users",), ("missing", "deeper")])
def test_unknown_endpoint_raises(keys) -> None:
    with pytest.raises(ConfigError):
        URLManager().endpoint("trakt", *keys)


def test_build_joins_base_url_and_headers() -> None:
    url, headers = URLManager().build("trakt", "/sync/history", {"limit": 1000})

    assert url == "https://api.trakt.tv/sync/history?limit=1000"
    assert headers["trakt-api-version"] == "2"
    assert headers["Content-Type"] == "application/json"


def test_service_overrides_and_attempts() -> None:
    urlm = URLManager({"trakt": {"rate_limits": {"max_attempts": 2}}})

    assert urlm.max_attempts("trakt") == 2
    assert URLManager().max_attempts("trakt") == 5
    with pytest.raises(ConfigError):
        urlm.build("letterboxd", "/")


def test_user_settings_path_follows_override(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(paths.USER_SETTINGS_ENV, str(tmp_path / "custom.json"))
    assert paths.get_user_settings_path() == tmp_path / "custom.json"

    monkeypatch.delenv(paths.USER_SETTINGS_ENV)
    assert paths.get_user_settings_path().name == "settings.json"


def test_service_without_base_url_is_rejected() -> None:
    with pytest.raises(ConfigError):
        URLManager({"trakt_web": {"base_url": ""}})
