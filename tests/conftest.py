# trakt-sync test scripts
from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List

import pytest
import responses

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from trakt_sync.backend.network_handlers import session as session_module  # noqa: E402
from trakt_sync.backend.sync_handlers.auth_flow import Credentials  # noqa: E402

FIXTURES = Path(__file__).resolve().parent / "fixtures"

API = "https://api.trakt.tv"
WEB = "https://trakt.tv"
USERNAME = "cecobask"
ACCESS_TOKEN = "token-123"
CLIENT_ID = "client-id"
HYDRATION_CALLS = 7


def fixture_html(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def register_hydration(rsps: responses.RequestsMock, *, access_token: str = ACCESS_TOKEN) -> None:
    """Register the seven browser/API responses a successful hydration consumes."""

    rsps.add(
        responses.POST,
        f"{API}/oauth/device/code",
        json={
            "device_code": "device-code",
            "user_code": "USERCODE",
            "verification_url": "https://trakt.tv/activate",
            "expires_in": 600,
            "interval": 5,
        },
        status=200,
    )
    rsps.add(responses.GET, f"{WEB}/auth/signin", body=fixture_html("signin.html"), content_type="text/html")
    rsps.add(
        responses.POST,
        f"{WEB}/auth/signin",
        body="",
        status=200,
        headers={"Set-Cookie": "_traktsession=session-cookie; path=/"},
    )
    rsps.add(responses.GET, f"{WEB}/activate", body=fixture_html("activate.html"), content_type="text/html")
    rsps.add(
        responses.POST,
        f"{WEB}/activate",
        body=fixture_html("activate_submitted.html"),
        content_type="text/html",
    )
    rsps.add(
        responses.POST,
        f"{WEB}/activate/authorize",
        body=fixture_html("authorized.html"),
        content_type="text/html",
    )
    rsps.add(
        responses.POST,
        f"{API}/oauth/device/token",
        json={
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": 7776000,
            "refresh_token": "refresh-123",
            "scope": "public",
            "created_at": 1700000000,
        },
        status=200,
    )


@pytest.fixture()
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture()
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    recorded: List[float] = []
    monkeypatch.setattr(session_module.time, "sleep", recorded.append)
    return recorded


@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(
        client_id=CLIENT_ID,
        client_secret="client-secret",
        email="user@example.com",
        password="hunter2",
    )


@pytest.fixture()
def make_manager(rsps: responses.RequestsMock, credentials: Credentials) -> Callable:
    from trakt_sync.backend.sync_handlers.trakt_manager import TraktManager

    def _make(sync_mode: str = "full") -> TraktManager:
        register_hydration(rsps)
        manager = TraktManager(credentials, sync_mode=sync_mode)
        assert len(rsps.calls) % HYDRATION_CALLS == 0
        return manager

    return _make
