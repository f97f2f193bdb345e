# trakt-sync test scripts
from __future__ import annotations

import json
from urllib.parse import parse_qs

import pytest
import responses

from trakt_sync.backend.common.errors import HydrationError, ScrapeError, SessionError
from trakt_sync.backend.network_handlers.session import HttpSession
from trakt_sync.backend.sync_handlers import auth_flow
from trakt_sync.backend.sync_handlers.auth_flow import HydrationState, hydrate, parse_username
from trakt_sync.backend.sync_handlers.models import AuthCodes

from conftest import ACCESS_TOKEN, API, HYDRATION_CALLS, USERNAME, WEB, fixture_html, register_hydration

CODES = AuthCodes(device_code="device-code", user_code="USERCODE")


def _form(call) -> dict:
    return {key: values[0] for key, values in parse_qs(call.request.body).items()}


def test_hydrate_runs_all_steps_in_order(rsps, credentials) -> None:
    register_hydration(rsps)
    session = HttpSession()

    state = hydrate(session, credentials)

    assert state.access_token == ACCESS_TOKEN
    assert state.username == USERNAME
    assert session.bearer_token == ACCESS_TOKEN
    assert [(c.request.method, c.request.url) for c in rsps.calls] == [
        ("POST", f"{API}/oauth/device/code"),
        ("GET", f"{WEB}/auth/signin"),
        ("POST", f"{WEB}/auth/signin"),
        ("GET", f"{WEB}/activate"),
        ("POST", f"{WEB}/activate"),
        ("POST", f"{WEB}/activate/authorize"),
        ("POST", f"{API}/oauth/device/token"),
    ]


def test_hydrate_chains_fresh_tokens_and_codes(rsps, credentials) -> None:
    register_hydration(rsps)

    hydrate(HttpSession(), credentials)

    calls = rsps.calls
    assert json.loads(calls[0].request.body) == {"client_id": credentials.client_id}
    assert calls[0].request.headers["trakt-api-key"] == credentials.client_id
    assert "Authorization" not in calls[0].request.headers

    assert _form(calls[2]) == {
        "authenticity_token": "signin-token",
        "user[login]": credentials.email,
        "user[password]": credentials.password,
        "user[remember_me]": "1",
    }
    assert _form(calls[4]) == {"authenticity_token": "activate-token", "code": "USERCODE", "commit": "Continue"}
    assert _form(calls[5]) == {"authenticity_token": "authorize-token", "commit": "Yes"}
    assert json.loads(calls[6].request.body) == {
        "code": "device-code",
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
    }


def test_sign_in_cookie_reaches_later_browser_steps(rsps, credentials) -> None:
    register_hydration(rsps)

    hydrate(HttpSession(), credentials)

    for call in list(rsps.calls)[3:6]:
        assert "_traktsession=session-cookie" in call.request.headers.get("Cookie", "")


def test_hydration_replay_reaches_same_end_state(rsps, credentials) -> None:
    register_hydration(rsps)
    first = hydrate(HttpSession(), credentials)
    register_hydration(rsps)
    second = hydrate(HttpSession(), credentials)

    assert len(rsps.calls) == 2 * HYDRATION_CALLS
    assert first.access_token == second.access_token == ACCESS_TOKEN
    assert first.username == second.username


def test_failure_names_the_step_and_stops(rsps, credentials) -> None:
    rsps.add(responses.POST, f"{API}/oauth/device/code", json={"device_code": "d", "user_code": "u"})
    rsps.add(responses.GET, f"{WEB}/auth/signin", body=fixture_html("signin.html"))
    rsps.add(responses.POST, f"{WEB}/auth/signin", body="")
    rsps.add(responses.GET, f"{WEB}/activate", body="<html><body>Maintenance</body></html>")

    session = HttpSession()
    with pytest.raises(HydrationError) as excinfo:
        hydrate(session, credentials)

    err = excinfo.value
    assert err.step == "browse_activate"
    assert isinstance(err.__cause__, ScrapeError)
    assert err.__cause__.selector == auth_flow.SELECTOR_ACTIVATE_TOKEN
    assert "device activation page" in str(err)
    assert len(rsps.calls) == 4
    assert session.bearer_token is None


def test_malformed_device_codes_fail_first_step(rsps, credentials) -> None:
    rsps.add(responses.POST, f"{API}/oauth/device/code", body="not json")

    with pytest.raises(HydrationError) as excinfo:
        hydrate(HttpSession(), credentials)

    assert excinfo.value.step == "request_device_codes"
    assert len(rsps.calls) == 1


def test_browse_sign_in_step(rsps, credentials) -> None:
    rsps.add(responses.GET, f"{WEB}/auth/signin", body=fixture_html("signin.html"))

    state = auth_flow.browse_sign_in(HttpSession(), credentials, HydrationState())

    assert state.authenticity_token == "signin-token"


def test_submit_activate_step_returns_next_token(rsps, credentials) -> None:
    rsps.add(responses.POST, f"{WEB}/activate", body=fixture_html("activate_submitted.html"))
    state = HydrationState(auth_codes=CODES, authenticity_token="activate-token")

    state = auth_flow.submit_activate(HttpSession(), credentials, state)

    assert state.authenticity_token == "authorize-token"


def test_submit_authorize_step_scrapes_username(rsps, credentials) -> None:
    rsps.add(responses.POST, f"{WEB}/activate/authorize", body=fixture_html("authorized.html"))
    state = HydrationState(auth_codes=CODES, authenticity_token="authorize-token")

    state = auth_flow.submit_authorize(HttpSession(), credentials, state)

    assert state.username == USERNAME
    assert state.authenticity_token is None


def test_step_without_previous_token_refuses_to_run(credentials) -> None:
    with pytest.raises(SessionError):
        auth_flow.submit_sign_in(HttpSession(), credentials, HydrationState())


@pytest.mark.parametrize("href", ["/users/cecobask/lists", "cecobask", "/users/", "https://trakt.tv/users/x"])
def test_username_requires_three_path_segments(href) -> None:
    with pytest.raises(ScrapeError) as excinfo:
        parse_username(href)

    assert excinfo.value.step == "submit_authorize"


def test_username_is_last_segment() -> None:
    assert parse_username("/users/cecobask") == "cecobask"
