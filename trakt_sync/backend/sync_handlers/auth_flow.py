"""Browser-emulating device authorization for Trakt.

Trakt has no password grant. A bearer token is only issued for a device code
that a signed-in browser session has approved, so hydration replays that
browser session over plain HTTP: sign in, open the activation page, submit
the user code, confirm the app, then exchange the device code.

Each step is a plain function ``(session, credentials, state) -> state``.
Pages regenerate their CSRF token on every render, so a step only ever
consumes the token scraped by the step right before it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Sequence

from trakt_sync.backend.common.errors import HydrationError, ScrapeError, SessionError, TraktSyncError
from trakt_sync.backend.common.logging import get_logger
from trakt_sync.backend.network_handlers.scraping import CLIENT_NAME, scrape_attribute
from trakt_sync.backend.network_handlers.session import HttpSession
from trakt_sync.backend.sync_handlers.models import AuthCodes, AuthTokens, decode_as

log = get_logger(__name__)

API_SERVICE = "trakt"
WEB_SERVICE = "trakt_web"

FORM_AUTHENTICITY_TOKEN = "authenticity_token"
FORM_CODE = "code"
FORM_COMMIT = "commit"
FORM_USER_LOGIN = "user[login]"
FORM_USER_PASSWORD = "user[password]"
FORM_USER_REMEMBER = "user[remember_me]"

HEADER_API_KEY = "trakt-api-key"
HEADER_AUTHORIZATION = "Authorization"

SELECTOR_SIGNIN_TOKEN = "#new_user > input[name=authenticity_token]"
SELECTOR_ACTIVATE_TOKEN = "#auth-form-wrapper > form.form-signin > input[name=authenticity_token]"
SELECTOR_AUTHORIZE_TOKEN = (
    "#auth-form-wrapper > div.form-signin.less-top > div > form:nth-child(1)"
    " > input[name=authenticity_token]:nth-child(1)"
)
SELECTOR_USER_AVATAR = "#desktop-user-avatar"


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(client_id={self.client_id!r}, email={self.email!r})"


@dataclass(frozen=True)
class HydrationState:
    auth_codes: Optional[AuthCodes] = None
    authenticity_token: Optional[str] = None
    username: Optional[str] = None
    access_token: Optional[str] = None

    def require_codes(self) -> AuthCodes:
        if self.auth_codes is None:
            raise SessionError("device codes have not been requested yet")
        return self.auth_codes

    def require_token(self) -> str:
        if not self.authenticity_token:
            raise SessionError("no authenticity token was scraped by the previous step")
        return self.authenticity_token


StepFn = Callable[[HttpSession, Credentials, HydrationState], HydrationState]


@dataclass(frozen=True)
class AuthStep:
    name: str
    description: str
    run: StepFn


def api_headers(client_id: str, session: Optional[HttpSession] = None) -> Dict[str, str]:
    """Headers every JSON API call carries on top of the service defaults."""

    headers = {HEADER_API_KEY: client_id}
    token = session.bearer_token if session is not None else None
    if token:
        headers[HEADER_AUTHORIZATION] = f"Bearer {token}"
    return headers


# ---------------- steps ----------------

def request_device_codes(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    response = session.post(
        API_SERVICE,
        session.urlm.endpoint(API_SERVICE, "oauth", "device_code"),
        json_body={"client_id": creds.client_id},
        headers=api_headers(creds.client_id, session),
    )
    codes = decode_as(AuthCodes, response, "trakt auth codes response")
    return replace(state, auth_codes=codes)


def browse_sign_in(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    response = session.get(WEB_SERVICE, session.urlm.endpoint(WEB_SERVICE, "signin"))
    token = scrape_attribute(response.text, SELECTOR_SIGNIN_TOKEN, "value", step="browse_sign_in")
    return replace(state, authenticity_token=token)


def submit_sign_in(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    form = {
        FORM_AUTHENTICITY_TOKEN: state.require_token(),
        FORM_USER_LOGIN: creds.email,
        FORM_USER_PASSWORD: creds.password,
        FORM_USER_REMEMBER: "1",
    }
    response = session.post(WEB_SERVICE, session.urlm.endpoint(WEB_SERVICE, "signin"), form=form)
    # only the cookies matter; the session jar already holds them
    response.close()
    return replace(state, authenticity_token=None)


def browse_activate(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    response = session.get(WEB_SERVICE, session.urlm.endpoint(WEB_SERVICE, "activate"))
    token = scrape_attribute(response.text, SELECTOR_ACTIVATE_TOKEN, "value", step="browse_activate")
    return replace(state, authenticity_token=token)


def submit_activate(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    form = {
        FORM_AUTHENTICITY_TOKEN: state.require_token(),
        FORM_CODE: state.require_codes().user_code,
        FORM_COMMIT: "Continue",
    }
    response = session.post(WEB_SERVICE, session.urlm.endpoint(WEB_SERVICE, "activate"), form=form)
    token = scrape_attribute(response.text, SELECTOR_AUTHORIZE_TOKEN, "value", step="submit_activate")
    return replace(state, authenticity_token=token)


def submit_authorize(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    form = {
        FORM_AUTHENTICITY_TOKEN: state.require_token(),
        FORM_COMMIT: "Yes",
    }
    response = session.post(WEB_SERVICE, session.urlm.endpoint(WEB_SERVICE, "activate_authorize"), form=form)
    href = scrape_attribute(response.text, SELECTOR_USER_AVATAR, "href", step="submit_authorize")
    return replace(state, authenticity_token=None, username=parse_username(href))


def exchange_token(session: HttpSession, creds: Credentials, state: HydrationState) -> HydrationState:
    payload = {
        "code": state.require_codes().device_code,
        "client_id": creds.client_id,
        "client_secret": creds.client_secret,
    }
    response = session.post(
        API_SERVICE,
        session.urlm.endpoint(API_SERVICE, "oauth", "device_token"),
        json_body=payload,
    )
    tokens = decode_as(AuthTokens, response, "trakt auth tokens response")
    session.set_bearer_token(tokens.access_token)
    return replace(state, access_token=tokens.access_token)


def parse_username(href: str) -> str:
    """Extract the handle from an avatar link shaped ``/users/<handle>``."""

    pieces = href.split("/")
    if len(pieces) != 3 or not pieces[2]:
        raise ScrapeError(
            CLIENT_NAME,
            SELECTOR_USER_AVATAR,
            "href",
            step="submit_authorize",
            details=f"expected /users/<handle>, got {href!r}",
        )
    return pieces[2]


STEPS: Sequence[AuthStep] = (
    AuthStep("request_device_codes", "generating auth codes", request_device_codes),
    AuthStep("browse_sign_in", "simulating browse to the trakt sign in page", browse_sign_in),
    AuthStep("submit_sign_in", "simulating trakt sign in form submission", submit_sign_in),
    AuthStep("browse_activate", "simulating browse to the trakt device activation page", browse_activate),
    AuthStep("submit_activate", "simulating trakt device activation form submission", submit_activate),
    AuthStep("submit_authorize", "simulating trakt api app allowlisting", submit_authorize),
    AuthStep("exchange_token", "exchanging trakt device code for access token", exchange_token),
)


def hydrate(
    session: HttpSession,
    creds: Credentials,
    steps: Sequence[AuthStep] = STEPS,
) -> HydrationState:
    """Run every auth step in order; the first failure aborts hydration."""

    state = HydrationState()
    for step in steps:
        log.debug("trakt auth step %s", step.name, extra={"step": step.name})
        try:
            state = step.run(session, creds, state)
        except TraktSyncError as exc:
            raise HydrationError(step.name, step.description, exc) from exc

    log.info("trakt session hydrated for user %s", state.username, extra={"username": state.username})
    return state
