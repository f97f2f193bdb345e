from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
import json
import threading
import time

import requests
from requests.adapters import HTTPAdapter
from requests.cookies import RequestsCookieJar

from trakt_sync.backend.common.errors import NetworkError, SessionError
from trakt_sync.backend.common.logging import get_logger
from trakt_sync.backend.network_handlers.url_manager import URLManager

log = get_logger(__name__)

STATUS_ENHANCE_YOUR_CALM = 420  # https://github.com/trakt/api-help/discussions/350
SUCCESS_STATUSES = frozenset({200, 201, 204, 404})
ACCOUNT_LIMIT_INFO_URL = "https://github.com/trakt/api-help/discussions/350"


# ---------------- Exceptions ----------------

class NetError(NetworkError): ...


class TransportError(NetError):
    def __init__(self, method: str, url: str, cause: Exception) -> None:
        super().__init__(f"error sending http request {method} {url}: {cause}")
        self.method = method
        self.url = url


class RateLimitHeaderError(NetError):
    def __init__(self, method: str, url: str, value: Optional[str]) -> None:
        super().__init__(
            f"failure parsing the value of header Retry-After ({value!r}) to integer for {method} {url}"
        )
        self.method = method
        self.url = url
        self.value = value


class MaxRetriesExceeded(NetError):
    def __init__(self, method: str, url: str, attempts: int) -> None:
        super().__init__(f"reached max retry attempts ({attempts}) for {method} {url}")
        self.method = method
        self.url = url
        self.attempts = attempts


class ApiError(NetError):
    def __init__(self, method: str, url: str, status_code: int, details: str) -> None:
        super().__init__(
            f"http request {method} {url} returned status code {status_code}: {details}"
        )
        self.method = method
        self.url = url
        self.status_code = status_code
        self.details = details


class AccountLimitExceeded(ApiError):
    def __init__(self, method: str, url: str) -> None:
        super().__init__(
            method,
            url,
            STATUS_ENHANCE_YOUR_CALM,
            f"trakt account limit exceeded, more info here: {ACCOUNT_LIMIT_INFO_URL}",
        )


class ListNotFoundError(NetError):
    """A single list lookup answered 404. Not an :class:`ApiError` on purpose."""

    status_code = 404

    def __init__(self, list_id: str, method: str, url: str) -> None:
        super().__init__(f"list with id {list_id} could not be found ({method} {url})")
        self.list_id = list_id
        self.method = method
        self.url = url


def _parse_retry_after(value: Optional[str], method: str, url: str) -> int:
    try:
        seconds = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise RateLimitHeaderError(method, url, value) from exc
    if seconds < 0:
        raise RateLimitHeaderError(method, url, value)

    return seconds


# ---------------- Main Session ----------------

class HttpSession:
    """
    Central HTTP client and session state:
      - URL building + per-service headers via URLManager
      - cookie jar shared by every browser-emulating request
      - write-once bearer token acquired during hydration
      - 429 Retry-After replay of the identical prepared request
      - typed error mapping (420 account limit, generic API errors)
    """

    def __init__(self, timeout: float = 30.0, *, urlm: Optional[URLManager] = None):
        self.urlm = urlm or URLManager()
        self.timeout = timeout

        self._session = requests.Session()
        self._session.mount("http://", HTTPAdapter(pool_connections=8, pool_maxsize=32))
        self._session.mount("https://", HTTPAdapter(pool_connections=8, pool_maxsize=32))

        self._bearer_token: Optional[str] = None
        self._token_lock = threading.Lock()

    # -------- session state --------

    @property
    def cookies(self) -> RequestsCookieJar:
        return self._session.cookies

    @property
    def bearer_token(self) -> Optional[str]:
        return self._bearer_token

    def set_bearer_token(self, token: str) -> None:
        if not token:
            raise SessionError("refusing to store an empty bearer token")
        with self._token_lock:
            if self._bearer_token is not None and self._bearer_token != token:
                raise SessionError("bearer token is already set for this session")
            self._bearer_token = token

    def close(self) -> None:
        self._session.close()

    # -------- public API --------

    def get(
        self,
        service: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:

        return self.request("GET", service, path, params=params, headers=headers)

    def post(
        self,
        service: str,
        path: str,
        *,
        json_body: Any = None,
        form: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:

        return self.request(
            "POST",
            service,
            path,
            params=params,
            json_body=json_body,
            form=form,
            headers=headers,
        )

    def delete(
        self,
        service: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:

        return self.request("DELETE", service, path, headers=headers)

    def request(
        self,
        method: str,
        service: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
        form: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        """
        Send one logical request and classify the response.

        200/201/204/404 are returned to the caller; 420 and any other status
        raise; 429 sleeps for ``Retry-After`` seconds and re-sends the very
        same prepared request until the attempt budget is spent.
        """

        url, base_headers = self.urlm.build(service, path, params)
        hdrs: Dict[str, str] = dict(base_headers or {})
        if headers:
            hdrs.update(headers)

        data: Any = None
        if form is not None:
            data = dict(form)
            hdrs["Content-Type"] = "application/x-www-form-urlencoded"
        elif json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            hdrs.setdefault("Content-Type", "application/json")

        # Body is materialized as bytes here so the prepared request can be replayed.
        prepared = self._session.prepare_request(
            requests.Request(method=method, url=url, headers=hdrs, data=data)
        )

        max_attempts = self.urlm.max_attempts(service)
        for _ in range(max_attempts):
            try:
                resp = self._session.send(prepared, timeout=self.timeout, allow_redirects=True)
            except requests.exceptions.RequestException as e:
                raise TransportError(method, url, e) from e

            status = resp.status_code

            if status in SUCCESS_STATUSES:
                return resp

            resp.close()

            if status == STATUS_ENHANCE_YOUR_CALM:
                raise AccountLimitExceeded(method, url)

            if status == 429:
                delay = _parse_retry_after(resp.headers.get("Retry-After"), method, url)
                log.warning(
                    "trakt rate limit reached, waiting for %ss then retrying http request %s %s",
                    delay,
                    method,
                    url,
                    extra={"retry_after": delay},
                )
                time.sleep(delay)
                continue

            raise ApiError(method, url, status, f"unexpected status code {status}")

        raise MaxRetriesExceeded(method, url, max_attempts)
