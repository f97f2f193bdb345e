"""Authenticated Trakt sync operations."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from trakt_sync.backend.common.errors import ConfigError, DecodeError
from trakt_sync.backend.common.logging import get_logger
from trakt_sync.backend.network_handlers.session import HttpSession, ListNotFoundError
from trakt_sync.backend.sync_handlers.auth_flow import (
    API_SERVICE,
    Credentials,
    HydrationState,
    api_headers,
    hydrate,
)
from trakt_sync.backend.sync_handlers.list_fetcher import ListIdentifier, fetch_lists
from trakt_sync.backend.sync_handlers.models import (
    WATCHLIST_SLUG,
    Item,
    ItemType,
    ListCreateBody,
    ListIds,
    SyncBody,
    SyncMode,
    SyncResult,
    TraktList,
    decode_as,
    decode_json,
    is_supported_entry,
)
from trakt_sync.config import settings

_HISTORY_LIMIT = 1000


class TraktManager:
    """Trakt client authenticated as a human user.

    Construction validates the sync mode and then hydrates the session by
    replaying the browser sign-in and device activation (see ``auth_flow``).
    Afterwards every operation reuses the same cookie jar and bearer token.

    Mutating calls are gated by the sync mode: ``dry-run`` simulates every
    add and remove, ``add-only`` simulates removes, ``full`` sends everything.
    A simulated call logs what it would have sent and returns ``None``.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        *,
        sync_mode: Union[str, SyncMode, None] = None,
        session: Optional[HttpSession] = None,
    ) -> None:
        self._log = get_logger(__name__)
        cfg = settings.get_settings() if credentials is None or sync_mode is None else None

        self._mode = SyncMode.parse(sync_mode if sync_mode is not None else cfg.sync_mode)

        if credentials is None:
            credentials = Credentials(
                client_id=cfg.client_id,
                client_secret=cfg.client_secret,
                email=cfg.email,
                password=cfg.password,
            )
        missing = [name for name in ("client_id", "client_secret", "email", "password") if not getattr(credentials, name)]
        if missing:
            raise ConfigError(f"missing trakt configuration: {', '.join(missing)}")
        self._credentials = credentials

        self._session = session or HttpSession(timeout=cfg.http_timeout if cfg else 30.0)
        self._state: HydrationState = hydrate(self._session, self._credentials)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    @property
    def sync_mode(self) -> SyncMode:
        return self._mode

    @property
    def username(self) -> str:
        return self._state.username or ""

    @property
    def session(self) -> HttpSession:
        return self._session

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "TraktManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Watchlist
    # ------------------------------------------------------------------
    def get_watchlist(self) -> TraktList:
        response = self._session.get(API_SERVICE, self._endpoint("sync", "watchlist"), headers=self._auth_headers())
        items = self._decode_items(response, "trakt watchlist")

        return TraktList(ids=ListIds(slug=WATCHLIST_SLUG), is_watchlist=True, items=items)

    def add_watchlist_items(self, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(
            self._endpoint("sync", "watchlist"),
            items,
            removing=False,
            kind="list",
            target=WATCHLIST_SLUG,
        )

    def remove_watchlist_items(self, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(
            self._endpoint("sync", "watchlist_remove"),
            items,
            removing=True,
            kind="list",
            target=WATCHLIST_SLUG,
        )

    # ------------------------------------------------------------------
    # User lists
    # ------------------------------------------------------------------
    def get_list(self, list_id: str) -> TraktList:
        """Fetch one list with its items; raises ListNotFoundError on 404."""

        if not list_id:
            raise ValueError("A list identifier or slug must be provided")

        response = self._session.get(
            API_SERVICE,
            self._endpoint("users", "list_items", username=self.username, list_id=list_id),
            headers=self._auth_headers(),
        )
        if response.status_code == 404:
            response.close()
            raise ListNotFoundError(list_id, "GET", response.request.url)

        items = self._decode_items(response, f"trakt list {list_id}")

        return TraktList(ids=ListIds(slug=list_id), items=items)

    def get_lists(self, identifiers: Iterable[ListIdentifier]) -> List[TraktList]:
        return fetch_lists(self.get_list, identifiers)

    def get_lists_metadata(self) -> List[TraktList]:
        response = self._session.get(
            API_SERVICE,
            self._endpoint("users", "lists", username=self.username),
            headers=self._auth_headers(),
        )

        return decode_as(List[TraktList], response, "trakt lists")

    def add_list_items(self, list_id: str, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(
            self._endpoint("users", "list_items", username=self.username, list_id=list_id),
            items,
            removing=False,
            kind="list",
            target=list_id,
        )

    def remove_list_items(self, list_id: str, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(
            self._endpoint("users", "list_items_remove", username=self.username, list_id=list_id),
            items,
            removing=True,
            kind="list",
            target=list_id,
        )

    def create_list(self, list_id: str, name: str) -> bool:
        """Create a list from the fixed template. Returns False when simulated."""

        if not self._mode.allows_add:
            self._log.info(
                "sync mode %s would have created trakt list %s",
                self._mode.value,
                list_id,
                extra={"list_id": list_id},
            )
            return False

        response = self._session.post(
            API_SERVICE,
            self._endpoint("users", "lists", username=self.username),
            json_body=ListCreateBody.template(name).model_dump(),
            headers=self._auth_headers(),
        )
        response.close()
        self._log.info("created trakt list %s", list_id, extra={"list_id": list_id})

        return True

    def delete_list(self, list_id: str) -> bool:
        """Delete a list. Returns False when simulated."""

        if not self._mode.allows_remove:
            self._log.info(
                "sync mode %s would have deleted trakt list %s",
                self._mode.value,
                list_id,
                extra={"list_id": list_id},
            )
            return False

        response = self._session.delete(
            API_SERVICE,
            self._endpoint("users", "list", username=self.username, list_id=list_id),
            headers=self._auth_headers(),
        )
        response.close()
        self._log.info("removed trakt list %s", list_id, extra={"list_id": list_id})

        return True

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------
    def get_ratings(self) -> List[Item]:
        response = self._session.get(API_SERVICE, self._endpoint("sync", "ratings"), headers=self._auth_headers())

        return self._decode_items(response, "trakt ratings")

    def add_ratings(self, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(self._endpoint("sync", "ratings"), items, removing=False, kind="rating", target="ratings")

    def remove_ratings(self, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(
            self._endpoint("sync", "ratings_remove"), items, removing=True, kind="rating", target="ratings"
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def get_history(self, item_type: Union[str, ItemType], item_id: str) -> List[Item]:
        resolved = ItemType(item_type)
        response = self._session.get(
            API_SERVICE,
            self._endpoint("sync", "history_by_item", item_type=resolved.value, item_id=item_id),
            params={"limit": _HISTORY_LIMIT},
            headers=self._auth_headers(),
        )

        return self._decode_items(response, "trakt history")

    def add_history(self, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(self._endpoint("sync", "history"), items, removing=False, kind="history", target="history")

    def remove_history(self, items: Iterable[Item]) -> Optional[SyncResult]:
        return self._sync_items(
            self._endpoint("sync", "history_remove"), items, removing=True, kind="history", target="history"
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _sync_items(
        self,
        path: str,
        items: Iterable[Item],
        *,
        removing: bool,
        kind: str,
        target: str,
    ) -> Optional[SyncResult]:
        items = list(items)
        allowed = self._mode.allows_remove if removing else self._mode.allows_add
        if not allowed:
            self._log.info(
                "sync mode %s would have %s %d trakt %s item(s)",
                self._mode.value,
                "deleted" if removing else "added",
                len(items),
                kind,
                extra={"target": target, "items": [item.label() for item in items]},
            )
            return None

        response = self._session.post(
            API_SERVICE,
            path,
            json_body=SyncBody.from_items(items).payload(),
            headers=self._auth_headers(),
        )
        result = decode_as(SyncResult, response, f"trakt {target} response")
        self._log.info("synced trakt %s", target, extra={"target": target, "result": result.summary()})

        return result

    def _decode_items(self, response, operation: str) -> List[Item]:
        payload = decode_json(response, operation)
        if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
            raise DecodeError(operation, TypeError(f"expected a JSON array, got {type(payload).__name__}"))

        items: List[Item] = []
        for entry in payload:
            if not is_supported_entry(entry):
                entry_type = entry.get("type") if isinstance(entry, Mapping) else type(entry).__name__
                self._log.debug("skipping unsupported trakt entry of type %s in %s", entry_type, operation)
                continue
            try:
                items.append(Item.model_validate(entry))
            except ValidationError as exc:
                raise DecodeError(operation, exc) from exc

        return items

    def _endpoint(self, *keys: str, **fmt: Any) -> str:
        return self._session.urlm.endpoint(API_SERVICE, *keys, **fmt)

    def _auth_headers(self) -> Dict[str, str]:
        return api_headers(self._credentials.client_id, self._session)
