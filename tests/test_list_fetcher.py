# trakt-sync test scripts
from __future__ import annotations

import threading

import pytest
import responses

from trakt_sync.backend.network_handlers.session import ListNotFoundError, TransportError
from trakt_sync.backend.sync_handlers.list_fetcher import fetch_lists
from trakt_sync.backend.sync_handlers.models import ListIds, TraktList

from conftest import API, USERNAME


def _getter(missing=(), failing=()):
    seen = []
    lock = threading.Lock()

    def get_list(slug: str) -> TraktList:
        with lock:
            seen.append(slug)
        if slug in missing:
            raise ListNotFoundError(slug, "GET", f"{API}/users/{USERNAME}/lists/{slug}/items")
        if slug in failing:
            raise TransportError("GET", f"{API}/users/{USERNAME}/lists/{slug}/items", ConnectionError("reset"))
        return TraktList(ids=ListIds(slug=slug), name=slug.title())

    return get_list, seen


def test_not_found_lists_are_dropped() -> None:
    get_list, seen = _getter(missing={"gone"})

    lists = fetch_lists(get_list, ["films", "gone", "docs"])

    assert sorted(lst.slug for lst in lists) == ["docs", "films"]
    assert sorted(seen) == ["docs", "films", "gone"]


def test_other_errors_are_raised() -> None:
    get_list, _ = _getter(failing={"docs"})

    with pytest.raises(TransportError):
        fetch_lists(get_list, ["films", "docs"])


def test_no_identifiers_means_no_lists() -> None:
    get_list, seen = _getter()

    assert fetch_lists(get_list, []) == []
    assert seen == []


def test_caller_ids_are_kept() -> None:
    get_list, _ = _getter()

    lists = fetch_lists(get_list, [ListIds(trakt=42, slug="films")])

    assert lists[0].ids == ListIds(trakt=42, slug="films")
    assert lists[0].name == "Films"


def test_manager_fetches_lists_concurrently(make_manager, rsps) -> None:
    manager = make_manager("dry-run")
    for slug in ("films", "docs"):
        rsps.add(
            responses.GET,
            f"{API}/users/{USERNAME}/lists/{slug}/items",
            json=[{"type": "movie", "movie": {"ids": {"imdb": f"tt-{slug}"}}}],
        )
    rsps.add(responses.GET, f"{API}/users/{USERNAME}/lists/gone/items", status=404)

    lists = manager.get_lists(["films", "gone", "docs"])

    assert sorted(lst.slug for lst in lists) == ["docs", "films"]
    for lst in lists:
        assert [item.label() for item in lst.items] == [f"movie:tt-{lst.slug}"]
