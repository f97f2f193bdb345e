"""Fan-out/fan-in retrieval of several Trakt lists."""

from __future__ import annotations

from concurrent.futures import Future, as_completed
from typing import Callable, Dict, Iterable, List, Optional, Union

from trakt_sync.backend.common.logging import get_logger
from trakt_sync.backend.common.tasks import TaskRunner, TaskSpec
from trakt_sync.backend.network_handlers.session import ListNotFoundError
from trakt_sync.backend.sync_handlers.models import ListIds, TraktList

log = get_logger(__name__)

ListGetter = Callable[[str], TraktList]
ListIdentifier = Union[str, ListIds]


def _as_ids(identifier: ListIdentifier) -> ListIds:
    if isinstance(identifier, ListIds):
        return identifier
    return ListIds(slug=str(identifier))


def fetch_lists(get_list: ListGetter, identifiers: Iterable[ListIdentifier]) -> List[TraktList]:
    """Fetch every list concurrently, one worker per identifier.

    Lists answering 404 were deleted upstream after enumeration and are
    dropped. Any other failure wins: siblings that have not started are
    cancelled, running ones are joined, then the first error is raised.
    Result order is completion order.
    """

    ids = [_as_ids(identifier) for identifier in identifiers]
    if not ids:
        return []

    lists: List[TraktList] = []
    first_error: Optional[Exception] = None

    with TaskRunner(max_workers=len(ids), context="lists") as runner:
        futures: Dict[Future, ListIds] = {
            runner.submit(TaskSpec(fn=get_list, args=(list_ids.slug,), name=f"list:{list_ids.slug}")): list_ids
            for list_ids in ids
        }
        for future in as_completed(futures):
            list_ids = futures[future]
            try:
                trakt_list = future.result()
            except ListNotFoundError as exc:
                log.debug(
                    "silencing not found error while fetching trakt lists: %s",
                    exc,
                    extra={"list_id": exc.list_id},
                )
                continue
            except Exception as exc:  # noqa: BLE001 - re-raised once the runner is joined
                first_error = exc
                runner.cancel_pending()
                break
            lists.append(trakt_list.model_copy(update={"ids": list_ids}))

    if first_error is not None:
        log.error("unexpected error while fetching trakt lists: %s", first_error)
        raise first_error

    return lists
