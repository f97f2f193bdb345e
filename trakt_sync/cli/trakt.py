"""Read-only Trakt CLI: hydrate a session and dump collections as JSON."""

from __future__ import annotations

import argparse
from typing import Callable, Optional, Sequence

from trakt_sync.backend.common.errors import TraktSyncError
from trakt_sync.backend.common.logging import get_logger, init_logging
from trakt_sync.backend.sync_handlers.models import ItemType, SyncMode
from trakt_sync.backend.sync_handlers.trakt_manager import TraktManager
from trakt_sync.config.settings import get_settings

from ._utils import exit_with_error, print_json

log = get_logger("trakt_sync.cli")

ManagerFactory = Callable[[], TraktManager]


def _handle_watchlist(manager: TraktManager, _: argparse.Namespace) -> None:
    print_json(manager.get_watchlist())


def _handle_lists(manager: TraktManager, _: argparse.Namespace) -> None:
    print_json(manager.get_lists_metadata())


def _handle_list(manager: TraktManager, args: argparse.Namespace) -> None:
    print_json(manager.get_lists(args.slugs))


def _handle_ratings(manager: TraktManager, _: argparse.Namespace) -> None:
    print_json(manager.get_ratings())


def _handle_history(manager: TraktManager, args: argparse.Namespace) -> None:
    print_json(manager.get_history(args.item_type, args.item_id))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trakt-sync", description="Inspect a Trakt account.")
    parser.add_argument(
        "--sync-mode",
        choices=[mode.value for mode in SyncMode],
        default=None,
        help="Override TRAKT_SYNC_MODE",
    )
    parser.add_argument("--log-level", default=None, help="Override TRAKT_SYNC_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("watchlist", help="Print the watchlist").set_defaults(handler=_handle_watchlist)
    subparsers.add_parser("lists", help="Print metadata of every owned list").set_defaults(handler=_handle_lists)
    subparsers.add_parser("ratings", help="Print all ratings").set_defaults(handler=_handle_ratings)

    single = subparsers.add_parser("list", help="Print one or more lists with their items")
    single.add_argument("slugs", nargs="+", metavar="slug")
    single.set_defaults(handler=_handle_list)

    history = subparsers.add_parser("history", help="Print history for one item")
    history.add_argument("item_type", choices=[t.value for t in ItemType])
    history.add_argument("item_id")
    history.set_defaults(handler=_handle_history)

    return parser


def main(argv: Optional[Sequence[str]] = None, *, factory: Optional[ManagerFactory] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    init_logging(args.log_level or settings.log_level)

    try:
        manager = factory() if factory is not None else TraktManager(sync_mode=args.sync_mode or settings.sync_mode)
        with manager:
            args.handler(manager, args)
    except TraktSyncError as exc:
        log.error("trakt-sync %s failed", args.command, exc_info=True)
        exit_with_error(str(exc))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
