"""Trakt sync client: browser-emulated device auth plus watchlist, list, rating and history sync."""

__version__ = "0.1.0"
