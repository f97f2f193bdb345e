"""Single-node attribute scraping for browser-emulated pages."""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

from trakt_sync.backend.common.errors import ScrapeError

CLIENT_NAME = "trakt"
_PARSER = "html.parser"


def scrape_attribute(
    html: str,
    selector: str,
    attribute: str,
    *,
    client: str = CLIENT_NAME,
    step: Optional[str] = None,
) -> str:
    """Return ``attribute`` of the first node matching the CSS ``selector``.

    Raises :class:`ScrapeError` naming the client, step and selector when the
    node or the attribute is missing, since the markup is owned by a third
    party and drifts without notice.
    """

    soup = BeautifulSoup(html or "", _PARSER)
    node = soup.select_one(selector)
    if node is None:
        raise ScrapeError(client, selector, attribute, step=step, details="no matching node")

    value = node.get(attribute)
    if isinstance(value, list):
        value = " ".join(value)
    if not value:
        raise ScrapeError(client, selector, attribute, step=step, details="attribute missing or empty")

    return value
