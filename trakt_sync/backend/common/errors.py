from __future__ import annotations

from typing import Optional


class TraktSyncError(Exception):
    """Base for all trakt-sync exceptions."""


class ConfigError(TraktSyncError):
    """Configuration related issues."""


class NetworkError(TraktSyncError):
    """Network/HTTP layer issues."""


class SessionError(TraktSyncError):
    """Session state misuse (e.g. rewriting the bearer token)."""


class ScrapeError(TraktSyncError):
    """Expected markup was absent from a scraped page."""

    def __init__(
        self,
        client: str,
        selector: str,
        attribute: str,
        *,
        step: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        where = f" during {step}" if step else ""
        message = (
            f"failure scraping {client}{where}: attribute '{attribute}' "
            f"of node '{selector}' not found"
        )
        if details:
            message = f"{message} ({details})"
        super().__init__(message)
        self.client = client
        self.selector = selector
        self.attribute = attribute
        self.step = step
        self.details = details


class DecodeError(TraktSyncError):
    """A response body could not be decoded into the expected shape."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"failure unmarshalling {operation}: {cause}")
        self.operation = operation


class HydrationError(TraktSyncError):
    """Raised when one step of the browser-emulating auth sequence fails."""

    def __init__(self, step: str, description: str, cause: Exception) -> None:
        super().__init__(f"failure {description} [{step}]: {cause}")
        self.step = step
        self.description = description
