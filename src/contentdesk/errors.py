"""Error types shared across the content registry and its collaborators."""

from __future__ import annotations


class ContentDeskError(Exception):
    """Base error for contentdesk."""


class SourceUnavailableError(ContentDeskError):
    """A source collection could not be fetched.

    The registry keeps its last-known-good snapshot when this is raised.
    """

    def __init__(self, source: str, message: str = "") -> None:
        self.source = source
        super().__init__(message or f"Source '{source}' is unavailable")


class PreconditionError(ContentDeskError):
    """A bulk action was rejected before any mutation started."""

    def __init__(self, action: str, message: str, item_ids: list[str] | None = None) -> None:
        self.action = action
        self.message = message
        self.item_ids = list(item_ids or [])
        super().__init__(f"{action}: {message}")


class BackendError(ContentDeskError):
    """A collaborator call (CMS API, local store, AI endpoint) failed."""
