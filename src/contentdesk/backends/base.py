"""Abstract base class for content backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from contentdesk.registry.models import ContentItem, ItemStatus, Provenance
from contentdesk.registry.normalizer import RawRecord


class ContentBackend(ABC):
    """One system of record the registry reads from and writes to.

    Every method is a coroutine.  Failures raise ``BackendError`` (or
    another exception); callers count them as per-item failures.
    """

    provenance: Provenance

    @abstractmethod
    async def fetch(self) -> Sequence[RawRecord]:
        """Return every raw record of this source."""

    @abstractmethod
    async def persist_fields(self, source_id: str, fields: dict[str, str]) -> bool:
        """Write a partial set of SEO fields for one record."""

    @abstractmethod
    async def set_status(self, item: ContentItem, status: ItemStatus) -> bool:
        """Move one item to a new publication status."""

    @abstractmethod
    async def publish(self, item: ContentItem) -> bool:
        """Publish one item."""

    @abstractmethod
    async def delete(self, item: ContentItem) -> bool:
        """Delete one item from its system of record."""
