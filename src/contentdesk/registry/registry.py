"""The merged, sorted snapshot of one site's content.

The snapshot is replaced, never mutated: every recompute builds a new
tuple of new ContentItem objects, so references taken earlier stay valid.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator, Sequence
from typing import Any

from contentdesk.errors import SourceUnavailableError
from contentdesk.registry.models import ContentItem, NormalizationResult, Provenance
from contentdesk.registry.normalizer import RawRecord, normalize_sources
from contentdesk.registry.signals import Invalidation, InvalidationSignal

logger = logging.getLogger(__name__)

SourceFetch = Callable[[], Awaitable[Sequence[RawRecord]]]


class ContentRegistry:
    """Holds the merged ContentItem snapshot for one site.

    Recomputed whenever either source collection changes.  A failed fetch
    leaves the last-known-good snapshot in place.
    """

    def __init__(
        self,
        site_id: str,
        fetch_remote: SourceFetch | None = None,
        fetch_local: SourceFetch | None = None,
        *,
        signal: InvalidationSignal | None = None,
    ) -> None:
        self.site_id = site_id
        self._fetch_remote = fetch_remote
        self._fetch_local = fetch_local
        self._remote_raw: list[RawRecord] = []
        self._local_raw: list[RawRecord] = []
        self._items: tuple[ContentItem, ...] = ()
        self._index: dict[str, ContentItem] = {}
        self._dropped = 0
        self._stale: set[Provenance] = set()
        if signal is not None:
            signal.connect(self._on_invalidation)

    # ── Snapshot access ─────────────────────────────────────────

    @property
    def items(self) -> tuple[ContentItem, ...]:
        """Current snapshot, newest first."""
        return self._items

    @property
    def dropped(self) -> int:
        """Records dropped by the last recompute."""
        return self._dropped

    @property
    def stale(self) -> bool:
        return bool(self._stale)

    @property
    def stale_sources(self) -> frozenset[Provenance]:
        return frozenset(self._stale)

    @property
    def remote_post_ids(self) -> frozenset[str]:
        """Remote CMS ids present in the current snapshot."""
        return frozenset(
            item.source_id for item in self._items if item.provenance == Provenance.REMOTE
        )

    def get(self, item_id: str) -> ContentItem | None:
        return self._index.get(item_id)

    def require(self, item_id: str) -> ContentItem:
        """Return an item by id.

        Raises KeyError if the id is not in the snapshot.
        """
        item = self._index.get(item_id)
        if item is None:
            raise KeyError(item_id)
        return item

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index

    def __iter__(self) -> Iterator[ContentItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def count(self, provenance: Provenance) -> int:
        return sum(1 for item in self._items if item.provenance == provenance)

    # ── Recompute ───────────────────────────────────────────────

    def load(
        self,
        remote_records: Sequence[RawRecord] | None = None,
        local_records: Sequence[RawRecord] | None = None,
    ) -> NormalizationResult:
        """Recompute the snapshot from raw source records.

        A ``None`` collection keeps the last one seen for that source.
        """
        if remote_records is not None:
            self._remote_raw = list(remote_records)
            self._stale.discard(Provenance.REMOTE)
        if local_records is not None:
            self._local_raw = list(local_records)
            self._stale.discard(Provenance.LOCAL)

        result = normalize_sources(self._remote_raw, self._local_raw)
        self._items = tuple(result.items)
        self._index = {item.id: item for item in self._items}
        self._dropped = result.dropped
        logger.info(
            "Registry %s: %d item(s), %d dropped",
            self.site_id,
            len(self._items),
            result.dropped,
        )
        return result

    async def refresh(self, *, remote: bool = True, local: bool = True) -> NormalizationResult:
        """Re-fetch one or both sources and recompute.

        Raises:
            SourceUnavailableError: If a fetch fails.  The previous
                snapshot is kept.
        """
        jobs: list[tuple[str, SourceFetch]] = []
        if remote and self._fetch_remote is not None:
            jobs.append((Provenance.REMOTE.value, self._fetch_remote))
        if local and self._fetch_local is not None:
            jobs.append((Provenance.LOCAL.value, self._fetch_local))

        results = await asyncio.gather(*(fetch() for _, fetch in jobs), return_exceptions=True)

        fetched: dict[str, Sequence[Any]] = {}
        for (source, _), outcome in zip(jobs, results, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "Fetch of %s source failed for site %s, keeping last snapshot",
                    source,
                    self.site_id,
                    exc_info=outcome,
                )
                raise SourceUnavailableError(source, str(outcome)) from outcome
            fetched[source] = outcome

        return self.load(
            remote_records=fetched.get(Provenance.REMOTE.value),
            local_records=fetched.get(Provenance.LOCAL.value),
        )

    async def refresh_stale(self) -> NormalizationResult | None:
        """Refresh only the sources that were invalidated, if any."""
        if not self._stale:
            return None
        return await self.refresh(
            remote=Provenance.REMOTE in self._stale,
            local=Provenance.LOCAL in self._stale,
        )

    def mark_stale(self, provenances: frozenset[Provenance] | None = None) -> None:
        self._stale.update(provenances if provenances is not None else set(Provenance))

    def _on_invalidation(self, event: Invalidation) -> None:
        self.mark_stale(event.provenances)
