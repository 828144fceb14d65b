"""Filter → status tab → search → sort → paginate.

Each stage is a pure function from (items, criteria) to items.  No stage
keeps state; ``run_pipeline`` composes them in that fixed order.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from contentdesk.registry.models import ContentItem, ItemStatus, Provenance

DEFAULT_PAGE_SIZE = 25
PAGE_SIZE_CHOICES = (10, 25, 50, 100)


class SourceFilter(StrEnum):
    ALL = "all"
    REMOTE = "remote"
    LOCAL = "local"


class StatusTab(StrEnum):
    """Named filter predicates over the merged registry."""

    ALL = "all"
    UNOPTIMIZED = "unoptimized"
    PENDING_SYNC = "pending_sync"
    DRAFTS = "drafts"
    PUBLISHED = "published"


class SortField(StrEnum):
    CREATED_AT = "created_at"
    PUBLISHED_AT = "published_at"
    TITLE = "title"
    SEO_SCORE = "seo_score"
    WORD_COUNT = "word_count"
    STATUS = "status"


class FilterCriteria(BaseModel):
    """Everything upstream of pagination."""

    source: SourceFilter = SourceFilter.ALL
    tab: StatusTab = StatusTab.ALL
    search: str = ""
    sort_field: SortField = SortField.CREATED_AT
    sort_ascending: bool = False

    def predicate_key(self) -> tuple[SourceFilter, StatusTab, str]:
        """The part of the criteria that decides membership."""
        return (self.source, self.tab, self.search.strip().lower())


class Page(BaseModel):
    """One page of the filtered, sorted result."""

    items: list[ContentItem] = Field(default_factory=list)
    page_index: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    total_items: int = 0
    total_pages: int = 1

    @property
    def ids(self) -> list[str]:
        return [item.id for item in self.items]

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0

    @property
    def has_next(self) -> bool:
        return self.page_index < self.total_pages - 1

    @property
    def first_position(self) -> int:
        """1-based position of the first item on the page (0 when empty)."""
        if not self.items:
            return 0
        return self.page_index * self.page_size + 1

    @property
    def last_position(self) -> int:
        return self.page_index * self.page_size + len(self.items)


# ── Stages ──────────────────────────────────────────────────────


def filter_by_source(items: Sequence[ContentItem], source: SourceFilter) -> list[ContentItem]:
    if source == SourceFilter.ALL:
        return list(items)
    provenance = Provenance(source.value)
    return [item for item in items if item.provenance == provenance]


def _is_unoptimized(item: ContentItem) -> bool:
    return not item.seo_title or not item.seo_description


def _is_pending_sync(item: ContentItem, remote_ids: frozenset[str]) -> bool:
    if item.provenance != Provenance.LOCAL:
        return False
    return item.remote_post_id is None or item.remote_post_id not in remote_ids


def matches_tab(item: ContentItem, tab: StatusTab, remote_ids: frozenset[str]) -> bool:
    """Whether one item belongs to a status tab.

    ``remote_ids`` are the remote CMS ids present in the registry; a local
    item whose counterpart is missing from it is still pending sync.
    """
    if tab == StatusTab.ALL:
        return True
    if tab == StatusTab.UNOPTIMIZED:
        return _is_unoptimized(item)
    if tab == StatusTab.PENDING_SYNC:
        return _is_pending_sync(item, remote_ids)
    if tab == StatusTab.DRAFTS:
        return item.status == ItemStatus.DRAFT
    if tab == StatusTab.PUBLISHED:
        return item.status == ItemStatus.PUBLISHED
    raise ValueError(f"Unknown status tab: {tab!r}")


def filter_by_status_tab(
    items: Sequence[ContentItem],
    tab: StatusTab,
    remote_ids: frozenset[str] = frozenset(),
) -> list[ContentItem]:
    return [item for item in items if matches_tab(item, tab, remote_ids)]


def search_items(items: Sequence[ContentItem], query: str) -> list[ContentItem]:
    """Case-insensitive substring match on title, keyword or SEO title."""
    q = query.strip().lower()
    if not q:
        return list(items)
    return [
        item
        for item in items
        if q in (item.title or "").lower()
        or q in (item.keyword or "").lower()
        or q in (item.seo_title or "").lower()
    ]


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


_SORT_KEYS: dict[SortField, Callable[[ContentItem], Any]] = {
    SortField.CREATED_AT: lambda i: _as_aware(i.created_at) if i.created_at else None,
    SortField.PUBLISHED_AT: lambda i: _as_aware(i.published_at) if i.published_at else None,
    SortField.TITLE: lambda i: i.title.casefold() if i.title else None,
    SortField.SEO_SCORE: lambda i: i.seo_score,
    SortField.WORD_COUNT: lambda i: i.word_count,
    SortField.STATUS: lambda i: i.status.value,
}


def sort_items(
    items: Sequence[ContentItem],
    field: SortField = SortField.CREATED_AT,
    ascending: bool = False,
) -> list[ContentItem]:
    """Stable sort on one field; items missing the field always sort last."""
    key = _SORT_KEYS[field]
    present = [item for item in items if key(item) is not None]
    missing = [item for item in items if key(item) is None]
    present.sort(key=key, reverse=not ascending)
    return present + missing


def paginate(items: Sequence[ContentItem], page_index: int, page_size: int) -> Page:
    """Slice one page out of the result.

    An index past the last page clamps to the last page.

    Raises:
        ValueError: If ``page_size`` is not positive.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    total = len(items)
    total_pages = max(1, math.ceil(total / page_size))
    index = min(max(page_index, 0), total_pages - 1)
    start = index * page_size
    return Page(
        items=list(items[start : start + page_size]),
        page_index=index,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
    )


# ── Composition ─────────────────────────────────────────────────


def remote_ids_of(items: Sequence[ContentItem]) -> frozenset[str]:
    return frozenset(i.source_id for i in items if i.provenance == Provenance.REMOTE)


def filter_items(
    items: Sequence[ContentItem],
    criteria: FilterCriteria,
    remote_ids: frozenset[str] | None = None,
) -> list[ContentItem]:
    """All stages except pagination: the full matching set, in display order."""
    if remote_ids is None:
        remote_ids = remote_ids_of(items)
    result = filter_by_source(items, criteria.source)
    result = filter_by_status_tab(result, criteria.tab, remote_ids)
    result = search_items(result, criteria.search)
    return sort_items(result, criteria.sort_field, criteria.sort_ascending)


def run_pipeline(
    items: Sequence[ContentItem],
    criteria: FilterCriteria,
    page_index: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    return paginate(filter_items(items, criteria), page_index, page_size)


def count_by_tab(
    items: Sequence[ContentItem],
    source: SourceFilter = SourceFilter.ALL,
) -> dict[StatusTab, int]:
    """Item count per status tab under a source filter."""
    remote_ids = remote_ids_of(items)
    scoped = filter_by_source(items, source)
    return {tab: len(filter_by_status_tab(scoped, tab, remote_ids)) for tab in StatusTab}
