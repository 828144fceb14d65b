"""Filter context: owns filters, paging, selection and edits.

A ``ContentView`` is the one active consumer of a registry.  Any change
to the filter predicate (source, status tab, search text) is a hard
reset: page back to the first, selection emptied, edit buffer discarded.
Sort and page-size changes only reset the page.
"""

from __future__ import annotations

import logging

from contentdesk.registry.edit_buffer import EditBuffer
from contentdesk.registry.models import ContentItem
from contentdesk.registry.pipeline import (
    DEFAULT_PAGE_SIZE,
    FilterCriteria,
    Page,
    SortField,
    SourceFilter,
    StatusTab,
    count_by_tab,
    filter_items,
    paginate,
)
from contentdesk.registry.registry import ContentRegistry
from contentdesk.registry.selection import SelectionSet
from contentdesk.registry.signals import InvalidationSignal

logger = logging.getLogger(__name__)


class ContentView:
    """One filter context over a ContentRegistry."""

    def __init__(
        self,
        registry: ContentRegistry,
        *,
        criteria: FilterCriteria | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        signal: InvalidationSignal | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.registry = registry
        self.criteria = criteria or FilterCriteria()
        self.page_size = page_size
        self.page_index = 0
        self.selection = SelectionSet()
        self.edits = EditBuffer(registry, signal=signal)

    # ── Filter changes ──────────────────────────────────────────

    def set_source_filter(self, source: SourceFilter | str) -> None:
        self._change_predicate(source=SourceFilter(source))

    def set_status_tab(self, tab: StatusTab | str) -> None:
        self._change_predicate(tab=StatusTab(tab))

    def set_search(self, text: str) -> None:
        self._change_predicate(search=text)

    def set_sort(self, field: SortField | str, ascending: bool = False) -> None:
        self.criteria = self.criteria.model_copy(
            update={"sort_field": SortField(field), "sort_ascending": ascending}
        )
        self.page_index = 0

    def set_page_size(self, page_size: int) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size
        self.page_index = 0

    def go_to_page(self, page_index: int) -> Page:
        """Move to a page (clamped to the valid range) and return it."""
        page = paginate(self.matching_items(), page_index, self.page_size)
        self.page_index = page.page_index
        return page

    def _change_predicate(self, **update: object) -> None:
        new_criteria = self.criteria.model_copy(update=update)
        if new_criteria.predicate_key() == self.criteria.predicate_key():
            self.criteria = new_criteria
            return
        self.criteria = new_criteria
        self.page_index = 0
        self.selection.clear()
        if len(self.edits):
            logger.warning(
                "Filter changed; discarding %d uncommitted edit(s)", len(self.edits)
            )
        self.edits.discard_all()

    # ── Derived views ───────────────────────────────────────────

    def matching_items(self) -> list[ContentItem]:
        """Every item matching the current filters, across all pages."""
        return filter_items(self.registry.items, self.criteria, self.registry.remote_post_ids)

    def current_page(self) -> Page:
        page = paginate(self.matching_items(), self.page_index, self.page_size)
        self.page_index = page.page_index
        return page

    def display_page(self) -> Page:
        """The current page with uncommitted edits merged in."""
        page = self.current_page()
        return page.model_copy(update={"items": [self.edits.apply(i) for i in page.items]})

    def tab_counts(self) -> dict[StatusTab, int]:
        return count_by_tab(self.registry.items, self.criteria.source)

    # ── Selection ───────────────────────────────────────────────

    def toggle(self, item_id: str) -> None:
        self.selection.toggle(item_id)

    def select_page(self) -> None:
        self.selection.select_page(self.current_page().ids)

    def select_all_matching(self) -> None:
        self.selection.select_all_matching(item.id for item in self.matching_items())

    def selected_items(self) -> list[ContentItem]:
        """Selected items in display order; ids no longer matching are ignored."""
        return [item for item in self.matching_items() if item.id in self.selection]

    # ── Edits ───────────────────────────────────────────────────

    def read(self, item_id: str, field: str) -> str:
        return self.edits.read(item_id, field)

    def set_field(self, item_id: str, field: str, value: str) -> None:
        self.edits.set_field(item_id, field, value)
