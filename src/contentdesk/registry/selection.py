"""Ids marked for a bulk action within one filter context."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import StrEnum


class SelectionScope(StrEnum):
    """How the current selection was made.

    ``page`` and ``all_matching`` differ only for display; both are the
    same id set internally.
    """

    NONE = "none"
    ITEMS = "items"
    PAGE = "page"
    ALL_MATCHING = "all_matching"


class SelectionSet:
    """Set of selected item ids.

    Owned by one filter context; the owner clears it whenever the filter
    predicate changes.
    """

    def __init__(self) -> None:
        self._ids: set[str] = set()
        self._scope = SelectionScope.NONE

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    @property
    def scope(self) -> SelectionScope:
        return self._scope

    def toggle(self, item_id: str) -> None:
        if item_id in self._ids:
            self._ids.discard(item_id)
        else:
            self._ids.add(item_id)
        self._scope = SelectionScope.ITEMS if self._ids else SelectionScope.NONE

    def select_page(self, ids: Iterable[str]) -> None:
        """Select every id on the page, or deselect them all if already selected."""
        page_ids = set(ids)
        if not page_ids:
            return
        if page_ids <= self._ids:
            self._ids -= page_ids
            self._scope = SelectionScope.ITEMS if self._ids else SelectionScope.NONE
        else:
            self._ids |= page_ids
            self._scope = SelectionScope.PAGE

    def select_all_matching(self, ids: Iterable[str]) -> None:
        """Replace the selection with every id matching the filter across pages."""
        self._ids = set(ids)
        self._scope = SelectionScope.ALL_MATCHING if self._ids else SelectionScope.NONE

    def clear(self) -> None:
        self._ids = set()
        self._scope = SelectionScope.NONE

    def is_all_selected(self, ids: Iterable[str]) -> bool:
        """True when ``ids`` is non-empty and fully selected (checkbox checked)."""
        wanted = set(ids)
        return bool(wanted) and wanted <= self._ids

    def is_partially_selected(self, ids: Iterable[str]) -> bool:
        """True when some but not all of ``ids`` are selected (indeterminate)."""
        wanted = set(ids)
        hit = len(wanted & self._ids)
        return 0 < hit < len(wanted)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __bool__(self) -> bool:
        return bool(self._ids)
