"""Tests for ContentView — the reset rules of one filter context."""

from datetime import UTC, datetime, timedelta

import pytest

from contentdesk.registry.models import Provenance
from contentdesk.registry.pipeline import FilterCriteria, SortField, SourceFilter, StatusTab
from contentdesk.registry.registry import ContentRegistry
from contentdesk.registry.selection import SelectionScope
from contentdesk.registry.view import ContentView

_BASE = datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture
def registry() -> ContentRegistry:
    reg = ContentRegistry("site")
    remote = [
        {
            "id": str(n),
            "title": f"Boots {n}" if n % 2 else f"Hats {n}",
            "status": "published" if n % 3 else "draft",
            "createdAt": (_BASE + timedelta(days=n)).isoformat(),
        }
        for n in range(1, 31)
    ]
    local = [{"id": "a", "title": "Local boots", "created_at": _BASE.isoformat()}]
    reg.load(remote, local)
    return reg


class TestPaging:
    def test_first_page_by_default(self, registry):
        view = ContentView(registry, page_size=10)
        page = view.current_page()
        assert page.page_index == 0
        assert page.total_items == 31
        assert page.total_pages == 4

    def test_go_to_page_clamps(self, registry):
        view = ContentView(registry, page_size=10)
        assert view.go_to_page(99).page_index == 3
        assert view.page_index == 3

    def test_invalid_page_size(self, registry):
        with pytest.raises(ValueError):
            ContentView(registry, page_size=0)


class TestFilterChangeResets:
    @pytest.mark.parametrize(
        "change",
        [
            lambda v: v.set_source_filter(SourceFilter.LOCAL),
            lambda v: v.set_status_tab(StatusTab.DRAFTS),
            lambda v: v.set_search("boots"),
        ],
    )
    def test_predicate_change_resets_page_selection_and_edits(self, registry, change):
        view = ContentView(registry, page_size=10)
        view.go_to_page(2)
        view.select_page()
        view.set_field("remote-1", "seo_title", "pending")
        assert len(view.selection) == 10

        change(view)

        assert view.page_index == 0
        assert len(view.selection) == 0
        assert view.selection.scope == SelectionScope.NONE
        assert len(view.edits) == 0

    def test_same_predicate_keeps_selection(self, registry):
        view = ContentView(registry, criteria=FilterCriteria(search="boots"))
        view.toggle("remote-1")
        view.set_search("  BOOTS ")
        assert "remote-1" in view.selection

    def test_sort_change_resets_page_only(self, registry):
        view = ContentView(registry, page_size=10)
        view.go_to_page(1)
        view.toggle("remote-5")
        view.set_sort(SortField.TITLE, ascending=True)
        assert view.page_index == 0
        assert "remote-5" in view.selection

    def test_page_size_change_resets_page(self, registry):
        view = ContentView(registry, page_size=10)
        view.go_to_page(2)
        view.set_page_size(50)
        assert view.page_index == 0
        assert view.current_page().total_pages == 1


class TestSelectionAcrossPages:
    def test_select_all_matching_spans_pages(self, registry):
        view = ContentView(registry, page_size=10)
        view.set_search("boots")
        view.select_all_matching()
        assert len(view.selection) == 16
        assert view.selection.scope == SelectionScope.ALL_MATCHING

    def test_selected_items_in_display_order(self, registry):
        view = ContentView(registry)
        view.toggle("local-a")
        view.toggle("remote-30")
        assert [i.id for i in view.selected_items()] == ["remote-30", "local-a"]


class TestDisplay:
    def test_display_page_merges_edits(self, registry):
        view = ContentView(registry)
        view.set_field("remote-30", "seo_title", "Edited")
        shown = view.display_page()
        assert shown.items[0].seo_title == "Edited"
        assert registry.require("remote-30").seo_title is None
        assert view.read("remote-30", "seo_title") == "Edited"

    def test_tab_counts_follow_source_filter(self, registry):
        view = ContentView(registry)
        view.set_source_filter(SourceFilter.LOCAL)
        counts = view.tab_counts()
        assert counts[StatusTab.ALL] == 1
        assert counts[StatusTab.PENDING_SYNC] == 1

    def test_local_items_visible_through_source_filter(self, registry):
        view = ContentView(registry)
        view.set_source_filter("local")
        assert [i.provenance for i in view.matching_items()] == [Provenance.LOCAL]
