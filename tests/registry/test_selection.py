"""Tests for SelectionSet."""

from contentdesk.registry.selection import SelectionScope, SelectionSet


class TestToggle:
    def test_toggle_adds_and_removes(self):
        sel = SelectionSet()
        sel.toggle("remote-1")
        assert "remote-1" in sel
        assert sel.scope == SelectionScope.ITEMS
        sel.toggle("remote-1")
        assert not sel
        assert sel.scope == SelectionScope.NONE


class TestSelectPage:
    def test_selects_whole_page(self):
        sel = SelectionSet()
        sel.select_page(["a", "b", "c"])
        assert sel.ids == frozenset({"a", "b", "c"})
        assert sel.scope == SelectionScope.PAGE

    def test_second_call_deselects_page(self):
        sel = SelectionSet()
        sel.select_page(["a", "b"])
        sel.select_page(["a", "b"])
        assert len(sel) == 0

    def test_partial_page_gets_completed(self):
        sel = SelectionSet()
        sel.toggle("a")
        sel.select_page(["a", "b"])
        assert sel.ids == frozenset({"a", "b"})

    def test_deselect_page_keeps_other_pages(self):
        sel = SelectionSet()
        sel.toggle("z")
        sel.select_page(["a", "b"])
        sel.select_page(["a", "b"])
        assert sel.ids == frozenset({"z"})

    def test_empty_page_is_noop(self):
        sel = SelectionSet()
        sel.select_page([])
        assert sel.scope == SelectionScope.NONE


class TestSelectAllMatching:
    def test_replaces_selection(self):
        sel = SelectionSet()
        sel.toggle("old")
        sel.select_all_matching(["a", "b", "c"])
        assert sel.ids == frozenset({"a", "b", "c"})
        assert sel.scope == SelectionScope.ALL_MATCHING

    def test_clear(self):
        sel = SelectionSet()
        sel.select_all_matching(["a"])
        sel.clear()
        assert len(sel) == 0
        assert sel.scope == SelectionScope.NONE


class TestCheckboxState:
    def test_all_and_partial(self):
        sel = SelectionSet()
        sel.toggle("a")
        assert sel.is_partially_selected(["a", "b"])
        assert not sel.is_all_selected(["a", "b"])
        sel.toggle("b")
        assert sel.is_all_selected(["a", "b"])
        assert not sel.is_partially_selected(["a", "b"])

    def test_empty_page_never_all_selected(self):
        assert not SelectionSet().is_all_selected([])
