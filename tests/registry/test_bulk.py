"""Tests for the bulk operation executor."""

import asyncio

import pytest

from contentdesk.errors import PreconditionError
from contentdesk.registry.bulk import BulkAction, BulkExecutor, PreconditionPolicy
from contentdesk.registry.models import ContentItem, Provenance, make_item_id
from contentdesk.registry.selection import SelectionSet
from contentdesk.registry.signals import InvalidationSignal


def _item(source_id: str, title: str | None = "Title", **kwargs) -> ContentItem:
    provenance = kwargs.pop("provenance", Provenance.REMOTE)
    return ContentItem(
        id=make_item_id(provenance, source_id),
        provenance=provenance,
        source_id=source_id,
        title=title,
        **kwargs,
    )


def _recording_action(fail_ids=(), raise_ids=(), **kwargs):
    calls: list[str] = []

    async def mutation(item: ContentItem) -> bool:
        calls.append(item.id)
        if item.id in raise_ids:
            raise RuntimeError(f"cannot touch {item.id}")
        return item.id not in fail_ids

    action = BulkAction(name="test", label="Test", mutation=mutation, **kwargs)
    return action, calls


class TestPreconditions:
    def test_empty_selection_rejected(self):
        action, calls = _recording_action()
        with pytest.raises(PreconditionError):
            asyncio.run(BulkExecutor().run(action, []))
        assert calls == []

    def test_require_all_rejects_whole_selection(self):
        items = [_item("1"), _item("2", title=None), _item("3"), _item("4")]
        action, calls = _recording_action(
            eligible=lambda i: bool(i.title),
            precondition_message="needs a title",
        )
        with pytest.raises(PreconditionError) as exc_info:
            asyncio.run(BulkExecutor().run(action, items))
        assert calls == []
        assert exc_info.value.item_ids == ["remote-2"]
        assert exc_info.value.message == "needs a title"

    def test_skip_ineligible_runs_the_rest(self):
        items = [_item("1"), _item("2", title=None), _item("3")]
        action, calls = _recording_action(
            eligible=lambda i: bool(i.title),
            policy=PreconditionPolicy.SKIP_INELIGIBLE,
        )
        result = asyncio.run(BulkExecutor().run(action, items))
        assert calls == ["remote-1", "remote-3"]
        assert result.total == 2
        assert result.skipped == 1

    def test_skip_ineligible_with_nothing_eligible_rejected(self):
        action, calls = _recording_action(
            eligible=lambda i: False,
            policy=PreconditionPolicy.SKIP_INELIGIBLE,
        )
        with pytest.raises(PreconditionError):
            asyncio.run(BulkExecutor().run(action, [_item("1")]))
        assert calls == []


class TestRun:
    def test_partial_failure_never_aborts(self):
        items = [_item(str(n)) for n in range(1, 6)]
        action, calls = _recording_action(fail_ids={"remote-2"}, raise_ids={"remote-4"})
        result = asyncio.run(BulkExecutor().run(action, items))
        assert len(calls) == 5
        assert result.succeeded == 3
        assert result.total == 5
        assert result.summary() == "3/5"
        assert {f.item_id for f in result.failures} == {"remote-2", "remote-4"}
        reasons = {f.item_id: f.reason for f in result.failures}
        assert "cannot touch" in reasons["remote-4"]

    def test_runs_in_selection_order(self):
        items = [_item("b"), _item("a"), _item("c")]
        action, calls = _recording_action()
        asyncio.run(BulkExecutor().run(action, items))
        assert calls == ["remote-b", "remote-a", "remote-c"]

    def test_mutations_never_overlap(self):
        active: list[str] = []
        peak: list[int] = []

        async def mutation(item):
            active.append(item.id)
            peak.append(len(active))
            await asyncio.sleep(0)
            active.remove(item.id)
            return True

        action = BulkAction(name="slow", label="Slow", mutation=mutation)
        asyncio.run(BulkExecutor().run(action, [_item(str(n)) for n in range(4)]))
        assert max(peak) == 1

    def test_progress_reported_monotonically(self):
        seen = []
        action, _ = _recording_action(fail_ids={"remote-1"})
        asyncio.run(
            BulkExecutor().run(
                action,
                [_item("0"), _item("1"), _item("2")],
                on_progress=lambda p: seen.append((p.current, p.total)),
            )
        )
        assert seen == [(0, 3), (1, 3), (2, 3), (3, 3)]

    def test_selection_cleared_after_run(self):
        selection = SelectionSet()
        selection.select_all_matching(["remote-1", "remote-2"])
        action, _ = _recording_action(fail_ids={"remote-1"})
        asyncio.run(
            BulkExecutor().run(action, [_item("1"), _item("2")], selection=selection)
        )
        assert len(selection) == 0

    def test_emits_invalidation(self):
        signal = InvalidationSignal()
        events = []
        signal.connect(events.append)
        action, _ = _recording_action(invalidates=frozenset({Provenance.REMOTE}))
        asyncio.run(BulkExecutor(signal=signal).run(action, [_item("1")]))
        assert len(events) == 1
        assert events[0].provenances == frozenset({Provenance.REMOTE})
        assert "test" in events[0].reason

    def test_rejected_run_leaves_selection(self):
        selection = SelectionSet()
        selection.toggle("remote-1")
        action, _ = _recording_action(eligible=lambda i: False)
        with pytest.raises(PreconditionError):
            asyncio.run(BulkExecutor().run(action, [_item("1")], selection=selection))
        assert "remote-1" in selection
