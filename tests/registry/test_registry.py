"""Tests for ContentRegistry — snapshot, refresh and invalidation."""

import asyncio

import pytest

from contentdesk.errors import SourceUnavailableError
from contentdesk.registry.models import Provenance
from contentdesk.registry.registry import ContentRegistry
from contentdesk.registry.signals import Invalidation, InvalidationSignal


def _fetcher(records):
    calls = []

    async def fetch():
        calls.append(1)
        return list(records)

    fetch.calls = calls  # type: ignore[attr-defined]
    return fetch


async def _failing():
    raise ConnectionError("CMS down")


class TestLoad:
    def test_load_builds_snapshot(self):
        registry = ContentRegistry("site")
        registry.load([{"id": "1"}], [{"id": "a"}, {"id": "b"}])
        assert len(registry) == 3
        assert registry.count(Provenance.LOCAL) == 2
        assert "remote-1" in registry
        assert registry.get("local-a").source_id == "a"

    def test_load_none_keeps_previous_collection(self):
        registry = ContentRegistry("site")
        registry.load([{"id": "1"}], [{"id": "a"}])
        registry.load(local_records=[{"id": "b"}])
        assert {i.id for i in registry} == {"remote-1", "local-b"}

    def test_snapshot_is_replaced_not_mutated(self):
        registry = ContentRegistry("site")
        registry.load([{"id": "1", "title": "Old"}], [])
        before = registry.items
        registry.load([{"id": "1", "title": "New"}], [])
        assert before[0].title == "Old"
        assert registry.items[0].title == "New"

    def test_dropped_count(self):
        registry = ContentRegistry("site")
        registry.load([{"id": "1"}, {"nope": True}], [])
        assert registry.dropped == 1

    def test_require_unknown_raises(self):
        registry = ContentRegistry("site")
        with pytest.raises(KeyError):
            registry.require("remote-404")

    def test_remote_post_ids(self):
        registry = ContentRegistry("site")
        registry.load([{"id": "1"}, {"id": "2"}], [{"id": "1"}])
        assert registry.remote_post_ids == frozenset({"1", "2"})


class TestRefresh:
    def test_refresh_fetches_both_sources(self):
        remote = _fetcher([{"id": "1"}])
        local = _fetcher([{"id": "a"}])
        registry = ContentRegistry("site", remote, local)
        result = asyncio.run(registry.refresh())
        assert len(result.items) == 2
        assert len(remote.calls) == 1
        assert len(local.calls) == 1

    def test_refresh_only_local(self):
        remote = _fetcher([{"id": "1"}])
        local = _fetcher([{"id": "a"}])
        registry = ContentRegistry("site", remote, local)
        asyncio.run(registry.refresh(remote=False))
        assert remote.calls == []
        assert [i.id for i in registry] == ["local-a"]

    def test_failed_fetch_keeps_snapshot(self):
        registry = ContentRegistry("site", _failing, _fetcher([{"id": "a"}]))
        registry.load([{"id": "1"}], [{"id": "old"}])
        with pytest.raises(SourceUnavailableError) as exc_info:
            asyncio.run(registry.refresh())
        assert exc_info.value.source == "remote"
        assert {i.id for i in registry} == {"remote-1", "local-old"}

    def test_missing_fetcher_is_skipped(self):
        registry = ContentRegistry("site", fetch_local=_fetcher([{"id": "a"}]))
        asyncio.run(registry.refresh())
        assert [i.id for i in registry] == ["local-a"]


class TestInvalidation:
    def test_signal_marks_sources_stale(self):
        signal = InvalidationSignal()
        registry = ContentRegistry("site", signal=signal)
        assert not registry.stale
        signal.emit(Invalidation("test", frozenset({Provenance.LOCAL})))
        assert registry.stale
        assert registry.stale_sources == frozenset({Provenance.LOCAL})

    def test_refresh_stale_refetches_only_stale_source(self):
        remote = _fetcher([{"id": "1"}])
        local = _fetcher([{"id": "a"}])
        registry = ContentRegistry("site", remote, local)
        registry.mark_stale(frozenset({Provenance.REMOTE}))
        asyncio.run(registry.refresh_stale())
        assert len(remote.calls) == 1
        assert local.calls == []
        assert not registry.stale

    def test_refresh_stale_noop_when_fresh(self):
        registry = ContentRegistry("site", _failing)
        assert asyncio.run(registry.refresh_stale()) is None

    def test_default_invalidation_covers_both_sources(self):
        signal = InvalidationSignal()
        registry = ContentRegistry("site", signal=signal)
        signal.emit(Invalidation("bulk"))
        assert registry.stale_sources == frozenset(Provenance)
