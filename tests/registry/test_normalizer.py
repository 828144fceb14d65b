"""Tests for the record normalizer."""

from datetime import UTC, datetime

import pytest

from contentdesk.registry.models import ItemStatus, LocalArticle, Provenance, RemotePost
from contentdesk.registry.normalizer import (
    map_status,
    normalize_local,
    normalize_remote,
    normalize_sources,
)


def _dt(day: int) -> str:
    return datetime(2025, 3, day, tzinfo=UTC).isoformat()


class TestMapStatus:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("draft", ItemStatus.DRAFT),
            ("published", ItemStatus.PUBLISHED),
            ("publish", ItemStatus.PUBLISHED),
            ("sent", ItemStatus.PUBLISHED),
            ("scheduled", ItemStatus.PENDING),
            ("future", ItemStatus.PENDING),
            ("pending", ItemStatus.PENDING),
            ("private", ItemStatus.PRIVATE),
            ("PUBLISHED", ItemStatus.PUBLISHED),
        ],
    )
    def test_known_statuses(self, raw, expected):
        assert map_status(raw) == expected

    def test_missing_status_is_draft(self):
        assert map_status(None) == ItemStatus.DRAFT
        assert map_status("") == ItemStatus.DRAFT

    def test_unknown_status_is_draft(self):
        assert map_status("trashed") == ItemStatus.DRAFT


class TestNormalizeVariants:
    def test_remote_mapping(self):
        post = RemotePost(id="12", title="Boots", focus_keyword="boots", status="published")
        item = normalize_remote(post)
        assert item.id == "remote-12"
        assert item.provenance == Provenance.REMOTE
        assert item.source_id == "12"
        assert item.keyword == "boots"
        assert item.status == ItemStatus.PUBLISHED
        assert item.remote_post_id == "12"
        assert item.preliminary_seo_score is None
        assert item.source_ref is post

    def test_local_mapping(self):
        article = LocalArticle(
            id="a1",
            title="Draft",
            keyword="hats",
            preliminary_seo_score=64,
            remote_post_id=None,
        )
        item = normalize_local(article)
        assert item.id == "local-a1"
        assert item.provenance == Provenance.LOCAL
        assert item.keyword == "hats"
        assert item.preliminary_seo_score == 64
        assert item.remote_post_id is None
        assert item.status == ItemStatus.DRAFT

    def test_absent_fields_are_none(self):
        item = normalize_remote(RemotePost(id="1"))
        assert item.seo_title is None
        assert item.word_count is None
        assert item.published_at is None


class TestNormalizeSources:
    def test_merges_and_sorts_newest_first(self):
        result = normalize_sources(
            [{"id": "1", "createdAt": _dt(1)}, {"id": "2", "createdAt": _dt(5)}],
            [{"id": "a", "created_at": _dt(3)}],
        )
        assert [i.id for i in result.items] == ["remote-2", "local-a", "remote-1"]
        assert result.dropped == 0

    def test_undated_items_sort_last(self):
        result = normalize_sources([{"id": "1"}, {"id": "2", "createdAt": _dt(2)}], [])
        assert [i.id for i in result.items] == ["remote-2", "remote-1"]

    def test_naive_and_aware_dates_compare(self):
        result = normalize_sources(
            [{"id": "1", "createdAt": "2025-03-04T00:00:00"}],
            [{"id": "a", "createdAt": _dt(2)}],
        )
        assert [i.id for i in result.items] == ["remote-1", "local-a"]

    def test_overlapping_source_ids_stay_distinct(self):
        result = normalize_sources([{"id": "7"}], [{"id": "7"}])
        ids = {i.id for i in result.items}
        assert ids == {"remote-7", "local-7"}

    def test_malformed_records_dropped_and_counted(self):
        result = normalize_sources(
            [{"id": "1"}, {"title": "no id"}, {"id": "3", "wordCount": "many"}],
            [{"id": ""}],
        )
        assert [i.id for i in result.items] == ["remote-1"]
        assert result.dropped == 3

    def test_duplicate_ids_dropped(self):
        result = normalize_sources([{"id": "1", "title": "first"}, {"id": "1"}], [])
        assert len(result.items) == 1
        assert result.items[0].title == "first"
        assert result.dropped == 1
        assert result.dropped_ids == ["remote-1"]

    def test_accepts_model_instances(self):
        result = normalize_sources([RemotePost(id="1")], [LocalArticle(id="a")])
        assert {i.id for i in result.items} == {"remote-1", "local-a"}

    def test_ids_are_unique(self):
        result = normalize_sources(
            [{"id": str(n)} for n in range(20)], [{"id": str(n)} for n in range(20)]
        )
        ids = [i.id for i in result.items]
        assert len(ids) == len(set(ids)) == 40
