"""Maps both source variants into ContentItem.

Mapping is pure and total per variant.  Records that cannot be validated
(missing id, unparseable shape) and duplicate source ids are dropped and
counted; they never receive a synthetic id.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from contentdesk.registry.models import (
    ContentItem,
    ItemStatus,
    LocalArticle,
    NormalizationResult,
    Provenance,
    RemotePost,
    make_item_id,
)

logger = logging.getLogger(__name__)

# CMS status vocabularies (Ghost and WordPress) folded into ItemStatus.
_STATUS_MAP: dict[str, ItemStatus] = {
    "draft": ItemStatus.DRAFT,
    "auto-draft": ItemStatus.DRAFT,
    "pending": ItemStatus.PENDING,
    "scheduled": ItemStatus.PENDING,
    "future": ItemStatus.PENDING,
    "private": ItemStatus.PRIVATE,
    "publish": ItemStatus.PUBLISHED,
    "published": ItemStatus.PUBLISHED,
    "sent": ItemStatus.PUBLISHED,
}

_EPOCH = datetime.min.replace(tzinfo=UTC)

RawRecord = Mapping[str, Any] | RemotePost | LocalArticle


def map_status(raw: str | None) -> ItemStatus:
    """Map a source status string onto the canonical status."""
    if not raw:
        return ItemStatus.DRAFT
    status = _STATUS_MAP.get(raw.strip().lower())
    if status is None:
        logger.debug("Unknown source status %r, treating as draft", raw)
        return ItemStatus.DRAFT
    return status


def _shared_fields(record: RemotePost | LocalArticle) -> dict[str, Any]:
    return {
        "source_id": record.id,
        "title": record.title,
        "status": map_status(record.status),
        "slug": record.slug,
        "url": record.url,
        "word_count": record.word_count,
        "seo_score": record.seo_score,
        "readability_score": record.readability_score,
        "published_at": record.published_at,
        "created_at": record.created_at,
        "seo_title": record.seo_title,
        "seo_description": record.seo_description,
        "canonical_url": record.canonical_url,
        "robots_meta": record.robots_meta,
        "schema_type": record.schema_type,
        "og_title": record.og_title,
        "internal_links_count": record.internal_links_count,
        "external_links_count": record.external_links_count,
        "images_count": record.images_count,
        "images_alt_count": record.images_alt_count,
        "feature_image": record.feature_image,
        "source_ref": record,
    }


def normalize_remote(record: RemotePost) -> ContentItem:
    """Map a remote CMS post into a ContentItem."""
    return ContentItem(
        id=make_item_id(Provenance.REMOTE, record.id),
        provenance=Provenance.REMOTE,
        keyword=record.focus_keyword,
        preliminary_seo_score=None,
        remote_post_id=record.id,
        **_shared_fields(record),
    )


def normalize_local(record: LocalArticle) -> ContentItem:
    """Map a locally authored article into a ContentItem."""
    return ContentItem(
        id=make_item_id(Provenance.LOCAL, record.id),
        provenance=Provenance.LOCAL,
        keyword=record.keyword,
        preliminary_seo_score=record.preliminary_seo_score,
        remote_post_id=record.remote_post_id,
        **_shared_fields(record),
    )


def _created_sort_key(item: ContentItem) -> datetime:
    created = item.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        return created.replace(tzinfo=UTC)
    return created


def sort_by_created_desc(items: Iterable[ContentItem]) -> list[ContentItem]:
    """Canonical registry order: newest first, undated items last."""
    return sorted(items, key=_created_sort_key, reverse=True)


def _validate_all(
    records: Iterable[RawRecord],
    model: type[RemotePost] | type[LocalArticle],
) -> tuple[list[Any], int, list[str]]:
    """Validate raw records into one variant, dropping bad ones and duplicates."""
    valid: list[Any] = []
    seen: set[str] = set()
    dropped = 0
    dropped_ids: list[str] = []

    for raw in records:
        if isinstance(raw, model):
            record = raw
        else:
            try:
                payload = raw.model_dump() if hasattr(raw, "model_dump") else raw
                record = model.model_validate(payload)
            except (ValidationError, TypeError) as exc:
                dropped += 1
                logger.warning("Dropping malformed %s record: %s", model.__name__, exc)
                continue
        if record.id in seen:
            dropped += 1
            dropped_ids.append(record.id)
            logger.warning("Dropping duplicate %s id %s", model.__name__, record.id)
            continue
        seen.add(record.id)
        valid.append(record)

    return valid, dropped, dropped_ids


def normalize_sources(
    remote_records: Iterable[RawRecord],
    local_records: Iterable[RawRecord],
) -> NormalizationResult:
    """Merge both source collections into one sorted ContentItem list.

    Args:
        remote_records: Records from the remote CMS (mappings or RemotePost).
        local_records: Records from the local store (mappings or LocalArticle).

    Returns:
        NormalizationResult with items sorted by ``created_at`` descending
        and the number of records dropped as malformed or duplicate.
    """
    remote, remote_dropped, remote_dup = _validate_all(remote_records, RemotePost)
    local, local_dropped, local_dup = _validate_all(local_records, LocalArticle)

    items = [normalize_remote(r) for r in remote] + [normalize_local(a) for a in local]
    dropped = remote_dropped + local_dropped
    if dropped:
        logger.warning("Dropped %d malformed source record(s)", dropped)

    return NormalizationResult(
        items=sort_by_created_desc(items),
        dropped=dropped,
        dropped_ids=[make_item_id(Provenance.REMOTE, i) for i in remote_dup]
        + [make_item_id(Provenance.LOCAL, i) for i in local_dup],
    )
