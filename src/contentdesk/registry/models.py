"""Registry domain models — pure Pydantic v2 data types.

Two source variants feed the registry: ``RemotePost`` (records pulled
from the remote CMS) and ``LocalArticle`` (records authored in the local
store).  Both are mapped into one canonical ``ContentItem`` whose ``id``
carries the provenance prefix.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Provenance(StrEnum):
    """Which system of record an item came from.

    The value doubles as the id prefix.
    """

    REMOTE = "remote"
    LOCAL = "local"


class ItemStatus(StrEnum):
    """Canonical publication status of a content item."""

    DRAFT = "draft"
    PENDING = "pending"
    PRIVATE = "private"
    PUBLISHED = "published"


ID_SEPARATOR = "-"


def make_item_id(provenance: Provenance, source_id: str) -> str:
    """Build the registry id for a source record."""
    return f"{provenance.value}{ID_SEPARATOR}{source_id}"


def parse_item_id(item_id: str) -> tuple[Provenance, str]:
    """Split a registry id into its provenance and source id.

    Raises:
        ValueError: If the id has no known provenance prefix.
    """
    prefix, sep, source_id = item_id.partition(ID_SEPARATOR)
    if not sep or not source_id:
        raise ValueError(f"Malformed content item id: {item_id!r}")
    try:
        provenance = Provenance(prefix)
    except ValueError:
        raise ValueError(f"Unknown provenance prefix in id: {item_id!r}") from None
    return provenance, source_id


class _SourceRecord(BaseModel):
    """Shared shape of both source variants.

    Accepts camelCase (``seoTitle``) and snake_case (``seo_title``) keys.
    Every field except ``id`` is optional.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    id: str = Field(min_length=1)
    title: str | None = None
    status: str | None = None
    slug: str | None = None
    url: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    word_count: int | None = None
    seo_score: int | None = None
    readability_score: int | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None
    canonical_url: str | None = None
    robots_meta: str | None = None
    schema_type: str | None = None
    og_title: str | None = None
    internal_links_count: int | None = None
    external_links_count: int | None = None
    images_count: int | None = None
    images_alt_count: int | None = None
    feature_image: str | None = None


class RemotePost(_SourceRecord):
    """A post synced from the remote CMS."""

    provenance: Provenance = Field(default=Provenance.REMOTE, frozen=True, exclude=True)
    focus_keyword: str | None = None
    updated_at: datetime | None = None


class LocalArticle(_SourceRecord):
    """An article authored in the local content store."""

    provenance: Provenance = Field(default=Provenance.LOCAL, frozen=True, exclude=True)
    site_id: str = ""
    keyword: str | None = None
    body: str = ""
    preliminary_seo_score: int | None = None
    remote_post_id: str | None = None


SourceRecord = RemotePost | LocalArticle


class ContentItem(BaseModel):
    """Canonical, immutable view of one piece of content.

    Every field absent in the source is ``None``.  ``source_ref`` points
    back at the originating record and is only used by collaborator calls.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    provenance: Provenance
    source_id: str
    title: str | None = None
    keyword: str | None = None
    status: ItemStatus = ItemStatus.DRAFT
    slug: str | None = None
    url: str | None = None
    word_count: int | None = None
    seo_score: int | None = None
    preliminary_seo_score: int | None = None
    readability_score: int | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    canonical_url: str | None = None
    robots_meta: str | None = None
    schema_type: str | None = None
    og_title: str | None = None
    internal_links_count: int | None = None
    external_links_count: int | None = None
    images_count: int | None = None
    images_alt_count: int | None = None
    feature_image: str | None = None
    remote_post_id: str | None = None
    source_ref: Any = Field(default=None, exclude=True, repr=False)

    @property
    def is_synced(self) -> bool:
        """Whether the item has a counterpart in the remote CMS."""
        return self.remote_post_id is not None

    def field_text(self, name: str) -> str:
        """Return a text attribute, or empty string when unset."""
        value = getattr(self, name)
        return "" if value is None else str(value)


class NormalizationResult(BaseModel):
    """Output of merging both source collections."""

    items: list[ContentItem] = Field(default_factory=list)
    dropped: int = 0
    dropped_ids: list[str] = Field(default_factory=list)
