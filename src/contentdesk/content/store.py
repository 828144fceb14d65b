"""JSON-backed store of locally authored articles.

Persists every LocalArticle in a single JSON file, loaded on init and
saved after every write operation.  This is the local system of record
the registry merges with the remote CMS.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from contentdesk.registry.models import LocalArticle

logger = logging.getLogger(__name__)

STORE_FILENAME = ".contentdesk-articles.json"

# Fields the store lets callers overwrite through update_fields().
UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "keyword",
        "body",
        "slug",
        "status",
        "seo_title",
        "seo_description",
        "canonical_url",
        "robots_meta",
        "schema_type",
        "og_title",
        "feature_image",
        "seo_score",
        "preliminary_seo_score",
        "readability_score",
    }
)

# Alias to avoid shadowing by ArticleStore.list method
_list = list


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    articles: list[LocalArticle] = Field(default_factory=list)


def _word_count(body: str) -> int:
    return len(body.split())


class ArticleStore:
    """JSON-backed CRUD store for local articles.

    Loads the store file on init and saves after every mutation.
    """

    def __init__(self, directory: Path) -> None:
        self._path = directory / STORE_FILENAME
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValidationError):
            logger.warning("Corrupt article store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            self._data.model_dump_json(indent=2),
            encoding="utf-8",
        )

    def _find(self, article_id: str) -> LocalArticle | None:
        for article in self._data.articles:
            if article.id == article_id:
                return article
        return None

    def _require(self, article_id: str) -> LocalArticle:
        article = self._find(article_id)
        if article is None:
            raise KeyError(article_id)
        return article

    def _replace(self, article: LocalArticle) -> None:
        self._data.articles = [
            article if a.id == article.id else a for a in self._data.articles
        ]
        self._save()

    # ── Write operations ─────────────────────────────────────────

    def create(
        self,
        site_id: str,
        title: str,
        *,
        keyword: str | None = None,
        body: str = "",
        **fields: Any,
    ) -> LocalArticle:
        """Create a new draft article with a fresh id."""
        article = LocalArticle(
            id=uuid.uuid4().hex,
            site_id=site_id,
            title=title,
            keyword=keyword,
            body=body,
            status=fields.pop("status", "draft"),
            word_count=_word_count(body),
            created_at=datetime.now(tz=UTC),
            **fields,
        )
        self.upsert(article)
        return article

    def upsert(self, article: LocalArticle) -> None:
        """Insert or replace an article by id."""
        self._data.articles = [a for a in self._data.articles if a.id != article.id]
        self._data.articles.append(article)
        self._save()

    def update_fields(self, article_id: str, fields: dict[str, Any]) -> LocalArticle:
        """Overwrite a subset of fields.

        Raises:
            KeyError: If the article does not exist.
            ValueError: If a field is not updatable.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        article = self._require(article_id)
        update = dict(fields)
        if "body" in update:
            update["word_count"] = _word_count(update["body"] or "")
        updated = article.model_copy(update=update)
        self._replace(updated)
        return updated

    def update_status(self, article_id: str, status: str) -> LocalArticle:
        """Update the status of an article.

        Raises KeyError if the article does not exist.
        """
        article = self._require(article_id)
        update: dict[str, Any] = {"status": status}
        if status == "published" and article.published_at is None:
            update["published_at"] = datetime.now(tz=UTC)
        updated = article.model_copy(update=update)
        self._replace(updated)
        return updated

    def mark_synced(self, article_id: str, remote_post_id: str, url: str | None = None) -> None:
        """Record the remote CMS post this article was pushed to.

        Raises KeyError if the article does not exist.
        """
        article = self._require(article_id)
        update: dict[str, Any] = {"remote_post_id": remote_post_id}
        if url:
            update["url"] = url
        self._replace(article.model_copy(update=update))

    def delete(self, article_id: str) -> None:
        """Remove an article.

        Raises KeyError if the article does not exist.
        """
        self._require(article_id)
        self._data.articles = [a for a in self._data.articles if a.id != article_id]
        self._save()

    # ── Read operations ──────────────────────────────────────────

    def get(self, article_id: str) -> LocalArticle | None:
        """Return an article by id, or None if not found."""
        return self._find(article_id)

    def list(self, site_id: str | None = None, status: str | None = None) -> _list[LocalArticle]:
        """Return articles, optionally filtered by site and/or status."""
        results = self._data.articles
        if site_id is not None:
            results = [a for a in results if a.site_id == site_id]
        if status is not None:
            results = [a for a in results if a.status == status]
        return _list(results)

    def exists(self, article_id: str) -> bool:
        return self._find(article_id) is not None
