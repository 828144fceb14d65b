"""Local backend — articles held in the on-disk ArticleStore.

Publishing a local article pushes it to Ghost: the first publish creates
the remote post, later ones update the post recorded in
``remote_post_id``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from contentdesk.backends.base import ContentBackend
from contentdesk.content.store import ArticleStore
from contentdesk.errors import BackendError
from contentdesk.integrations.ghost import GhostAPIClient
from contentdesk.registry.models import ContentItem, ItemStatus, LocalArticle, Provenance

logger = logging.getLogger(__name__)


def _post_fields(article: LocalArticle) -> dict[str, Any]:
    fields = {
        "slug": article.slug,
        "meta_title": article.seo_title,
        "meta_description": article.seo_description,
        "canonical_url": article.canonical_url,
        "og_title": article.og_title,
        "feature_image": article.feature_image,
    }
    return {k: v for k, v in fields.items() if v}


class LocalBackend(ContentBackend):
    """Reads and writes articles of one site in the local store."""

    provenance = Provenance.LOCAL

    def __init__(
        self,
        store: ArticleStore,
        site_id: str,
        ghost: GhostAPIClient | None = None,
    ) -> None:
        self.store = store
        self.site_id = site_id
        self.ghost = ghost

    async def fetch(self) -> list[LocalArticle]:
        return self.store.list(site_id=self.site_id)

    async def persist_fields(self, source_id: str, fields: dict[str, str]) -> bool:
        try:
            self.store.update_fields(source_id, fields)
        except (KeyError, ValueError) as exc:
            raise BackendError(f"Cannot update local article {source_id}: {exc}") from exc
        return True

    async def set_status(self, item: ContentItem, status: ItemStatus) -> bool:
        try:
            self.store.update_status(item.source_id, status.value)
        except KeyError as exc:
            raise BackendError(f"Local article {item.source_id} not found") from exc
        return True

    async def delete(self, item: ContentItem) -> bool:
        try:
            self.store.delete(item.source_id)
        except KeyError as exc:
            raise BackendError(f"Local article {item.source_id} not found") from exc
        return True

    async def publish(self, item: ContentItem) -> bool:
        """Push the article to Ghost as a published post.

        Raises:
            BackendError: If Ghost is not configured, the article is gone,
                or the API call fails.
        """
        if self.ghost is None:
            raise BackendError("Publishing a local article requires a configured Ghost target")
        article = self.store.get(item.source_id)
        if article is None:
            raise BackendError(f"Local article {item.source_id} not found")

        post = await asyncio.to_thread(self._push, article)
        self.store.mark_synced(article.id, str(post["id"]), post.get("url"))
        self.store.update_status(article.id, ItemStatus.PUBLISHED.value)
        logger.info("Published local article %s as Ghost post %s", article.id, post["id"])
        return True

    def _push(self, article: LocalArticle) -> dict[str, Any]:
        assert self.ghost is not None
        fields = _post_fields(article)
        if article.remote_post_id:
            fields.update(
                {
                    "title": article.title or "",
                    "mobiledoc": self.ghost.markdown_to_mobiledoc(article.body),
                    "status": "published",
                }
            )
            return self.ghost.update_post(article.remote_post_id, fields)
        return self.ghost.create_post(
            title=article.title or "",
            markdown=article.body,
            tags=[article.keyword] if article.keyword else None,
            status="published",
            **fields,
        )
