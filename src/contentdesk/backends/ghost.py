"""Remote backend — posts held in a Ghost site."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from contentdesk.backends.base import ContentBackend
from contentdesk.integrations.ghost import (
    WRITABLE_STATUSES,
    GhostAPIClient,
    GhostAPIError,
    ghost_post_to_record,
)
from contentdesk.registry.models import ContentItem, ItemStatus, Provenance

logger = logging.getLogger(__name__)

# Editable registry fields and their Ghost post counterparts.
GHOST_FIELD_MAP: dict[str, str] = {
    "seo_title": "meta_title",
    "seo_description": "meta_description",
    "slug": "slug",
}


def to_ghost_fields(fields: dict[str, str]) -> dict[str, Any]:
    """Rename registry fields to Ghost post fields.

    Raises:
        GhostAPIError: If a field has no Ghost counterpart.
    """
    unknown = set(fields) - set(GHOST_FIELD_MAP)
    if unknown:
        raise GhostAPIError(f"Ghost cannot store field(s): {', '.join(sorted(unknown))}")
    return {GHOST_FIELD_MAP[name]: value for name, value in fields.items()}


class GhostBackend(ContentBackend):
    """Reads and writes posts through the Ghost Admin API."""

    provenance = Provenance.REMOTE

    def __init__(self, client: GhostAPIClient) -> None:
        self.client = client

    async def fetch(self) -> list[dict[str, Any]]:
        posts = await asyncio.to_thread(self.client.list_posts)
        logger.info("Fetched %d post(s) from %s", len(posts), self.client.base_url)
        return [ghost_post_to_record(post, self.client.base_url) for post in posts]

    async def persist_fields(self, source_id: str, fields: dict[str, str]) -> bool:
        await asyncio.to_thread(self.client.update_post, source_id, to_ghost_fields(fields))
        return True

    async def set_status(self, item: ContentItem, status: ItemStatus) -> bool:
        if status.value not in WRITABLE_STATUSES:
            raise GhostAPIError(f"Ghost posts cannot be set to '{status.value}'")
        await asyncio.to_thread(
            self.client.update_post, item.source_id, {"status": status.value}
        )
        return True

    async def publish(self, item: ContentItem) -> bool:
        return await self.set_status(item, ItemStatus.PUBLISHED)

    async def delete(self, item: ContentItem) -> bool:
        await asyncio.to_thread(self.client.delete_post, item.source_id)
        return True

    async def set_feature_image(self, post_id: str, image_path: Path) -> bool:
        """Upload an image and attach it to a post as its cover."""
        await asyncio.to_thread(self.client.set_feature_image, post_id, image_path)
        return True
