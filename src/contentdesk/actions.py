"""Catalogue of bulk actions wired to the backends.

Each factory returns a ``BulkAction`` whose mutation calls the backend
owning the item.  Status changes go straight to the backend and never
through the edit buffer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from contentdesk.backends import BackendRouter
from contentdesk.backends.ghost import GhostBackend
from contentdesk.errors import BackendError
from contentdesk.registry.bulk import BulkAction, Mutation, PreconditionPolicy
from contentdesk.registry.models import ContentItem, ItemStatus, Provenance
from contentdesk.shared.images import ImageGenerator, cover_prompt
from contentdesk.shared.llm import SeoText, generate_seo_text

logger = logging.getLogger(__name__)

SeoGenerator = Callable[..., SeoText]


def has_title(item: ContentItem) -> bool:
    return bool(item.title and item.title.strip())


def has_remote_counterpart(item: ContentItem) -> bool:
    return item.provenance == Provenance.REMOTE or item.remote_post_id is not None


def remote_post_id(item: ContentItem) -> str:
    """The Ghost post id behind an item.

    Raises BackendError for a local item that was never synced.
    """
    if item.provenance == Provenance.REMOTE:
        return item.source_id
    if item.remote_post_id is None:
        raise BackendError(f"{item.id} has no remote post")
    return item.remote_post_id


def set_status_action(router: BackendRouter, status: ItemStatus | str) -> BulkAction:
    target = ItemStatus(status)

    async def mutation(item: ContentItem) -> bool:
        return await router.for_item(item).set_status(item, target)

    return BulkAction(
        name="set_status",
        label=f"Set status to {target.value}",
        mutation=mutation,
    )


def publish_action(router: BackendRouter) -> BulkAction:
    """Publish every selected item; refused outright if any lacks a title."""

    async def mutation(item: ContentItem) -> bool:
        return await router.for_item(item).publish(item)

    return BulkAction(
        name="publish",
        label="Publish",
        mutation=mutation,
        eligible=has_title,
        precondition_message="Every selected item needs a title before publishing",
        policy=PreconditionPolicy.REQUIRE_ALL,
    )


def delete_action(router: BackendRouter) -> BulkAction:
    async def mutation(item: ContentItem) -> bool:
        return await router.for_item(item).delete(item)

    return BulkAction(name="delete", label="Delete", mutation=mutation)


def generate_cover_action(mutation: Mutation) -> BulkAction:
    """Cover generation for items that exist in the remote CMS.

    Items without a remote counterpart are skipped rather than failing
    the whole selection.
    """
    return BulkAction(
        name="generate_cover",
        label="Generate cover",
        mutation=mutation,
        eligible=has_remote_counterpart,
        precondition_message="None of the selected items exist in the remote CMS",
        policy=PreconditionPolicy.SKIP_INELIGIBLE,
        invalidates=frozenset({Provenance.REMOTE}),
    )


def upload_cover_mutation(backend: GhostBackend, image_path: Path) -> Mutation:
    """Mutation attaching one image file as the cover of each item's post."""

    async def mutation(item: ContentItem) -> bool:
        return await backend.set_feature_image(remote_post_id(item), image_path)

    return mutation


def generate_cover_mutation(
    backend: GhostBackend, generator: ImageGenerator, output_dir: Path
) -> Mutation:
    """Mutation generating a cover per item and attaching it to its post.

    The prompt comes from the item's title and keyword; the image is
    written to ``output_dir/<item id>.png`` before upload.
    """

    async def mutation(item: ContentItem) -> bool:
        post_id = remote_post_id(item)
        path = await asyncio.to_thread(
            generator.generate, cover_prompt(item), output_path=output_dir / f"{item.id}.png"
        )
        return await backend.set_feature_image(post_id, path)

    return mutation


def generate_seo_text_action(
    router: BackendRouter,
    *,
    model: str | None = None,
    generate: SeoGenerator = generate_seo_text,
) -> BulkAction:
    """Draft an SEO title and description with Claude and persist them."""

    async def mutation(item: ContentItem) -> bool:
        text = await asyncio.to_thread(generate, item, model=model)
        logger.debug("SEO text for %s: %s", item.id, text.seo_title)
        return await router.persist(item.id, text.as_fields())

    return BulkAction(
        name="generate_seo_text",
        label="Generate SEO text",
        mutation=mutation,
        eligible=lambda item: has_title(item) or bool(item.keyword),
        precondition_message="Selected items need a title or keyword",
        policy=PreconditionPolicy.SKIP_INELIGIBLE,
    )
