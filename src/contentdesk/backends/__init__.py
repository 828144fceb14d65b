"""Collaborator backends for the two systems of record.

``BackendRouter`` dispatches each call to the backend matching an item's
provenance, and supplies the registry's fetchers and the edit buffer's
persist callable.
"""

from __future__ import annotations

import logging

from contentdesk.backends.base import ContentBackend
from contentdesk.backends.ghost import GhostBackend
from contentdesk.backends.local import LocalBackend
from contentdesk.config import ContentDeskConfig
from contentdesk.content.store import ArticleStore
from contentdesk.errors import BackendError
from contentdesk.integrations.ghost import GhostAPIClient
from contentdesk.registry.models import ContentItem, Provenance, parse_item_id
from contentdesk.registry.registry import ContentRegistry
from contentdesk.registry.signals import InvalidationSignal

logger = logging.getLogger(__name__)


class BackendRouter:
    """Routes registry operations to the backend owning each item."""

    def __init__(
        self,
        remote: ContentBackend | None = None,
        local: ContentBackend | None = None,
    ) -> None:
        self._backends: dict[Provenance, ContentBackend] = {}
        if remote is not None:
            self._backends[Provenance.REMOTE] = remote
        if local is not None:
            self._backends[Provenance.LOCAL] = local

    @property
    def remote(self) -> ContentBackend | None:
        return self._backends.get(Provenance.REMOTE)

    @property
    def local(self) -> ContentBackend | None:
        return self._backends.get(Provenance.LOCAL)

    def for_provenance(self, provenance: Provenance) -> ContentBackend:
        """Raises BackendError if no backend serves ``provenance``."""
        backend = self._backends.get(provenance)
        if backend is None:
            raise BackendError(f"No {provenance.value} backend configured")
        return backend

    def for_item(self, item: ContentItem) -> ContentBackend:
        return self.for_provenance(item.provenance)

    async def persist(self, item_id: str, fields: dict[str, str]) -> bool:
        """Edit-buffer persist callable: write fields to the owning backend."""
        provenance, source_id = parse_item_id(item_id)
        return await self.for_provenance(provenance).persist_fields(source_id, fields)

    def build_registry(
        self, site_id: str, *, signal: InvalidationSignal | None = None
    ) -> ContentRegistry:
        """A registry fetching from whichever backends are configured."""
        return ContentRegistry(
            site_id,
            fetch_remote=self.remote.fetch if self.remote is not None else None,
            fetch_local=self.local.fetch if self.local is not None else None,
            signal=signal,
        )


def build_router(
    config: ContentDeskConfig,
    site_id: str,
    *,
    local_only: bool = False,
) -> BackendRouter:
    """Wire backends for one site from configuration.

    Named Ghost targets are matched by ``site_id``; the top-level
    ``[ghost]`` values serve any site only when no named targets exist.
    The remote backend is left out when Ghost is not configured for the
    site or ``local_only`` is set; local articles can then not be published.
    """
    store = ArticleStore(config.store_path)
    client: GhostAPIClient | None = None
    if not local_only:
        targets = config.ghost.targets
        if targets and site_id not in targets:
            logger.warning(
                "No Ghost target named %s (known: %s); showing local articles only",
                site_id,
                ", ".join(sorted(targets)),
            )
        else:
            ghost_config = config.to_ghost_config(site_id if targets else None)
            if ghost_config.is_configured:
                client = GhostAPIClient(ghost_config)
            else:
                logger.warning(
                    "Ghost not configured for site %s; showing local articles only", site_id
                )

    return BackendRouter(
        remote=GhostBackend(client) if client is not None else None,
        local=LocalBackend(store, site_id, ghost=client),
    )


__all__ = [
    "BackendRouter",
    "ContentBackend",
    "GhostBackend",
    "LocalBackend",
    "build_router",
]
