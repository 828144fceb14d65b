"""Edit buffer — sparse overlay of uncommitted SEO field changes.

The buffer never touches the registry.  Reads merge overlay-over-base at
presentation time; ``commit_all`` resolves each entry independently so a
failing item never blocks or rolls back the others.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator

from pydantic import BaseModel, Field

from contentdesk.registry.models import ContentItem, Provenance, parse_item_id
from contentdesk.registry.registry import ContentRegistry
from contentdesk.registry.signals import Invalidation, InvalidationSignal

logger = logging.getLogger(__name__)

EDITABLE_FIELDS: tuple[str, ...] = ("seo_title", "seo_description", "slug")

Persist = Callable[[str, dict[str, str]], Awaitable[bool]]


class CommitResult(BaseModel):
    """Aggregate outcome of a commit."""

    succeeded: int = 0
    total: int = 0
    failed_ids: list[str] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def all_succeeded(self) -> bool:
        return self.succeeded == self.total


def _check_field(field: str) -> None:
    if field not in EDITABLE_FIELDS:
        raise ValueError(
            f"Field {field!r} is not editable; expected one of {', '.join(EDITABLE_FIELDS)}"
        )


class EditBuffer:
    """Per-item overlay of ``seo_title``, ``seo_description`` and ``slug``.

    Entries exist only for items with at least one overridden field.
    """

    def __init__(
        self,
        registry: ContentRegistry,
        *,
        signal: InvalidationSignal | None = None,
    ) -> None:
        self._registry = registry
        self._signal = signal
        self._entries: dict[str, dict[str, str]] = {}

    # ── Writes ──────────────────────────────────────────────────

    def set_field(self, item_id: str, field: str, value: str) -> None:
        """Upsert an overlay value.

        Setting a field back to its base value drops that override.

        Raises:
            ValueError: If ``field`` is not editable.
            KeyError: If ``item_id`` is not in the registry.
        """
        _check_field(field)
        base = self._registry.require(item_id)
        if value == base.field_text(field):
            self.clear_field(item_id, field)
            return
        self._entries.setdefault(item_id, {})[field] = value

    def clear_field(self, item_id: str, field: str) -> None:
        _check_field(field)
        entry = self._entries.get(item_id)
        if entry is None:
            return
        entry.pop(field, None)
        if not entry:
            del self._entries[item_id]

    def discard(self, item_id: str) -> None:
        """Drop every override for one item."""
        self._entries.pop(item_id, None)

    def discard_all(self) -> None:
        self._entries = {}

    # ── Reads ───────────────────────────────────────────────────

    def read(self, item_id: str, field: str) -> str:
        """Overlay value if set, else the base value, else empty string."""
        _check_field(field)
        entry = self._entries.get(item_id)
        if entry is not None and field in entry:
            return entry[field]
        base = self._registry.get(item_id)
        if base is None:
            return ""
        return base.field_text(field)

    def entry(self, item_id: str) -> dict[str, str] | None:
        """A copy of one item's overrides, or None."""
        entry = self._entries.get(item_id)
        return dict(entry) if entry is not None else None

    def is_dirty(self, item_id: str, field: str | None = None) -> bool:
        entry = self._entries.get(item_id)
        if entry is None:
            return False
        return field is None or field in entry

    def apply(self, item: ContentItem) -> ContentItem:
        """Return a copy of ``item`` with its overrides merged in."""
        entry = self._entries.get(item.id)
        if not entry:
            return item
        return item.model_copy(update=entry)

    @property
    def pending_ids(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    # ── Commit ──────────────────────────────────────────────────

    async def commit_all(self, persist: Persist) -> CommitResult:
        """Persist every buffered entry, one call per item, in order.

        Only entries whose persist call succeeded are removed; failed
        entries stay buffered so a retry resends just those.  An entry
        edited again while its call was in flight is kept.
        """
        pending = [(item_id, dict(fields)) for item_id, fields in self._entries.items()]
        result = CommitResult(total=len(pending))
        touched: set[Provenance] = set()

        for item_id, fields in pending:
            try:
                ok = bool(await persist(item_id, dict(fields)))
            except Exception:
                logger.warning("Persist failed for %s", item_id, exc_info=True)
                ok = False

            if not ok:
                result.failed_ids.append(item_id)
                continue

            result.succeeded += 1
            touched.add(parse_item_id(item_id)[0])
            if self._entries.get(item_id) == fields:
                del self._entries[item_id]

        logger.info("Committed %d/%d buffered item(s)", result.succeeded, result.total)
        if result.succeeded and self._signal is not None:
            self._signal.emit(Invalidation("edit buffer commit", frozenset(touched)))
        return result
